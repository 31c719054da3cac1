from __future__ import annotations

from jinja2 import DictLoader, Environment, select_autoescape


SUPPORTED_LOCALES = ("pt-BR", "en")

TEXTS: dict[str, dict[str, str]] = {
    "pt-BR": {
        "subject": "Seu crédito Cursor está aqui! - {event}",
        "greeting": "Olá, {name}!",
        "thanks": "Obrigado por participar do {event}!",
        "intro": "Estamos muito felizes em ter você na nossa comunidade. Aqui está seu crédito exclusivo do Cursor IDE:",
        "your_credit": "Seu Crédito Cursor",
        "code": "Código",
        "use_credit": "Usar Meu Crédito",
        "test_warning": "Este é um crédito de TESTE (não válido para uso real)",
        "how_to_use": "Como usar:",
        "step1": "Clique no botão acima ou copie o link",
        "step2": "Faça login ou crie sua conta no Cursor",
        "step3": "O crédito será aplicado automaticamente!",
        "company_label": "Empresa",
        "footer": "Você recebeu este email porque se registrou no {event}.",
    },
    "en": {
        "subject": "Your Cursor credit is here! - {event}",
        "greeting": "Hello, {name}!",
        "thanks": "Thank you for joining {event}!",
        "intro": "We're thrilled to have you in our community. Here's your exclusive Cursor IDE credit:",
        "your_credit": "Your Cursor Credit",
        "code": "Code",
        "use_credit": "Use My Credit",
        "test_warning": "This is a TEST credit (not valid for real use)",
        "how_to_use": "How to use:",
        "step1": "Click the button above or copy the link",
        "step2": "Sign in or create your Cursor account",
        "step3": "The credit will be applied automatically!",
        "company_label": "Company",
        "footer": "You received this email because you registered for {event}.",
    },
}


def resolve_locale(raw: object, default: str = "pt-BR") -> str:
    value = str(raw or "").strip()
    if value.lower() == "en":
        return "en"
    if value in SUPPORTED_LOCALES:
        return value
    return default if default in SUPPORTED_LOCALES else "pt-BR"


TEMPLATES = {
    "credit_email.html": r"""<!DOCTYPE html>
<html lang="{{ locale }}">
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="margin:0;padding:0;background-color:#0a0a0a;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;margin:0 auto;padding:40px 20px;">
<tr><td>
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#171717;border:1px solid #262626;border-radius:16px;">
<tr><td style="padding:32px;">
<h2 style="margin:0 0 8px 0;font-size:20px;font-weight:600;color:#ffffff;">{{ t.greeting.format(name=name) }}</h2>
<p style="margin:0 0 24px 0;font-size:14px;color:#10b981;font-weight:500;">{{ t.thanks.format(event=event_name) }}</p>
<p style="margin:0 0 24px 0;font-size:14px;line-height:1.6;color:#a3a3a3;">{{ t.intro }}</p>
{% if company %}
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#0a0a0a;border-radius:12px;margin-bottom:24px;">
<tr><td style="padding:16px;">
<p style="margin:0 0 4px 0;font-size:12px;color:#737373;text-transform:uppercase;">{{ t.company_label }}</p>
<p style="margin:0;font-size:14px;color:#ffffff;">{{ company }}</p>
</td></tr></table>
{% endif %}
{% if is_test %}
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#78350f;border:1px solid #92400e;border-radius:12px;margin-bottom:24px;">
<tr><td style="padding:12px 16px;">
<p style="margin:0;font-size:12px;color:#fbbf24;text-align:center;">{{ t.test_warning }}</p>
</td></tr></table>
{% endif %}
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#0a0a0a;border:1px solid #262626;border-radius:12px;margin-bottom:24px;">
<tr><td style="padding:20px;">
<p style="margin:0 0 8px 0;font-size:10px;color:#737373;text-transform:uppercase;letter-spacing:1px;">{{ t.your_credit }}</p>
<p style="margin:0 0 4px 0;font-size:12px;color:#a3a3a3;">{{ t.code }}: <span style="font-family:monospace;color:#ffffff;">{{ credit_code }}</span></p>
<p style="margin:0;font-size:11px;color:#737373;word-break:break-all;font-family:monospace;">{{ credit_link }}</p>
</td></tr>
</table>
<a href="{{ credit_link }}" style="display:block;text-align:center;background-color:#ffffff;color:#0a0a0a;padding:14px 24px;border-radius:12px;font-weight:600;text-decoration:none;margin-bottom:24px;">{{ t.use_credit }}</a>
<p style="margin:0 0 8px 0;font-size:13px;color:#ffffff;font-weight:600;">{{ t.how_to_use }}</p>
<ol style="margin:0;padding-left:20px;font-size:13px;color:#a3a3a3;">
{% for step in (t.step1, t.step2, t.step3) %}<li style="margin-bottom:4px;">{{ step }}</li>{% endfor %}
</ol>
</td></tr>
</table>
<p style="margin:24px 0 0 0;font-size:11px;color:#525252;text-align:center;">{{ t.footer.format(event=event_name) }}</p>
</td></tr>
</table>
</body>
</html>""",
}

env = Environment(loader=DictLoader(TEMPLATES), autoescape=select_autoescape(["html"]))


def render_credit_email(
    *,
    name: str,
    credit_link: str,
    credit_code: str,
    company: str | None,
    is_test: bool,
    locale: str,
    event_name: str,
) -> tuple[str, str]:
    """Return (subject, html) for the credit notification."""
    locale = resolve_locale(locale)
    t = TEXTS[locale]
    html = env.get_template("credit_email.html").render(
        t=t,
        locale=locale,
        name=name,
        credit_link=credit_link,
        credit_code=credit_code,
        company=company,
        is_test=is_test,
        event_name=event_name,
    )
    subject = t["subject"].format(event=event_name)
    return subject, html
