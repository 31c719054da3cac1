from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from eventcredits.core.settings import Settings
from eventcredits.services.email_template import render_credit_email


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreditEmail:
    to: str
    name: str
    credit_link: str
    credit_code: str
    company: str | None = None
    is_test: bool = False
    locale: str = "pt-BR"


@dataclass(frozen=True)
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class CreditNotifier(Protocol):
    def send(self, email: CreditEmail) -> SendResult:
        ...


class LoggingNotifier:
    """Notifier used when no email provider is configured."""

    def __init__(self, *, event_name: str = "") -> None:
        self.event_name = event_name

    def send(self, email: CreditEmail) -> SendResult:
        logger.info(
            "notify.simulated to=%s name=%s code=%s link=%s company=%s test=%s locale=%s",
            email.to,
            email.name,
            email.credit_code,
            email.credit_link,
            email.company or "",
            email.is_test,
            email.locale,
        )
        return SendResult(success=True)


class ResendNotifier:
    def __init__(
        self,
        *,
        api_key: str,
        from_email: str,
        event_name: str,
        endpoint: str = "https://api.resend.com/emails",
        timeout_s: float = 15,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.event_name = event_name
        self.endpoint = endpoint
        self.timeout_s = timeout_s

    def send(self, email: CreditEmail) -> SendResult:
        import requests

        subject, html = render_credit_email(
            name=email.name,
            credit_link=email.credit_link,
            credit_code=email.credit_code,
            company=email.company,
            is_test=email.is_test,
            locale=email.locale,
            event_name=self.event_name,
        )
        try:
            resp = requests.post(
                self.endpoint,
                json={
                    "from": self.from_email,
                    "to": [email.to],
                    "subject": subject,
                    "html": html,
                },
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.warning("notify.resend.request_failed to=%s error=%s", email.to, e)
            return SendResult(success=False, error=f"Email request failed: {e}")

        if resp.status_code >= 400:
            detail = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(body.get("message") or "")
            except ValueError:
                detail = (resp.text or "")[:200]
            logger.warning("notify.resend.rejected to=%s status=%s detail=%s", email.to, resp.status_code, detail)
            return SendResult(success=False, error=detail or f"Resend error ({resp.status_code})")

        message_id = None
        try:
            body = resp.json()
            if isinstance(body, dict):
                message_id = body.get("id")
        except ValueError:
            pass
        logger.info("notify.resend.sent to=%s id=%s", email.to, message_id)
        return SendResult(success=True, message_id=message_id)


def build_notifier(cfg: Settings) -> CreditNotifier:
    if cfg.resend_api_key:
        return ResendNotifier(
            api_key=cfg.resend_api_key,
            from_email=cfg.from_email,
            event_name=cfg.event_name,
            endpoint=cfg.resend_endpoint,
        )
    logger.info("notify.provider.logging reason=no_resend_api_key")
    return LoggingNotifier(event_name=cfg.event_name)


def deliver_credit_email(notifier: CreditNotifier, email: CreditEmail) -> SendResult:
    """Send without ever raising; failures come back as an unsuccessful result."""
    try:
        result = notifier.send(email)
    except Exception as e:
        logger.exception("notify.send.error to=%s", email.to)
        return SendResult(success=False, error=str(e) or e.__class__.__name__)
    if not result.success:
        logger.warning("notify.send.failed to=%s error=%s", email.to, result.error)
    return result
