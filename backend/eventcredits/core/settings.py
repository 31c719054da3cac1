import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./event_credits.db") or "sqlite:///./event_credits.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()

        self.admin_username = _getenv("ADMIN_USERNAME", "admin") or "admin"
        self.admin_password = _getenv("ADMIN_PASSWORD")
        self.session_secret = _getenv("SESSION_SECRET")
        # Sessions never outlive 24 hours.
        self.session_max_age_hours = min(24, max(1, _getenv_int("SESSION_MAX_AGE_HOURS", 24)))

        self.resend_api_key = _getenv("RESEND_API_KEY")
        self.resend_endpoint = _getenv("RESEND_ENDPOINT", "https://api.resend.com/emails") or "https://api.resend.com/emails"
        self.from_email = _getenv("FROM_EMAIL", "Cafe Cursor <onboarding@resend.dev>") or "Cafe Cursor <onboarding@resend.dev>"

        self.event_name = _getenv("EVENT_NAME", "Cafe Cursor Curitiba") or "Cafe Cursor Curitiba"
        self.test_company_name = _getenv("TEST_COMPANY_NAME", "Test Company") or "Test Company"
        self.default_locale = _getenv("DEFAULT_LOCALE", "pt-BR") or "pt-BR"
        self.credit_link_base = _getenv("CREDIT_LINK_BASE", "https://cursor.com/referral") or "https://cursor.com/referral"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def admin_login_configured(self) -> bool:
        return bool(self.admin_password and self.session_secret)

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:3000", "http://localhost:5173"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
