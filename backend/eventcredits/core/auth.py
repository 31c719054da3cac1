from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request

from eventcredits.core.settings import Settings, settings


logger = logging.getLogger(__name__)

SESSION_COOKIE = "event-credits-admin-session"
SESSION_ALGORITHM = "HS256"
MAX_SESSION_AGE = timedelta(hours=24)


@dataclass(frozen=True)
class AdminAuthConfig:
    username: str
    password: str | None
    session_secret: str | None
    max_age: timedelta = MAX_SESSION_AGE
    secure_cookie: bool = False

    @classmethod
    def from_settings(cls, cfg: Settings) -> AdminAuthConfig:
        return cls(
            username=cfg.admin_username,
            password=cfg.admin_password,
            session_secret=cfg.session_secret,
            max_age=timedelta(hours=cfg.session_max_age_hours),
            secure_cookie=cfg.is_production,
        )

    @property
    def login_enabled(self) -> bool:
        return bool(self.password and self.session_secret)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def verify_credentials(username: str, password: str, config: AdminAuthConfig) -> bool:
    if not config.login_enabled:
        return False
    username_ok = secrets.compare_digest(str(username or "").strip().encode("utf-8"), config.username.encode("utf-8"))
    password_ok = secrets.compare_digest(str(password or "").encode("utf-8"), str(config.password).encode("utf-8"))
    return username_ok and password_ok


def create_session_token(config: AdminAuthConfig, now: datetime | None = None) -> str:
    if not config.session_secret:
        raise RuntimeError("SESSION_SECRET is not configured")
    issued_at = now or _utcnow()
    payload = {
        "sub": config.username,
        "iat": int(issued_at.timestamp()),
        "nonce": secrets.token_hex(8),
    }
    return jwt.encode(payload, config.session_secret, algorithm=SESSION_ALGORITHM)


def verify_session_token(token: str | None, config: AdminAuthConfig, now: datetime) -> bool:
    """A token is valid iff it was signed with the configured secret for the
    configured username and was issued at most max_age (never more than
    24 hours) before `now`, and not after it."""
    if not token or not config.session_secret:
        return False
    try:
        claims = jwt.decode(
            token,
            config.session_secret,
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["sub", "iat"], "verify_exp": False, "verify_iat": False},
        )
    except jwt.PyJWTError:
        return False

    if not secrets.compare_digest(str(claims.get("sub") or "").encode("utf-8"), config.username.encode("utf-8")):
        return False
    try:
        issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return False
    age = now - issued_at
    if age < timedelta(0):
        return False
    return age <= min(config.max_age, MAX_SESSION_AGE)


_ADMIN_AUTH = AdminAuthConfig.from_settings(settings)


def get_admin_auth_config() -> AdminAuthConfig:
    return _ADMIN_AUTH


def is_admin_request(request: Request, config: AdminAuthConfig) -> bool:
    return verify_session_token(request.cookies.get(SESSION_COOKIE), config, _utcnow())


def require_admin_session(request: Request, config: AdminAuthConfig = Depends(get_admin_auth_config)) -> None:
    if not is_admin_request(request, config):
        raise HTTPException(status_code=401, detail="Not authorized")
