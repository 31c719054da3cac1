from fastapi import Request

from eventcredits.core.settings import Settings, settings
from eventcredits.services.notifications import CreditNotifier


def get_notifier(request: Request) -> CreditNotifier:
    return request.app.state.notifier


def get_settings() -> Settings:
    return settings
