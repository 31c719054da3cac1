from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from eventcredits.api.deps import get_notifier, get_settings
from eventcredits.core.database import get_db
from eventcredits.core.settings import Settings
from eventcredits.schemas.register import RegisteredUser, RegisterErrorResponse, RegisterRequest, RegisterResponse
from eventcredits.services.allocation import PoolExhausted
from eventcredits.services.email_template import resolve_locale
from eventcredits.services.notifications import CreditEmail, CreditNotifier, deliver_credit_email
from eventcredits.services.registration import RegistrationError, register_attendee
from eventcredits.services.stats import public_stats


logger = logging.getLogger(__name__)

router = APIRouter()


def _error(message: str, code: str, status_code: int) -> JSONResponse:
    body = RegisterErrorResponse(error=message, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _success(body: RegisterResponse, status_code: int, **kwargs) -> JSONResponse:
    content = body.model_dump()
    for key in ("isExisting", "emailSent"):
        if content.get(key) is None:
            content.pop(key, None)
    return JSONResponse(status_code=status_code, content=content, **kwargs)


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid data"
    msg = str(errors[0].get("msg") or "Invalid data")
    return msg.removeprefix("Value error, ")


@router.post("/register")
async def register(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: CreditNotifier = Depends(get_notifier),
    cfg: Settings = Depends(get_settings),
):
    try:
        try:
            raw = await request.json()
        except ValueError:
            return _error("Invalid request body", "VALIDATION_ERROR", 400)
        if not isinstance(raw, dict):
            return _error("Invalid request body", "VALIDATION_ERROR", 400)

        payload = RegisterRequest.model_validate(raw)
        locale = resolve_locale(payload.locale, cfg.default_locale)

        result = register_attendee(
            db,
            name=payload.name,
            email=payload.email,
            test_company_name=cfg.test_company_name,
        )
    except ValidationError as e:
        logger.info("register.validation_error errors=%s", e.errors())
        return _error(_validation_message(e), "VALIDATION_ERROR", 400)
    except RegistrationError as e:
        return _error(str(e), e.code, e.status_code)
    except PoolExhausted as e:
        logger.warning("register.no_credits test=%s", e.test)
        return _error(
            "Sorry, there are no credits available right now. Please contact the organizer.",
            "NO_CREDITS",
            503,
        )
    except Exception:
        logger.exception("register.error")
        return _error("Internal server error. Please try again.", "SERVER_ERROR", 500)

    allocation = result.allocation
    user = RegisteredUser(name=allocation.name, email=allocation.email, company=allocation.company)

    if result.is_existing:
        body = RegisterResponse(
            message="You already claimed your credit! Here it is again:",
            credit=allocation.link,
            isTest=allocation.test,
            isExisting=True,
            user=user,
        )
        return _success(body, 200)

    background_tasks.add_task(
        deliver_credit_email,
        notifier,
        CreditEmail(
            to=allocation.email,
            name=allocation.name,
            credit_link=allocation.link,
            credit_code=allocation.code,
            company=allocation.company,
            is_test=allocation.test,
            locale=locale,
        ),
    )
    body = RegisterResponse(
        message="Congratulations! Here is your credit:",
        credit=allocation.link,
        isTest=allocation.test,
        emailSent=True,
        user=user,
    )
    return _success(body, 201, background=background_tasks)


@router.get("/register")
async def register_stats(db: Session = Depends(get_db)):
    try:
        return public_stats(db)
    except Exception:
        logger.exception("register.stats.error")
        return JSONResponse(status_code=500, content={"available": False, "remaining": 0})
