from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventcredits.core.settings import Settings
from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import EligibleUser, normalize_email, parse_approval_status
from eventcredits.schemas.admin import (
    AddCreditData,
    AddEligibleUserData,
    AssignCreditData,
    DeleteCreditData,
    SendCreditEmailData,
    UpdateUserStatusData,
    UserRef,
)
from eventcredits.services.allocation import AlreadyClaimed, NothingToRevoke, PoolExhausted, UserNotFound, claim_credit, revoke_credit
from eventcredits.services.email_template import resolve_locale
from eventcredits.services.notifications import CreditEmail, CreditNotifier, deliver_credit_email


logger = logging.getLogger(__name__)


class AdminActionError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _parse(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()))
        msg = str(first.get("msg") or "Invalid data")
        raise AdminActionError(400, f"Invalid {where}: {msg}" if where else msg)


def _resolve_user(db: Session, ref: UserRef) -> EligibleUser:
    user = None
    if ref.userId is not None:
        user = db.get(EligibleUser, ref.userId)
    elif ref.email:
        user = db.query(EligibleUser).filter(EligibleUser.email == normalize_email(ref.email)).first()
    else:
        raise AdminActionError(400, "userId or email is required")
    if user is None:
        raise AdminActionError(404, "User not found")
    return user


def _email_taken(db: Session, email: str) -> bool:
    return db.query(EligibleUser.id).filter(EligibleUser.email == email).first() is not None


def _code_taken(db: Session, code: str) -> bool:
    return db.query(Credit.id).filter(Credit.code == code).first() is not None


def _insert_unique(db: Session, row: object, duplicate_message: str) -> None:
    # A concurrent insert can slip past the caller's lookup; the unique index rejects it.
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AdminActionError(400, duplicate_message)


def assign_credit(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(AssignCreditData, data)
    user = _resolve_user(db, body)
    try:
        allocation = claim_credit(db, user.id, test=body.useTestCredit)
    except UserNotFound:
        raise AdminActionError(404, "User not found")
    except AlreadyClaimed:
        raise AdminActionError(400, "User already has a credit assigned")
    except PoolExhausted:
        raise AdminActionError(400, "No credits available")
    logger.info("admin.assign_credit email=%s code=%s test=%s", allocation.email, allocation.code, allocation.test)
    return {
        "success": True,
        "message": f"Credit {allocation.code} assigned to {allocation.email}",
        "credit": allocation.link,
    }


def revoke(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(UserRef, data)
    user = _resolve_user(db, body)
    email = user.email
    try:
        released = revoke_credit(db, user.id)
    except UserNotFound:
        raise AdminActionError(404, "User not found")
    except NothingToRevoke:
        raise AdminActionError(400, "User has no credit assigned")
    logger.info("admin.revoke_credit email=%s code=%s", email, released.code if released else None)
    return {"success": True, "message": f"Credit revoked from {email}"}


def add_eligible_user(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(AddEligibleUserData, data)
    email = normalize_email(body.email)
    if not email or "@" not in email:
        raise AdminActionError(400, "Invalid email")
    name = body.name.strip()
    if not name:
        raise AdminActionError(400, "Name is required")
    status = parse_approval_status(body.approvalStatus or "approved")
    if status is None:
        raise AdminActionError(400, f"Invalid approval status: {body.approvalStatus}")
    if _email_taken(db, email):
        raise AdminActionError(400, "User already exists")

    user = EligibleUser(
        email=email,
        name=name,
        company=(body.company or "").strip() or None,
        role=(body.role or "").strip() or None,
        approval_status=status.value,
        claimed=False,
    )
    _insert_unique(db, user, "User already exists")
    db.refresh(user)
    logger.info("admin.add_eligible_user email=%s status=%s", email, status.value)
    return {"success": True, "message": f"User {email} added", "user": user.to_dict()}


def update_user_status(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(UpdateUserStatusData, data)
    status = parse_approval_status(body.approvalStatus)
    if status is None:
        raise AdminActionError(400, f"Invalid approval status: {body.approvalStatus}")
    user = db.get(EligibleUser, body.userId)
    if user is None:
        raise AdminActionError(404, "User not found")
    user.approval_status = status.value
    db.commit()
    logger.info("admin.update_user_status user_id=%s status=%s", body.userId, status.value)
    return {"success": True, "message": f"Status updated to {status.value}"}


def add_credit(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(AddCreditData, data)
    code = body.code.strip()
    link = body.link.strip()
    if not code or not link:
        raise AdminActionError(400, "code and link are required")
    if _code_taken(db, code):
        raise AdminActionError(400, "Credit code already exists")

    credit = Credit(code=code, link=link, test=bool(body.isTest))
    _insert_unique(db, credit, "Credit code already exists")
    db.refresh(credit)
    logger.info("admin.add_credit code=%s test=%s", code, credit.test)
    return {"success": True, "message": f"Credit {code} added", "credit": credit.to_dict()}


def delete_credit(db: Session, data: dict[str, Any], **_: Any) -> dict:
    body = _parse(DeleteCreditData, data)
    credit = db.get(Credit, body.creditId)
    if credit is None:
        raise AdminActionError(404, "Credit not found")
    if credit.used:
        raise AdminActionError(400, "Cannot delete an assigned credit")
    code = credit.code
    # Guard the delete on the flag as well, so a claim landing in between wins.
    deleted = db.query(Credit).filter(Credit.id == body.creditId, Credit.used.is_(False)).delete(synchronize_session=False)
    if deleted != 1:
        db.rollback()
        raise AdminActionError(400, "Cannot delete an assigned credit")
    db.commit()
    logger.info("admin.delete_credit code=%s", code)
    return {"success": True, "message": f"Credit {code} deleted"}


def send_credit_email(
    db: Session,
    data: dict[str, Any],
    *,
    notifier: CreditNotifier,
    settings: Settings,
    **_: Any,
) -> dict:
    body = _parse(SendCreditEmailData, data)
    user = _resolve_user(db, body)
    if not user.claimed or user.credit is None:
        raise AdminActionError(400, "User has no credit assigned")

    email = CreditEmail(
        to=user.email,
        name=user.name,
        credit_link=user.credit.link,
        credit_code=user.credit.code,
        company=user.company,
        is_test=bool(user.credit.test),
        locale=resolve_locale(body.locale, settings.default_locale),
    )
    db.rollback()
    result = deliver_credit_email(notifier, email)
    if not result.success:
        raise AdminActionError(500, f"Error sending email: {result.error}")
    logger.info("admin.send_credit_email email=%s", email.to)
    return {"success": True, "message": f"Email sent to {email.to}"}


ACTIONS: dict[str, Callable[..., dict]] = {
    "ASSIGN_CREDIT": assign_credit,
    "REVOKE_CREDIT": revoke,
    "ADD_ELIGIBLE_USER": add_eligible_user,
    "UPDATE_USER_STATUS": update_user_status,
    "ADD_CREDIT": add_credit,
    "DELETE_CREDIT": delete_credit,
    "SEND_CREDIT_EMAIL": send_credit_email,
}


def run_admin_action(
    db: Session,
    action: str,
    data: dict[str, Any],
    *,
    notifier: CreditNotifier,
    settings: Settings,
) -> dict:
    handler = ACTIONS.get((action or "").strip().upper())
    if handler is None:
        raise AdminActionError(400, "Invalid action")
    logger.info("admin.action action=%s", action)
    return handler(db, data or {}, notifier=notifier, settings=settings)
