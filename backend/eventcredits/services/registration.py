from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from eventcredits.models.eligible_user import EligibleUser, normalize_email
from eventcredits.services.allocation import AlreadyClaimed, Allocation, claim_credit, snapshot


logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    code = "SERVER_ERROR"
    status_code = 500


class NotEligible(RegistrationError):
    code = "NOT_ELIGIBLE"
    status_code = 403

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(
            "This email is not registered for the event. Only approved attendees can claim a credit."
        )


class NotApproved(RegistrationError):
    code = "NOT_APPROVED"
    status_code = 403

    def __init__(self, email: str, status: str) -> None:
        self.email = email
        self.status = status
        super().__init__("Your event registration has not been approved yet. Please contact the organizer.")


@dataclass(frozen=True)
class RegistrationResult:
    allocation: Allocation
    is_existing: bool


def is_test_user(user: EligibleUser, test_company_name: str) -> bool:
    # Exact, case-sensitive match on the company column.
    return (user.company or "") == test_company_name


def find_eligible_user(db: Session, email: str) -> EligibleUser | None:
    return db.query(EligibleUser).filter(EligibleUser.email == normalize_email(email)).first()


def register_attendee(db: Session, *, name: str, email: str, test_company_name: str) -> RegistrationResult:
    """Resolve an attendee by email and hand out their credit.

    Already-claimed users get their existing credit back. Raises NotEligible,
    NotApproved, or lets PoolExhausted from the allocation propagate.
    """
    normalized = normalize_email(email)
    logger.info("register.attempt email=%s", normalized)

    user = find_eligible_user(db, normalized)
    if user is None:
        db.rollback()
        logger.info("register.not_eligible email=%s", normalized)
        raise NotEligible(normalized)

    if not user.is_approved:
        status = user.approval_status
        db.rollback()
        logger.info("register.not_approved email=%s status=%s", normalized, status)
        raise NotApproved(normalized, status)

    if user.claimed and user.credit is not None:
        logger.info("register.existing email=%s code=%s", normalized, user.credit.code)
        result = RegistrationResult(allocation=snapshot(user, user.credit), is_existing=True)
        db.rollback()
        return result

    test = is_test_user(user, test_company_name)
    try:
        allocation = claim_credit(db, user.id, test=test, name=name)
    except AlreadyClaimed as exc:
        # A concurrent request for the same attendee won the race.
        if exc.allocation is None:
            raise
        logger.info("register.existing email=%s code=%s", normalized, exc.allocation.code)
        return RegistrationResult(allocation=exc.allocation, is_existing=True)

    logger.info("register.claimed email=%s code=%s test=%s", normalized, allocation.code, allocation.test)
    return RegistrationResult(allocation=allocation, is_existing=False)
