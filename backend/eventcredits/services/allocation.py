from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from eventcredits.models.credit import Credit, utcnow
from eventcredits.models.eligible_user import EligibleUser


logger = logging.getLogger(__name__)


class AllocationError(RuntimeError):
    pass


class UserNotFound(AllocationError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Eligible user {user_id} not found")


class AlreadyClaimed(AllocationError):
    def __init__(self, user_id: int, allocation: Allocation | None) -> None:
        self.user_id = user_id
        self.allocation = allocation
        super().__init__(f"Eligible user {user_id} already claimed a credit")


class PoolExhausted(AllocationError):
    def __init__(self, test: bool) -> None:
        self.test = test
        super().__init__(f"No {'test' if test else 'real'} credits available")


class NothingToRevoke(AllocationError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Eligible user {user_id} has no credit assigned")


@dataclass(frozen=True)
class Allocation:
    user_id: int
    email: str
    name: str
    company: str | None
    credit_id: int
    code: str
    link: str
    test: bool
    claimed_at: datetime | None


def snapshot(user: EligibleUser, credit: Credit) -> Allocation:
    return Allocation(
        user_id=user.id,
        email=user.email,
        name=user.name,
        company=user.company,
        credit_id=credit.id,
        code=credit.code,
        link=credit.link,
        test=bool(credit.test),
        claimed_at=user.claimed_at,
    )


def _existing_allocation(user: EligibleUser) -> Allocation | None:
    if not user.claimed or user.credit is None:
        return None
    return snapshot(user, user.credit)


def _reserve_credit(db: Session, *, test: bool, now: datetime) -> Credit | None:
    while True:
        candidate = (
            db.execute(
                select(Credit)
                .where(Credit.used.is_(False), Credit.test.is_(test))
                .order_by(Credit.created_at.asc(), Credit.id.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            .scalars()
            .first()
        )
        if candidate is None:
            return None
        result = db.execute(
            update(Credit)
            .where(Credit.id == candidate.id, Credit.used.is_(False))
            .values(used=True, assigned_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return candidate
        # Lost the row to a concurrent claim; the next candidate is still fair game.
        logger.info("allocation.reserve.conflict credit_id=%s", candidate.id)


def claim_credit(
    db: Session,
    user_id: int,
    *,
    test: bool,
    name: str | None = None,
    now: datetime | None = None,
) -> Allocation:
    """Bind one unclaimed user to the oldest unused credit of the requested pool.

    Everything happens inside a single transaction: the credit row is flipped to
    used with a compare-and-set update, then the user row is flipped to claimed
    the same way. Either both writes commit or neither does.

    Raises UserNotFound, AlreadyClaimed (carrying the existing credit, if any)
    or PoolExhausted. No rows change when an exception is raised.
    """
    now = now or utcnow()
    test = bool(test)
    try:
        user = db.get(EligibleUser, user_id)
        if user is None:
            raise UserNotFound(user_id)
        if user.claimed:
            raise AlreadyClaimed(user_id, _existing_allocation(user))

        credit = _reserve_credit(db, test=test, now=now)
        if credit is None:
            raise PoolExhausted(test)

        values: dict = {"claimed": True, "claimed_at": now, "credit_id": credit.id}
        display_name = (name or "").strip()
        if display_name:
            values["name"] = display_name
        result = db.execute(
            update(EligibleUser)
            .where(EligibleUser.id == user_id, EligibleUser.claimed.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            user = db.get(EligibleUser, user_id)
            raise AlreadyClaimed(user_id, _existing_allocation(user) if user is not None else None)

        allocation = Allocation(
            user_id=user.id,
            email=user.email,
            name=display_name or user.name,
            company=user.company,
            credit_id=credit.id,
            code=credit.code,
            link=credit.link,
            test=test,
            claimed_at=now,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "allocation.claim.ok user_id=%s credit_id=%s code=%s test=%s",
        allocation.user_id,
        allocation.credit_id,
        allocation.code,
        allocation.test,
    )
    return allocation


def revoke_credit(db: Session, user_id: int) -> Allocation | None:
    """Return a user's credit to its pool and clear the user's claim."""
    try:
        user = db.get(EligibleUser, user_id)
        if user is None:
            raise UserNotFound(user_id)
        if not user.claimed or user.credit_id is None:
            raise NothingToRevoke(user_id)

        credit_id = user.credit_id
        released = _existing_allocation(user)

        result = db.execute(
            update(EligibleUser)
            .where(
                EligibleUser.id == user_id,
                EligibleUser.claimed.is_(True),
                EligibleUser.credit_id == credit_id,
            )
            .values(claimed=False, claimed_at=None, credit_id=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NothingToRevoke(user_id)
        db.execute(
            update(Credit)
            .where(Credit.id == credit_id)
            .values(used=False, assigned_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("allocation.revoke.ok user_id=%s credit_id=%s", user_id, credit_id)
    return released
