from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import ApprovalStatus, EligibleUser


def _count_credits(db: Session, *criteria) -> int:
    return int(db.query(func.count(Credit.id)).filter(*criteria).scalar() or 0)


def _count_users(db: Session, *criteria) -> int:
    return int(db.query(func.count(EligibleUser.id)).filter(*criteria).scalar() or 0)


def public_stats(db: Session) -> dict:
    remaining = _count_credits(db, Credit.used.is_(False), Credit.test.is_(False))
    total_eligible = _count_users(db, EligibleUser.approval_status == ApprovalStatus.APPROVED.value)
    claimed = _count_users(db, EligibleUser.claimed.is_(True))
    return {
        "available": remaining > 0,
        "remaining": remaining,
        "stats": {
            "totalEligible": total_eligible,
            "claimed": claimed,
            "pending": max(0, total_eligible - claimed),
        },
    }


def dashboard_stats(db: Session) -> dict:
    total_credits = _count_credits(db)
    used_credits = _count_credits(db, Credit.used.is_(True))
    test_credits = _count_credits(db, Credit.test.is_(True))
    return {
        "totalCredits": total_credits,
        "usedCredits": used_credits,
        "availableCredits": _count_credits(db, Credit.used.is_(False), Credit.test.is_(False)),
        "testCredits": test_credits,
        "realCredits": total_credits - test_credits,
        "totalEligible": _count_users(db),
        "claimedUsers": _count_users(db, EligibleUser.claimed.is_(True)),
        "approvedUsers": _count_users(db, EligibleUser.approval_status == ApprovalStatus.APPROVED.value),
        "pendingUsers": _count_users(db, EligibleUser.approval_status == ApprovalStatus.PENDING_APPROVAL.value),
    }


def dashboard_snapshot(db: Session) -> dict:
    credits = db.query(Credit).order_by(Credit.created_at.asc(), Credit.id.asc()).all()
    users = (
        db.query(EligibleUser)
        .options(joinedload(EligibleUser.credit))
        .order_by(EligibleUser.created_at.desc(), EligibleUser.id.desc())
        .all()
    )
    return {
        "stats": dashboard_stats(db),
        "credits": [c.to_dict() for c in credits],
        "eligibleUsers": [u.to_dict() for u in users],
    }
