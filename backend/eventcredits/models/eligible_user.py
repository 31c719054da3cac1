import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from eventcredits.core.database import Base
from eventcredits.models.credit import utcnow


class ApprovalStatus(str, enum.Enum):
    APPROVED = "approved"
    PENDING_APPROVAL = "pending_approval"
    DECLINED = "declined"
    WAITLIST = "waitlist"
    INVITED = "invited"


def parse_approval_status(raw: object) -> ApprovalStatus | None:
    value = str(raw or "").strip().lower().replace("-", "_").replace(" ", "_")
    if value == "pending":
        value = ApprovalStatus.PENDING_APPROVAL.value
    try:
        return ApprovalStatus(value)
    except ValueError:
        return None


def normalize_email(value: object) -> str:
    return str(value or "").strip().lower()


class EligibleUser(Base):
    __tablename__ = "eligible_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    company = Column(String, nullable=True)
    role = Column(String, nullable=True)
    approval_status = Column(String, default=ApprovalStatus.APPROVED.value, nullable=False, index=True)
    claimed = Column(Boolean, default=False, nullable=False, index=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    credit_id = Column(Integer, ForeignKey("credits.id"), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    credit = relationship("Credit", back_populates="holder")

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED.value

    def to_dict(self, include_credit: bool = True) -> dict:
        out = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "company": self.company,
            "role": self.role,
            "approvalStatus": self.approval_status,
            "hasClaimed": bool(self.claimed),
            "claimedAt": self.claimed_at.isoformat() if self.claimed_at else None,
        }
        if include_credit:
            out["credit"] = self.credit.to_dict() if self.credit is not None else None
        return out
