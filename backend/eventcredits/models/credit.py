from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from eventcredits.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Credit(Base):
    __tablename__ = "credits"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    link = Column(String, nullable=False)
    used = Column(Boolean, default=False, nullable=False, index=True)
    test = Column(Boolean, default=False, nullable=False, index=True)
    # Python-side default keeps sub-second ordering for FIFO allocation.
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    holder = relationship("EligibleUser", back_populates="credit", uselist=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "link": self.link,
            "isUsed": bool(self.used),
            "isTest": bool(self.test),
            "assignedAt": self.assigned_at.isoformat() if self.assigned_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
