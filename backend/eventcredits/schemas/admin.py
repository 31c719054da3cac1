from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator


class LoginRequest(BaseModel):
    username: str
    password: str


class AdminActionRequest(BaseModel):
    action: str
    data: Dict[str, Any] = {}

    @field_validator("data", mode="before")
    @classmethod
    def _default_data(cls, value: Any) -> Any:
        return {} if value is None else value


class UserRef(BaseModel):
    userId: Optional[int] = None
    email: Optional[str] = None


class AssignCreditData(UserRef):
    useTestCredit: bool = False


class AddEligibleUserData(BaseModel):
    email: str
    name: str
    company: Optional[str] = None
    role: Optional[str] = None
    approvalStatus: Optional[str] = None


class UpdateUserStatusData(BaseModel):
    userId: int
    approvalStatus: str


class AddCreditData(BaseModel):
    code: str
    link: str
    isTest: bool = False


class DeleteCreditData(BaseModel):
    creditId: int


class SendCreditEmailData(UserRef):
    locale: Any = None
