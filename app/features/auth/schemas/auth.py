from pydantic import BaseModel, Field, field_validator, field_serializer
from datetime import datetime
from typing import List, Optional


def _required(v: str, field_name: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{field_name} is required")
    return v


class UsernameRequest(BaseModel):
    username: str = Field(..., max_length=100, description="Account username")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _required(v, "Username")


class RegisterRequest(UsernameRequest):
    phone: str = Field(
        ..., max_length=20, description="Phone number, international (+...) or national form"
    )

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _required(v, "Phone number")


class CodeRequest(UsernameRequest):
    code: str = Field(..., max_length=10, description="Code received by SMS")

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _required(v, "Code")


class AccountResponse(BaseModel):
    id: str
    username: str
    phone: str
    phone_verified: bool
    active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @field_serializer("created_at", "last_login_at")
    def serialize_datetime(self, value, _info):
        """Convert datetime to ISO format string"""
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    class Config:
        from_attributes = True


class AuthTokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    account: AccountResponse


class LoginAttemptResponse(BaseModel):
    attempted_at: datetime
    succeeded: bool
    phone: Optional[str] = None
    source_address: Optional[str] = None

    @field_serializer("attempted_at")
    def serialize_datetime(self, value, _info):
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    class Config:
        from_attributes = True


class AccountListResponse(BaseModel):
    accounts: List[AccountResponse]
    total: int
