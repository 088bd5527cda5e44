"""Authentication request/response schemas

Wire names are camelCase (``userId``, ``isAdmin``) to match the web client.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional


def _coerce_to_str(value: Any) -> Any:
    """Numbers typed into a form arrive as JSON numbers; treat them as text"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class RegisterRequest(BaseModel):
    """Registration form. Presence is checked by the service after trimming."""
    name: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class OTPVerifyRequest(BaseModel):
    """OTP confirmation for a pending registration"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    otp: Optional[str] = None

    @field_validator("user_id", "otp", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _coerce_to_str(v)


class LoginRequest(BaseModel):
    """Schema for login request"""
    email: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    """Plain success envelope"""
    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    """Pending registration created; OTP dispatched"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class UserSummary(BaseModel):
    """Public user details returned on login"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    lastname: str
    email: str
    is_admin: bool = Field(False, alias="isAdmin")


class LoginResponse(MessageResponse):
    """Token response schema"""
    token: str
    user: UserSummary


class RefreshResponse(BaseModel):
    """Renewed session token"""
    success: bool = True
    token: str


class TokenData(BaseModel):
    """Token data schema for JWT payload"""
    user_id: str
    expires_at: Optional[int] = None
