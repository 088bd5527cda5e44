"""Pydantic schemas for request/response validation"""
from app.schemas.auth_schemas import (
    RegisterRequest,
    OTPVerifyRequest,
    LoginRequest,
    MessageResponse,
    RegisterResponse,
    UserSummary,
    LoginResponse,
    RefreshResponse,
    TokenData,
)

__all__ = [
    "RegisterRequest",
    "OTPVerifyRequest",
    "LoginRequest",
    "MessageResponse",
    "RegisterResponse",
    "UserSummary",
    "LoginResponse",
    "RefreshResponse",
    "TokenData",
]
