"""Login and session-token renewal

One signed token serves both as the session credential and as the credential
that renews it, so renewal is only possible while the presented token is still
valid. Older tokens are never revoked; they lapse at their own expiry.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.errors.exceptions import (
    InvalidCredentialsException,
    NotFoundException,
    NotVerifiedException,
    UnauthenticatedException,
    ValidationException,
)
from app.errors.response_codes import ErrorMessage
from app.models.user import User
from app.schemas.auth_schemas import UserSummary
from app.services.auth_service import (
    create_access_token,
    decode_access_token,
    extract_token,
    get_user_by_email,
    get_user_by_id,
    normalize_email,
    summarize_user,
    verify_password,
)
from app.utils.logger import log_auth_event


@dataclass
class LoginResult:
    token: str
    user: UserSummary


def login(db: Session, email: Optional[str], password: Optional[str]) -> LoginResult:
    """Check credentials of a verified account and issue a session token."""
    email = normalize_email(email)
    if not email or not password:
        raise ValidationException(detail=ErrorMessage.LOGIN_FIELDS_REQUIRED)

    user = get_user_by_email(db, email)
    if user is None:
        raise NotFoundException(detail=ErrorMessage.USER_NOT_FOUND)

    if not user.is_verified:
        log_auth_event("Login refused: email not verified", user.id, user.email, level=logging.WARNING)
        raise NotVerifiedException()

    if not verify_password(password, user.password_hash):
        log_auth_event("Login refused: wrong password", user.id, user.email, level=logging.WARNING)
        raise InvalidCredentialsException()

    log_auth_event("Login", user.id, user.email)
    return LoginResult(token=create_access_token(user.id), user=summarize_user(user))


def resolve_token_user(db: Session, authorization: Optional[str], failure_detail: str) -> User:
    """
    Map an Authorization header to a verified user or raise UnauthenticatedException

    *failure_detail* is the message used when the token itself is unusable.
    """
    token = extract_token(authorization)
    if token is None:
        raise UnauthenticatedException(detail=ErrorMessage.NO_TOKEN)

    token_data = decode_access_token(token)
    if token_data is None:
        raise UnauthenticatedException(detail=failure_detail)

    user = get_user_by_id(db, token_data.user_id)
    if user is None or not user.is_verified:
        raise UnauthenticatedException(detail=ErrorMessage.USER_NOT_VERIFIED_OR_MISSING)
    return user


def refresh(db: Session, authorization: Optional[str]) -> str:
    """Issue a new token with a fresh validity window for a still-valid one."""
    try:
        user = resolve_token_user(db, authorization, UnauthenticatedException.detail)
    except UnauthenticatedException as exc:
        log_auth_event("Token refresh failed", level=logging.WARNING, error=exc.detail)
        raise

    return create_access_token(user.id)
