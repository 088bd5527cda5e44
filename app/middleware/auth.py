"""Authentication dependencies"""
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from typing import Optional

from app.core.dependencies import get_db
from app.services.auth_service import is_admin_email
from app.services.session_service import resolve_token_user
from app.models.user import User
from app.errors.exceptions import ForbiddenException
from app.errors.response_codes import ErrorMessage


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """Get current verified user from the session token"""
    return resolve_token_user(db, authorization, "Could not validate credentials")


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency allowing only the configured admin address"""
    if not is_admin_email(current_user.email):
        raise ForbiddenException(detail=ErrorMessage.ADMIN_ONLY)
    return current_user
