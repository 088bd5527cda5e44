"""Authentication service with password hashing, JWT and credential lookups"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid
from passlib.context import CryptContext
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from app.models.user import User
from app.schemas.auth_schemas import TokenData, UserSummary
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)


def normalize_email(email: Optional[str]) -> str:
    """Trim and lower-case an email; ``None`` becomes an empty string"""
    return str(email).strip().lower() if email else ""


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed session token for *user_id*

    Each token carries a random ``jti`` so two tokens issued within the same
    second are still distinct values.
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a session token; ``None`` when invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"JWT decode error: {str(e)}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return TokenData(user_id=user_id, expires_at=payload.get("exp"))


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an ``Authorization`` header value

    Accepts ``Bearer <token>`` as well as the bare token.
    """
    if not authorization or not authorization.strip():
        return None
    value = authorization.strip()
    if value.lower().startswith("bearer "):
        value = value[7:].strip()
    return value or None


def is_admin_email(email: str) -> bool:
    """True when ADMIN_EMAIL is configured and matches *email*"""
    return bool(settings.ADMIN_EMAIL) and normalize_email(email) == settings.ADMIN_EMAIL


def summarize_user(user: User) -> UserSummary:
    """Public view of a user as returned on login"""
    return UserSummary(
        name=user.name,
        lastname=user.lastname,
        email=user.email,
        is_admin=is_admin_email(user.email),
    )


# ── Credential store ──────────────────────────────────────────────────────────

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Get user by (normalized) email
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    """
    Get user by ID
    """
    if not user_id:
        return None
    return db.get(User, str(user_id))


def save_user(db: Session, user: User) -> User:
    """Persist pending changes on *user* (insert if new)"""
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Remove *user* permanently"""
    db.delete(user)
    db.commit()
