"""User model - credential record with email verification state"""
import uuid

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Registered (or pending) account.

    Lifecycle
    ---------
    1. First registration for an email  → row inserted (is_verified=False, otp set).
    2. Re-registration while unverified → fields refreshed in place, new otp.
    3. Correct OTP before expiry        → is_verified=True, otp cleared.
    4. Correct OTP after expiry         → row deleted, user must register again.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    is_verified = Column(Boolean, default=False, nullable=False)
    otp = Column(String(12), nullable=True)
    otp_expires = Column(DateTime(timezone=False), nullable=True)  # naive UTC

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', is_verified={self.is_verified})>"
