"""One-time code generation and expiry rules"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.core.config import settings

# (recipient_email, otp_code) -> None; raises on delivery failure
MailDispatcher = Callable[[str, str], None]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in ``users.otp_expires``."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_otp(length: Optional[int] = None) -> str:
    """Return a random numeric OTP without a leading zero (100000-999999 for 6 digits)."""
    length = length or settings.OTP_LENGTH
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def otp_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A missing expiry counts as expired."""
    if expires_at is None:
        return True
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    return expires_at < (now or utcnow())
