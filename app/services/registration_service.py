"""Registration workflow: pending account, OTP email, then verified or rolled back.

States
------
NoRecord            -> PendingNew      (row created, OTP sent)
UnverifiedExisting  -> PendingUpdated  (row refreshed in place, OTP sent)
VerifiedExisting    -> Rejected        (DuplicateEmail, nothing touched)
Pending*            -> Verified        (correct code before expiry)
Pending*            -> RolledBack      (OTP email failed; row deleted or restored)
Pending*            -> Deleted         (correct code after expiry)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors.exceptions import (
    DuplicateEmailException,
    InvalidCodeException,
    NotFoundException,
    NotificationDeliveryException,
    OTPExpiredException,
    ValidationException,
)
from app.errors.response_codes import ErrorMessage
from app.models.user import User
from app.services.auth_service import (
    delete_user,
    get_password_hash,
    get_user_by_email,
    get_user_by_id,
    normalize_email,
    save_user,
)
from app.services.otp_service import MailDispatcher, generate_otp, is_expired, otp_expiry
from app.utils.email import looks_like_auth_failure
from app.utils.logger import log_auth_event

logger = logging.getLogger(__name__)


class AttemptKind(str, Enum):
    """Whether a registration attempt created a row or refreshed one"""
    NEW = "new"
    UPDATE = "update"


@dataclass(frozen=True)
class UserSnapshot:
    """Copy of the fields a re-registration overwrites, kept to undo it."""
    name: str
    lastname: str
    password_hash: str
    otp: Optional[str]
    otp_expires: Optional[datetime]

    @classmethod
    def capture(cls, user: User) -> "UserSnapshot":
        return cls(
            name=user.name,
            lastname=user.lastname,
            password_hash=user.password_hash,
            otp=user.otp,
            otp_expires=user.otp_expires,
        )

    def restore(self, user: User) -> None:
        user.name = self.name
        user.lastname = self.lastname
        user.password_hash = self.password_hash
        user.otp = self.otp
        user.otp_expires = self.otp_expires


@dataclass
class RegistrationResult:
    user_id: str
    kind: AttemptKind


def _clean(value: Optional[str]) -> str:
    return str(value).strip() if value is not None else ""


def _require_fields(**fields: str) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationException(detail=f"Missing or empty fields: {', '.join(missing)}")


def _check_email_format(email: str) -> None:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationException(detail=f"{ErrorMessage.INVALID_EMAIL}: {exc}")


def register_user(
    db: Session,
    name: Optional[str],
    lastname: Optional[str],
    email: Optional[str],
    password: Optional[str],
    send_otp: MailDispatcher,
) -> RegistrationResult:
    """
    Create or refresh a pending account and email it a fresh OTP.

    Exactly one email is sent when this returns; none when it raises.
    If the email cannot be sent, the database change made by this attempt is
    undone before NotificationDeliveryException is raised.
    """
    name = _clean(name)
    lastname = _clean(lastname)
    email = normalize_email(email)
    password = password or ""

    _require_fields(name=name, lastname=lastname, email=email, password=password.strip())
    _check_email_format(email)

    user = get_user_by_email(db, email)
    if user is not None and user.is_verified:
        log_auth_event("Registration rejected: email already verified", user.id, email)
        raise DuplicateEmailException()

    otp = generate_otp()
    while user is not None and otp == user.otp:
        otp = generate_otp()
    expires = otp_expiry()
    password_hash = get_password_hash(password)
    snapshot: Optional[UserSnapshot] = None

    if user is None:
        kind = AttemptKind.NEW
        user = User(
            name=name,
            lastname=lastname,
            email=email,
            password_hash=password_hash,
            is_verified=False,
            otp=otp,
            otp_expires=expires,
        )
    else:
        kind = AttemptKind.UPDATE
        snapshot = UserSnapshot.capture(user)
        user.name = name
        user.lastname = lastname
        user.password_hash = password_hash
        user.otp = otp
        user.otp_expires = expires

    user = save_user(db, user)
    user_id = user.id

    try:
        send_otp(email, otp)
    except Exception as exc:
        auth_failure = looks_like_auth_failure(exc)
        if auth_failure:
            log_auth_event(
                "OTP email rejected: mail credentials look misconfigured (check MAIL_USER/MAIL_PASS)",
                user_id, email, level=logging.ERROR, error=str(exc),
            )
        else:
            log_auth_event("OTP email delivery failed", user_id, email, level=logging.ERROR, error=str(exc))
        _roll_back(db, user, kind, snapshot, auth_failure)
        raise NotificationDeliveryException(auth_failure=auth_failure) from exc

    log_auth_event(f"Registration pending ({kind.value}), OTP sent", user_id, email)
    return RegistrationResult(user_id=user_id, kind=kind)


def _roll_back(
    db: Session,
    user: User,
    kind: AttemptKind,
    snapshot: Optional[UserSnapshot],
    auth_failure: bool,
) -> None:
    """Undo this attempt's write: drop a new row, or put the old values back."""
    user_id, email = user.id, user.email
    try:
        if kind is AttemptKind.NEW:
            delete_user(db, user)
        else:
            snapshot.restore(user)
            save_user(db, user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            f"[Register] Rollback of {kind.value} attempt failed for {email}; record left inconsistent",
            exc_info=True,
        )
        raise NotificationDeliveryException(auth_failure=auth_failure) from exc

    log_auth_event(f"Registration rolled back ({kind.value})", user_id, email, level=logging.WARNING)


def verify_otp(db: Session, user_id: Optional[str], otp: Optional[str]) -> User:
    """
    Confirm a pending registration.

    The code is compared before expiry, so an expired record is only removed
    when the caller presents the right code.
    """
    user_id = _clean(user_id)
    code = _clean(otp)
    if not user_id or not code:
        raise ValidationException(detail=ErrorMessage.OTP_FIELDS_REQUIRED)

    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundException(detail=ErrorMessage.USER_NOT_FOUND)

    if user.otp is None or user.otp != code:
        log_auth_event("OTP mismatch", user.id, user.email, level=logging.WARNING)
        raise InvalidCodeException()

    if is_expired(user.otp_expires):
        email = user.email
        delete_user(db, user)
        log_auth_event("OTP expired, pending account deleted", user_id, email, level=logging.WARNING)
        raise OTPExpiredException()

    user.is_verified = True
    user.otp = None
    user.otp_expires = None
    save_user(db, user)

    log_auth_event("Account verified", user.id, user.email)
    return user
