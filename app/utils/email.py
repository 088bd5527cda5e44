"""Email utility: sends transactional emails via SMTP.

Transports are tried in order (implicit TLS first, then STARTTLS); the first
one that connects, authenticates and accepts the message wins.
"""
from __future__ import annotations

import logging
import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)

_AUTH_ERROR_PATTERN = re.compile(r"Invalid login|BadCredentials|Invalid user|EAUTH|\b535\b")


class MailDeliveryError(Exception):
    """Raised when no transport could deliver a message"""

    def __init__(self, message: str, auth_failure: bool = False):
        super().__init__(message)
        self.auth_failure = auth_failure


def looks_like_auth_failure(exc: BaseException) -> bool:
    """True for errors that point at bad or missing mail credentials"""
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return True
    if isinstance(exc, MailDeliveryError):
        return exc.auth_failure
    return bool(_AUTH_ERROR_PATTERN.search(str(exc)))


def _transports() -> List[Tuple[str, int]]:
    return [
        ("ssl", settings.SMTP_SSL_PORT),
        ("starttls", settings.SMTP_STARTTLS_PORT),
    ]


def _build_smtp_connection(kind: str, port: int) -> smtplib.SMTP:
    """Open an authenticated SMTP connection for one transport."""
    if kind == "ssl":
        conn = smtplib.SMTP_SSL(settings.SMTP_HOST, port, timeout=settings.SMTP_TIMEOUT)
    else:
        conn = smtplib.SMTP(settings.SMTP_HOST, port, timeout=settings.SMTP_TIMEOUT)
    try:
        conn.ehlo()
        if kind == "starttls":
            conn.starttls()
            conn.ehlo()
        conn.login(settings.MAIL_USER, settings.MAIL_PASS)
    except Exception:
        conn.close()
        raise
    return conn


def _require_credentials() -> None:
    if not settings.MAIL_USER or not settings.MAIL_PASS:
        raise MailDeliveryError("MAIL_USER / MAIL_PASS are not configured", auth_failure=True)


def send_email(to: str, subject: str, html_body: str, plain_body: str = "") -> None:
    """
    Send a transactional email, raising MailDeliveryError if every transport fails.
    """
    _require_credentials()

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f'"{settings.MAIL_FROM_NAME}" <{settings.MAIL_USER}>'
    msg["To"] = to
    if plain_body:
        msg.attach(MIMEText(plain_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    last_error: Optional[Exception] = None
    for kind, port in _transports():
        try:
            with _build_smtp_connection(kind, port) as conn:
                conn.sendmail(settings.MAIL_USER, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            last_error = exc
            logger.warning(f"[Email] Transport {kind}:{port} failed for '{subject}' to {to}: {exc}")
            continue

        logger.info(f"[Email] Sent '{subject}' -> {to} via {kind}:{port}")
        return

    logger.error(f"[Email] All mail transports failed for {to}: {last_error}")
    raise MailDeliveryError(
        str(last_error) or "Failed to send email",
        auth_failure=last_error is not None and looks_like_auth_failure(last_error),
    )


def send_otp_email(to: str, otp: str) -> None:
    """Send the registration OTP. Raises on delivery failure."""
    subject = "Your OTP Verification Code"
    html_body = f"""
<h2>Your OTP Code</h2>
<p>Your verification code is: <b>{otp}</b></p>
<p>OTP is valid for {settings.OTP_EXPIRE_MINUTES} minutes.</p>
"""
    plain_body = f"Your verification code is: {otp}\n\nOTP is valid for {settings.OTP_EXPIRE_MINUTES} minutes."
    send_email(to, subject, html_body, plain_body)


def verify_transporter() -> dict:
    """Check that the primary transport accepts our credentials."""
    kind, port = _transports()[0]
    try:
        _require_credentials()
        conn = _build_smtp_connection(kind, port)
        conn.quit()
    except (MailDeliveryError, smtplib.SMTPException, OSError) as exc:
        return {"ok": False, "error": str(exc)}
    return {"ok": True, "error": None}
