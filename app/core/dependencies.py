"""FastAPI dependencies"""
from typing import Generator
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.services.otp_service import MailDispatcher
from app.utils.email import send_otp_email


def get_db() -> Generator:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_mail_dispatcher() -> MailDispatcher:
    """OTP mail sender; overridden in tests"""
    return send_otp_email
