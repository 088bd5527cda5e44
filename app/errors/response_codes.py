"""
Response messages and envelope helpers
Centralized so every endpoint answers with the same ``success``/``message`` shape
"""
from typing import Any, Dict, Optional


class SuccessMessage:
    """Messages for successful operations"""
    OK = "Request processed successfully"
    OTP_SENT = "OTP sent to your email."
    ACCOUNT_VERIFIED = "Account verified successfully!"
    LOGIN_SUCCESS = "Login successful"
    MAIL_TRANSPORT_OK = "Mail transporter verified"


class ErrorMessage:
    """Messages for failures that are not tied to a single exception class"""
    INTERNAL_ERROR = "An unexpected error occurred. Please try again later."
    USER_NOT_FOUND = "User not found"
    OTP_FIELDS_REQUIRED = "User ID and OTP are required"
    LOGIN_FIELDS_REQUIRED = "Email and password are required"
    INVALID_EMAIL = "Invalid email address"
    NO_TOKEN = "No token provided"
    USER_NOT_VERIFIED_OR_MISSING = "User not found or not verified"
    ADMIN_ONLY = "Admin access required"
    MAIL_TRANSPORT_FAILED = "Transporter verification failed"
    SESSION_EXPIRED = "Session expired. Please login again."


def success_response(message: Optional[str] = None, **data: Any) -> Dict[str, Any]:
    """
    Create a standardized success response

    Extra keyword arguments are merged into the envelope as-is.
    """
    response = {"success": True, "message": message or SuccessMessage.OK}
    response.update(data)
    return response


def error_response(
    message: Optional[str] = None,
    errors: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Create a standardized error response
    """
    response = {
        "success": False,
        "message": message or ErrorMessage.INTERNAL_ERROR
    }

    if errors:
        response.update(errors)

    return response
