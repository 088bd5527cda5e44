"""Custom exceptions for error handling"""
from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """Base exception class for all custom HTTP exceptions"""
    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=headers
        )


class BadRequestException(BaseHTTPException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class UnauthorizedException(BaseHTTPException):
    """401 Unauthorized"""
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"

    def __init__(self, detail: str = None):
        super().__init__(
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenException(BaseHTTPException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden: Insufficient permissions"


class NotFoundException(BaseHTTPException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"


class InternalServerException(BaseHTTPException):
    """500 Internal Server Error"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"


# ── Registration / verification ──────────────────────────────────────────────

class ValidationException(BadRequestException):
    """Missing or malformed input"""
    detail = "Validation error"


class DuplicateEmailException(BadRequestException):
    """Email belongs to an already verified account"""
    detail = "Email already exists"


class InvalidCodeException(BadRequestException):
    """Supplied OTP does not match the pending one"""
    detail = "Invalid OTP"


class OTPExpiredException(BadRequestException):
    """Pending OTP is past its expiry; the record has been removed"""
    detail = "OTP expired"


class NotificationDeliveryException(InternalServerException):
    """OTP email could not be delivered; registration was rolled back"""
    detail = "Could not send OTP. Please try again later."

    def __init__(self, detail: str = None, auth_failure: bool = False):
        super().__init__(detail=detail)
        self.auth_failure = auth_failure


# ── Session ──────────────────────────────────────────────────────────────────

class InvalidCredentialsException(UnauthorizedException):
    """Password did not match"""
    detail = "Incorrect password"


class NotVerifiedException(UnauthorizedException):
    """Account exists but the email was never confirmed"""
    detail = "Please verify your email first"


class UnauthenticatedException(UnauthorizedException):
    """Missing, invalid or expired session token"""
    detail = "Token refresh failed"
