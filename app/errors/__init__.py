"""Error handling module"""
from app.errors.exceptions import (
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    InternalServerException,
    ValidationException,
    DuplicateEmailException,
    InvalidCodeException,
    OTPExpiredException,
    NotificationDeliveryException,
    InvalidCredentialsException,
    NotVerifiedException,
    UnauthenticatedException,
)
from app.errors.response_codes import (
    SuccessMessage,
    ErrorMessage,
    success_response,
    error_response,
)

__all__ = [
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "InternalServerException",
    "ValidationException",
    "DuplicateEmailException",
    "InvalidCodeException",
    "OTPExpiredException",
    "NotificationDeliveryException",
    "InvalidCredentialsException",
    "NotVerifiedException",
    "UnauthenticatedException",
    "SuccessMessage",
    "ErrorMessage",
    "success_response",
    "error_response",
]
