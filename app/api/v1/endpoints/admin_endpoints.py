"""Admin diagnostics"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.middleware.auth import require_admin
from app.models.user import User
from app.utils.email import verify_transporter
from app.errors.response_codes import (
    SuccessMessage,
    ErrorMessage,
    success_response,
    error_response,
)

router = APIRouter()


@router.get("/test-mail")
def test_mail(current_user: User = Depends(require_admin)):
    """
    ## Verify the SMTP transporter

    **Role:** Admin (the `ADMIN_EMAIL` account).

    Connects to the primary mail transport and logs in with the configured
    credentials without sending anything.
    """
    result = verify_transporter()
    if result["ok"]:
        return success_response(SuccessMessage.MAIL_TRANSPORT_OK)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(ErrorMessage.MAIL_TRANSPORT_FAILED, errors={"error": result["error"]}),
    )
