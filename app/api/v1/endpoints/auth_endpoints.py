"""Authentication endpoints: OTP registration, login and token refresh"""
from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session
from typing import Optional

from app.core.dependencies import get_db, get_mail_dispatcher
from app.services.auth_service import summarize_user
from app.services.otp_service import MailDispatcher
from app.services import registration_service, session_service
from app.schemas.auth_schemas import (
    RegisterRequest,
    RegisterResponse,
    OTPVerifyRequest,
    MessageResponse,
    LoginRequest,
    LoginResponse,
    RefreshResponse,
    UserSummary,
)
from app.middleware.auth import get_current_user
from app.models.user import User
from app.errors.response_codes import SuccessMessage

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    send_otp: MailDispatcher = Depends(get_mail_dispatcher),
):
    """
    ## Register an account (Step 1 of 2)

    **Role:** Public.

    Creates a pending (unverified) account, or refreshes the pending one for
    the same email, and emails a 6-digit OTP valid for 10 minutes.

    ### Required fields (JSON body)
    | Field    | Type   | Description                    |
    |----------|--------|--------------------------------|
    | name     | string | First name                     |
    | lastname | string | Last name                      |
    | email    | string | OTP is sent here               |
    | password | string | Account password               |

    ### Response
    `{ "success": true, "message": "OTP sent to your email.", "userId": "<id>" }`

    ### Errors
    - HTTP 400 → missing fields, invalid email, or "Email already exists".
    - HTTP 500 → OTP could not be sent; nothing was kept, try again.
    """
    result = registration_service.register_user(
        db,
        name=body.name,
        lastname=body.lastname,
        email=body.email,
        password=body.password,
        send_otp=send_otp,
    )
    return RegisterResponse(message=SuccessMessage.OTP_SENT, user_id=result.user_id)


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(body: OTPVerifyRequest, db: Session = Depends(get_db)):
    """
    ## Verify OTP (Step 2 of 2)

    **Role:** Public.

    ### Required fields (JSON body)
    | Field  | Type   | Description                        |
    |--------|--------|------------------------------------|
    | userId | string | `userId` returned by `/register`   |
    | otp    | string | Code from the verification email   |

    ### Errors
    - HTTP 400 → "Invalid OTP", or "OTP expired" (the pending account is
      removed; register again).
    - HTTP 404 → unknown `userId`.
    """
    registration_service.verify_otp(db, body.user_id, body.otp)
    return MessageResponse(message=SuccessMessage.ACCOUNT_VERIFIED)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """
    ## Login with email and password

    **Role:** Public.

    ### Response
    ```json
    { "success": true, "token": "<JWT>",
      "user": { "name": "...", "lastname": "...", "email": "...", "isAdmin": false } }
    ```

    ### Errors
    - HTTP 404 → no account for this email.
    - HTTP 401 → email not verified yet, or incorrect password.
    """
    result = session_service.login(db, body.email, body.password)
    return LoginResponse(message=SuccessMessage.LOGIN_SUCCESS, token=result.token, user=result.user)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """
    ## Renew the session token

    **Auth:** `Authorization: Bearer <token>` (the bare token is accepted too).

    Returns a new 7-day token. The presented token must itself still be
    valid; the old token is not revoked.
    """
    token = session_service.refresh(db, authorization)
    return RefreshResponse(token=token)


@router.get("/me", response_model=UserSummary)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    ## Current user's summary

    **Auth:** `Authorization: Bearer <token>` header required.
    """
    return summarize_user(current_user)
