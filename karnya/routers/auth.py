from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from karnya.core.auth import get_current_identity
from karnya.core.db import get_db
from karnya.core.security import Identity, TokenService, get_token_service
from karnya.schemas.auth import (
    AccountOut,
    AuthOut,
    EmailIn,
    LoginIn,
    ProfileIn,
    RegisterIn,
    ResetPasswordIn,
    VerifiedOut,
    VerifyEmailIn,
)
from karnya.schemas.common import MessageOut
from karnya.services.accounts import AccountLifecycle, AccountStore
from karnya.services.mailer import Mailer, get_mailer

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_lifecycle(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
) -> AccountLifecycle:
    return AccountLifecycle(AccountStore(db), tokens, mailer)


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, lifecycle: AccountLifecycle = Depends(get_lifecycle)):
    account, token = lifecycle.register(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=str(payload.email),
        password=payload.password,
        user_type=payload.user_type.value,
        phone=payload.phone,
    )
    return {"success": True, "token": token, "user": account}


@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, lifecycle: AccountLifecycle = Depends(get_lifecycle)):
    account, token = lifecycle.login(str(payload.email), payload.password)
    return {"success": True, "token": token, "user": account}


@router.get("/me", response_model=AccountOut)
def me(
    identity: Identity = Depends(get_current_identity),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
):
    return lifecycle.me(identity)


@router.put("/me", response_model=AccountOut)
def update_me(
    payload: ProfileIn,
    identity: Identity = Depends(get_current_identity),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
):
    return lifecycle.update_profile(identity, payload.model_dump(exclude_unset=True))


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(payload: EmailIn, lifecycle: AccountLifecycle = Depends(get_lifecycle)):
    lifecycle.request_password_reset(str(payload.email))
    return {"message": "Password reset email sent"}


@router.put("/reset-password/{token}", response_model=MessageOut)
def reset_password(
    payload: ResetPasswordIn,
    token: str = Path(..., min_length=1),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
):
    lifecycle.reset_password(token, payload.password)
    return {"message": "Password reset successful"}


@router.post("/verify-email", response_model=VerifiedOut)
def verify_email(payload: VerifyEmailIn, lifecycle: AccountLifecycle = Depends(get_lifecycle)):
    account = lifecycle.verify_email(payload.token)
    return {"message": "Email verified successfully", "user": account}


@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(payload: EmailIn, lifecycle: AccountLifecycle = Depends(get_lifecycle)):
    lifecycle.resend_verification(str(payload.email))
    return {"message": "Verification email sent"}
