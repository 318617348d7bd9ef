"""
Authentication endpoints for API v1.

Registration and login return the public user record together with a
bearer token.  Both are rate limited per client address.  Email
verification and password reset use single-use tokens delivered by
email.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from socialtend_api.app.core.rate_limit import auth_rate_limit
from socialtend_api.app.core.security import create_user_token, get_current_user
from socialtend_api.app.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    RoleSwitch,
    UserCreate,
    UserLogin,
    UserRead,
)
from socialtend_api.app.services.user_service import UserService

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
async def register(user: UserCreate) -> AuthResponse:
    """Create an account and sign it in.

    A verification email is sent to the address; the account can be
    used before it is verified.
    """
    try:
        created = await UserService.create_user(user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return AuthResponse(user=created, token=create_user_token(created))


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(auth_rate_limit)])
async def login(credentials: UserLogin) -> AuthResponse:
    user = await UserService.authenticate(credentials.email, credentials.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return AuthResponse(user=user, token=create_user_token(user))


@router.get("/me", response_model=UserRead)
async def me(current_user: dict = Depends(get_current_user)) -> UserRead:
    user = await UserService.get_user_by_id(current_user["user_id"])
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/switch-role", response_model=AuthResponse)
async def switch_role(payload: RoleSwitch, current_user: dict = Depends(get_current_user)) -> AuthResponse:
    """Switch between the organizer and professional side.

    Returns a fresh token carrying the new role.
    """
    user = await UserService.switch_role(current_user["user_id"], payload.role)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return AuthResponse(user=user, token=create_user_token(user))


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(token: str = Query(..., min_length=1, description="Token from the verification email")) -> MessageResponse:
    try:
        await UserService.verify_email(token)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return MessageResponse(message="Email verified successfully!")


@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(auth_rate_limit)])
async def forgot_password(payload: ForgotPasswordRequest) -> MessageResponse:
    """Email a password reset link.

    The response is identical whether or not the account exists.
    """
    await UserService.request_password_reset(payload.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest) -> MessageResponse:
    try:
        await UserService.reset_password(payload.token, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return MessageResponse(message="Password reset successfully!")
