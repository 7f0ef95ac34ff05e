"""
Authentication endpoints.
Implements register, login, email verification and password reset on top of
AuthService. Classified failures are turned into responses by the handler
installed in ``main.create_app``.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from ..core.config import Settings
from ..models.user import User
from ..schemas.auth_schemas import (
    ApiResponse,
    ErrorResponse,
    LoginBody,
    RegisterBody,
    ResetPasswordBody,
)
from ..services.auth_service import AuthService
from .deps import get_app_settings, get_auth_service, get_current_user

router = APIRouter(prefix="/auth", tags=["authentication"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}
CODE_STORE_RESPONSES = {**ERROR_RESPONSES, 503: {"model": ErrorResponse}}


def _set_token_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
)
async def register(
    body: RegisterBody,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create an account.

    - **username**, **password**, **fullName**, **email**

    Returns the new user (without password) and an access token, which is
    also set as an httpOnly cookie.
    """
    result = await auth_service.register(body.username, body.password, body.full_name, body.email)
    _set_token_cookie(response, result.access_token, settings)
    return ApiResponse(data=result.model_dump(mode="json"))


@router.post("/login", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def login(
    body: LoginBody,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    result = await auth_service.login(body.username, body.password)
    _set_token_cookie(response, result.access_token, settings)
    return ApiResponse(data=result.model_dump(mode="json"))


@router.get("/verify/send", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def send_verification_mail(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Mail a verification link to the authenticated user."""
    await auth_service.send_verification_mail(current_user)
    return ApiResponse(data="send mail success")


@router.get("/verify", response_model=ApiResponse, responses=ERROR_RESPONSES)
async def verify(
    response: Response,
    token: Optional[str] = None,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Target of the emailed link; marks the account verified."""
    access_token = await auth_service.confirm_verification(token)
    _set_token_cookie(response, access_token, settings)
    return ApiResponse(data={"token": access_token})


@router.get("/forgot", response_model=ApiResponse, responses=CODE_STORE_RESPONSES)
async def send_forgot_code(
    username: Optional[str] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.send_forgot_code(username)
    return ApiResponse(data="send mail success")


@router.post("/reset", response_model=ApiResponse, responses=CODE_STORE_RESPONSES)
async def reset_password(
    body: ResetPasswordBody,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Set a new password using the emailed code.

    - **username**, **newPassword**, **forgotCode**
    """
    await auth_service.reset_password(body.username, body.new_password, body.forgot_code)
    return ApiResponse(data="reset password success")
