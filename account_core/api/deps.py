"""
Dependency injection for FastAPI endpoints.
Resolves the service graph stored on the application and the current user.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..container import Container
from ..core.config import Settings
from ..models.user import User
from ..services.auth_service import AuthService

security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_app_settings(container: Container = Depends(get_container)) -> Settings:
    return container.settings


def get_auth_service(container: Container = Depends(get_container)) -> AuthService:
    return container.auth_service


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """
    Get current authenticated user from a Bearer header or the token cookie.

    Raises:
        AuthError: Propagated to the application's error handler
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.COOKIE_NAME)
    return await auth_service.authenticate(token)
