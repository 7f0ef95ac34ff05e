"""
Authentication service focused on registration, login and access-token checks.
"""

from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from ...core.config import Settings
from ...core.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidTokenPurposeError,
    NotFoundError,
    ValidationError,
)
from ...core.security import PasswordHasher, validate_password_strength
from ...interfaces.repository_interface import IUserRepository
from ...models.user import User
from ...schemas.auth_schemas import AuthResult, RegistrationRequest, UserResponse
from .helpers import require_parameters
from .token_service import TokenService

logger = structlog.get_logger()


def _fields_from_pydantic(error: PydanticValidationError) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for item in error.errors():
        field = str(item["loc"][0]) if item.get("loc") else "__root__"
        fields.setdefault(field, []).append(item.get("msg", "Invalid value"))
    return fields


class AuthenticationService:
    """Service responsible for user authentication operations."""

    def __init__(
        self,
        user_repository: IUserRepository,
        password_hasher: PasswordHasher,
        token_service: TokenService,
        settings: Settings,
    ):
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.token_service = token_service
        self.settings = settings

    async def register(
        self,
        username: Optional[str],
        password: Optional[str],
        full_name: Optional[str],
        email: Optional[str],
    ) -> AuthResult:
        """
        Create an unverified account and log it in.

        Raises:
            ValidationError: One or more fields are absent or malformed
            ConflictError: The username is taken
        """
        fields: Dict[str, List[str]] = {}
        request = None
        try:
            request = RegistrationRequest(
                username=username,
                password=password,
                full_name=full_name,
                email=email,
            )
        except PydanticValidationError as e:
            fields = _fields_from_pydantic(e)

        if isinstance(password, str) and password and "password" not in fields:
            is_valid, errors = validate_password_strength(password, self.settings)
            if not is_valid:
                fields["password"] = errors

        if fields or request is None:
            logger.info("Registration rejected", invalid_fields=sorted(fields))
            raise ValidationError(fields)

        if await self.user_repository.find_by_username(request.username):
            raise ConflictError()

        user = User(
            username=request.username,
            email=str(request.email),
            full_name=request.full_name,
            password_hash=self.password_hasher.hash(request.password),
            verified=False,
        )
        created = await self.user_repository.create(user)
        access_token = self.token_service.issue_access(created.username)

        logger.info("User registered", username=created.username)
        return AuthResult(user=UserResponse.from_user(created), access_token=access_token)

    async def login(self, username: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Check credentials and issue an access token.

        Raises:
            MissingParametersError: username or password absent
            NotFoundError: No such username
            InvalidCredentialsError: Password does not match
        """
        require_parameters(username=username, password=password)

        user = await self.user_repository.find_by_username(username)
        if not user:
            logger.info("Login failed", reason="user_not_found")
            raise NotFoundError()

        if not self.password_hasher.verify(password, user.password_hash):
            logger.info("Login failed", reason="invalid_password", username=username)
            raise InvalidCredentialsError()

        access_token = self.token_service.issue_access(user.username)
        logger.info("User authenticated successfully", username=user.username)
        return AuthResult(user=UserResponse.from_user(user), access_token=access_token)

    async def authenticate(self, token: Optional[str]) -> User:
        """
        Resolve the user behind an access token.

        Verification tokens are refused here, the mirror image of the check in
        the confirmation flow.
        """
        if not token:
            raise InvalidTokenError("authentication required")

        claims = self.token_service.verify(token)
        if claims.verify:
            raise InvalidTokenPurposeError()

        user = await self.user_repository.find_by_username(claims.username)
        if not user:
            raise NotFoundError()
        return user
