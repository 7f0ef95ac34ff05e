"""
Pytest configuration and fixtures for account core testing.
Every fixture builds fresh collaborators, so tests never share state.
"""
from unittest.mock import AsyncMock

import fakeredis
import pytest
import pytest_asyncio

from account_core.core.config import Settings
from account_core.core.redis import RedisOneTimeCodeStore
from account_core.core.security import PasswordHasher
from account_core.repositories.user_repository import InMemoryUserRepository
from account_core.services.auth.code_store import InMemoryOneTimeCodeStore
from account_core.services.auth.mail_dispatcher import MailDispatcher
from account_core.services.auth.token_service import TokenService
from account_core.services.auth_service import AuthService
from tests.factories import make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def password_hasher(settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def redis_server():
    """Isolated fake Redis server; clients built on it share its keys."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture(params=["memory", "redis"])
async def code_store(request, settings, redis_server):
    """Every one-time code store; flows using it run once per backend."""
    ttl = settings.FORGOT_CODE_TTL_SECONDS
    if request.param == "memory":
        yield InMemoryOneTimeCodeStore(ttl_seconds=ttl)
        return

    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield RedisOneTimeCodeStore(client, ttl_seconds=ttl)
    await client.aclose()


@pytest.fixture
def mock_mailer():
    """Mailer double recording every send."""
    mock = AsyncMock()
    mock.send.return_value = None
    return mock


@pytest.fixture
def mail_dispatcher(mock_mailer) -> MailDispatcher:
    return MailDispatcher(mock_mailer)


@pytest.fixture
def auth_service(
    settings, user_repository, password_hasher, token_service, code_store, mail_dispatcher
) -> AuthService:
    return AuthService(
        settings=settings,
        user_repository=user_repository,
        password_hasher=password_hasher,
        token_service=token_service,
        code_store=code_store,
        mail_dispatcher=mail_dispatcher,
    )


@pytest.fixture
def alice_data():
    return {
        "username": "alice",
        "password": "Secr3t!",
        "full_name": "Alice A",
        "email": "a@x.com",
    }


@pytest_asyncio.fixture
async def registered_user(auth_service, alice_data):
    """Unverified account for alice."""
    result = await auth_service.register(**alice_data)
    return result


@pytest_asyncio.fixture
async def verified_user(auth_service, user_repository, registered_user):
    """Alice with a verified email address."""
    user = await user_repository.find_by_username("alice")
    user.mark_verified()
    await user_repository.save(user)
    return user
