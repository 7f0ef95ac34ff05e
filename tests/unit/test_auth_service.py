"""
Tests for AuthService and the flows it composes: registration, login,
email verification and the forgot-password handshake.
"""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import fakeredis
import pytest

from account_core.core.exceptions import (
    AlreadyVerifiedError,
    CodeStoreBusyError,
    ConflictError,
    ExpiredTokenError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidTokenPurposeError,
    MissingParametersError,
    MissingTokenError,
    NotFoundError,
    NotVerifiedError,
    ValidationError,
)
from account_core.core.redis import RedisOneTimeCodeStore
from account_core.schemas.auth_schemas import AuthResult
from account_core.services.auth.email_verification_service import (
    VERIFICATION_SUBJECT,
    build_verification_url,
)
from account_core.services.auth.password_service import (
    FORGOT_SUBJECT,
    codes_match,
    generate_forgot_code,
)
from account_core.services.auth_service import AuthService
from tests.factories import TEST_PASSWORD, UserFactory, make_settings


def token_from_mail(mock_mailer) -> str:
    to, subject, body = mock_mailer.send.await_args.args
    assert subject == VERIFICATION_SUBJECT
    return parse_qs(urlsplit(body).query)["token"][0]


def code_from_mail(mock_mailer) -> str:
    to, subject, body = mock_mailer.send.await_args.args
    assert subject == FORGOT_SUBJECT
    assert body.startswith("your code: ")
    return body[len("your code: "):]


class TestRegistration:
    """Test cases for AuthService.register."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_success(self, auth_service, user_repository, alice_data):
        result = await auth_service.register(**alice_data)

        assert isinstance(result, AuthResult)
        assert result.user.username == "alice"
        assert result.user.email == "a@x.com"
        assert result.user.full_name == "Alice A"
        assert result.user.verified is False
        assert "password_hash" not in result.model_dump()["user"]

        stored = await user_repository.find_by_username("alice")
        assert stored.password_hash != "Secr3t!"
        assert stored.verified is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_token_authenticates(self, auth_service, token_service, alice_data):
        result = await auth_service.register(**alice_data)

        assert token_service.verify(result.access_token).username == "alice"
        user = await auth_service.authenticate(result.access_token)
        assert user.username == "alice"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth_service, user_repository, registered_user):
        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register("alice", "Other1pw", "Impostor", "b@x.com")

        assert exc_info.value.status_code == 409
        stored = await user_repository.find_by_username("alice")
        assert stored.email == "a@x.com"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_fields_are_all_reported(self, auth_service, user_repository):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register(None, None, None, None)

        assert set(exc_info.value.fields) == {"username", "password", "full_name", "email"}
        assert len(user_repository) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_email(self, auth_service, alice_data):
        alice_data["email"] = "not-an-email"

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register(**alice_data)

        assert list(exc_info.value.fields) == ["email"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_weak_password(self, auth_service, alice_data):
        alice_data["password"] = "abc"

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register(**alice_data)

        assert "password" in exc_info.value.fields
        assert exc_info.value.details == {"fields": exc_info.value.fields}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_then_login_for_generated_users(self, auth_service, token_service):
        for index, password in enumerate(["Secr3t!", "An0therPass", "zZ9zZ9zZ9"]):
            username = f"user_{index}"
            await auth_service.register(username, password, f"User {index}", f"u{index}@x.com")

            result = await auth_service.login(username, password)

            claims = token_service.verify(result.access_token)
            assert claims.username == username
            assert claims.verify is False


class TestLogin:
    """Test cases for AuthService.login."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_alice_scenario(self, auth_service, alice_data):
        registered = await auth_service.register(**alice_data)
        assert "password_hash" not in registered.user.model_dump()

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice", "wrong")

        result = await auth_service.login("alice", "Secr3t!")
        assert result.access_token
        assert result.user.username == "alice"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_username(self, auth_service):
        with pytest.raises(NotFoundError) as exc_info:
            await auth_service.login("nobody", "Secr3t!")

        assert exc_info.value.message == "username doesn't exist"

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password,missing",
        [
            (None, "Secr3t!", ["username"]),
            ("alice", "", ["password"]),
            (None, None, ["username", "password"]),
        ],
    )
    async def test_missing_parameters(self, auth_service, username, password, missing):
        with pytest.raises(MissingParametersError) as exc_info:
            await auth_service.login(username, password)

        assert exc_info.value.details == {"missing": missing}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unverified_user_can_log_in(self, auth_service, registered_user):
        result = await auth_service.login("alice", "Secr3t!")

        assert result.user.verified is False


class TestAuthenticate:
    """Test cases for AuthService.authenticate."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_token(self, auth_service):
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate(None)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_verification_token_is_not_an_access_token(
        self, auth_service, token_service, registered_user
    ):
        token = token_service.issue_verification("alice")

        with pytest.raises(InvalidTokenPurposeError):
            await auth_service.authenticate(token)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, auth_service, token_service):
        with pytest.raises(NotFoundError):
            await auth_service.authenticate(token_service.issue_access("ghost"))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_expired_access_token(self, auth_service, token_service, registered_user):
        token = token_service.issue_access("alice", expires_delta=timedelta(seconds=-1))

        with pytest.raises(ExpiredTokenError):
            await auth_service.authenticate(token)


class TestEmailVerification:
    """Test cases for sending and confirming verification mail."""

    @pytest.mark.unit
    def test_verification_url_uses_host_and_port(self, settings):
        url = build_verification_url(settings, "abc.def")

        assert url == "http://localhost:3000/api/v1/auth/verify?token=abc.def"

    @pytest.mark.unit
    def test_verification_url_prefers_domain(self):
        settings = make_settings(DOMAIN="accounts.example.org", PUBLIC_SCHEME="https")

        url = build_verification_url(settings, "abc.def")

        assert url == "https://accounts.example.org/api/v1/auth/verify?token=abc.def"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_verification_mail(
        self, auth_service, user_repository, mock_mailer, token_service, registered_user
    ):
        user = await user_repository.find_by_username("alice")

        await auth_service.send_verification_mail(user)
        await auth_service.mail_dispatcher.drain()

        mock_mailer.send.assert_awaited_once()
        assert mock_mailer.send.await_args.args[0] == "a@x.com"
        claims = token_service.verify(token_from_mail(mock_mailer))
        assert claims.username == "alice"
        assert claims.verify is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_confirm_succeeds_exactly_once(
        self, auth_service, user_repository, mock_mailer, token_service, registered_user
    ):
        user = await user_repository.find_by_username("alice")
        await auth_service.send_verification_mail(user)
        await auth_service.mail_dispatcher.drain()
        token = token_from_mail(mock_mailer)

        access_token = await auth_service.confirm_verification(token)

        assert token_service.verify(access_token).verify is False
        assert (await user_repository.find_by_username("alice")).verified is True

        with pytest.raises(AlreadyVerifiedError):
            await auth_service.confirm_verification(token)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_confirmations(
        self, auth_service, token_service, registered_user
    ):
        token = token_service.issue_verification("alice")

        results = await asyncio.gather(
            auth_service.confirm_verification(token),
            auth_service.confirm_verification(token),
            return_exceptions=True,
        )

        assert sum(isinstance(r, str) for r in results) == 1
        assert sum(isinstance(r, AlreadyVerifiedError) for r in results) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_access_token_cannot_confirm(self, auth_service, registered_user):
        with pytest.raises(InvalidTokenPurposeError):
            await auth_service.confirm_verification(registered_user.access_token)

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, auth_service, token):
        with pytest.raises(MissingTokenError) as exc_info:
            await auth_service.confirm_verification(token)

        assert exc_info.value.status_code == 404

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_expired_verification_token(self, auth_service, token_service, registered_user):
        token = token_service.issue_verification("alice", expires_delta=timedelta(seconds=-1))

        with pytest.raises(ExpiredTokenError):
            await auth_service.confirm_verification(token)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_verification_token_for_unknown_user(self, auth_service, token_service):
        with pytest.raises(NotFoundError):
            await auth_service.confirm_verification(token_service.issue_verification("ghost"))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_already_verified_user_gets_no_mail(
        self, auth_service, mock_mailer, verified_user
    ):
        with pytest.raises(AlreadyVerifiedError):
            await auth_service.send_verification_mail(verified_user)

        await auth_service.mail_dispatcher.drain()
        mock_mailer.send.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stale_user_object_is_rechecked(
        self, auth_service, user_repository, mock_mailer, registered_user
    ):
        stale = await user_repository.find_by_username("alice")
        fresh = await user_repository.find_by_username("alice")
        fresh.mark_verified()
        await user_repository.save(fresh)

        with pytest.raises(AlreadyVerifiedError):
            await auth_service.send_verification_mail(stale)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mail_failure_does_not_fail_request(
        self, auth_service, user_repository, mock_mailer, registered_user
    ):
        mock_mailer.send.side_effect = ConnectionError("smtp down")
        user = await user_repository.find_by_username("alice")

        await auth_service.send_verification_mail(user)
        await auth_service.mail_dispatcher.drain()

        mock_mailer.send.assert_awaited_once()


class TestForgotPassword:
    """Test cases for the forgot-password handshake."""

    @pytest.mark.unit
    def test_generated_codes_are_six_digits(self):
        for _ in range(200):
            code = generate_forgot_code()
            assert len(code) == 6
            assert 100000 <= int(code) <= 999999

    @pytest.mark.unit
    def test_codes_match(self):
        assert codes_match("123456", "123456") is True
        assert codes_match("123456", "654321") is False
        assert codes_match("123456", "12345") is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_code(self, auth_service, code_store, mock_mailer, verified_user):
        await auth_service.send_forgot_code("alice")
        await auth_service.mail_dispatcher.drain()

        code = code_from_mail(mock_mailer)
        assert mock_mailer.send.await_args.args[0] == "a@x.com"
        assert await code_store.get("alice") == code

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_code_requires_username(self, auth_service):
        with pytest.raises(MissingParametersError):
            await auth_service.send_forgot_code(None)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_code_unknown_user(self, auth_service):
        with pytest.raises(NotFoundError):
            await auth_service.send_forgot_code("nobody")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_code_requires_verified_email(
        self, auth_service, code_store, mock_mailer, registered_user
    ):
        with pytest.raises(NotVerifiedError):
            await auth_service.send_forgot_code("alice")

        assert await code_store.get("alice") is None
        mock_mailer.send.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_then_reuse(self, auth_service, code_store, mock_mailer, verified_user):
        await auth_service.send_forgot_code("alice")
        await auth_service.mail_dispatcher.drain()
        code = code_from_mail(mock_mailer)

        await auth_service.reset_password("alice", "N3wPassword", code)

        assert await code_store.get("alice") is None
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice", "Secr3t!")
        assert (await auth_service.login("alice", "N3wPassword")).user.username == "alice"

        with pytest.raises(InvalidCodeError):
            await auth_service.reset_password("alice", "Th1rdPassword", code)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_code_replaces_first(self, auth_service, code_store, verified_user):
        with patch(
            "account_core.services.auth.password_service.generate_forgot_code",
            side_effect=["111111", "222222"],
        ):
            await auth_service.send_forgot_code("alice")
            await auth_service.send_forgot_code("alice")

        assert await code_store.get("alice") == "222222"
        with pytest.raises(InvalidCodeError):
            await auth_service.reset_password("alice", "N3wPassword", "111111")

        await auth_service.reset_password("alice", "N3wPassword", "222222")
        assert await code_store.get("alice") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wrong_code_keeps_pending_code(self, auth_service, code_store, verified_user):
        await auth_service.send_forgot_code("alice")
        code = await code_store.get("alice")
        wrong = "100000" if code != "100000" else "100001"

        with pytest.raises(InvalidCodeError):
            await auth_service.reset_password("alice", "N3wPassword", wrong)

        assert await code_store.get("alice") == code
        await auth_service.login("alice", "Secr3t!")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_without_pending_code(self, auth_service, verified_user):
        with pytest.raises(InvalidCodeError):
            await auth_service.reset_password("alice", "N3wPassword", "123456")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_unknown_user(self, auth_service):
        with pytest.raises(NotFoundError):
            await auth_service.reset_password("nobody", "N3wPassword", "123456")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_missing_parameters(self, auth_service):
        with pytest.raises(MissingParametersError) as exc_info:
            await auth_service.reset_password(None, None, None)

        assert exc_info.value.details == {
            "missing": ["username", "new_password", "forgot_code"]
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_weak_new_password_keeps_code(self, auth_service, code_store, verified_user):
        await auth_service.send_forgot_code("alice")
        code = await code_store.get("alice")

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.reset_password("alice", "weak", code)

        assert "new_password" in exc_info.value.fields
        assert await code_store.get("alice") == code

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_resets_spend_code_once(self, auth_service, code_store, verified_user):
        await auth_service.send_forgot_code("alice")
        code = await code_store.get("alice")

        results = await asyncio.gather(
            auth_service.reset_password("alice", "N3wPassword", code),
            auth_service.reset_password("alice", "Oth3rPassword", code),
            return_exceptions=True,
        )

        assert sum(r is None for r in results) == 1
        assert sum(isinstance(r, InvalidCodeError) for r in results) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mail_failure_still_stores_code(
        self, auth_service, code_store, mock_mailer, verified_user
    ):
        mock_mailer.send.side_effect = ConnectionError("smtp down")

        await auth_service.send_forgot_code("alice")
        await auth_service.mail_dispatcher.drain()

        assert await code_store.get("alice") is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_returns_before_mail_is_delivered(
        self, auth_service, code_store, mock_mailer, verified_user
    ):
        release = asyncio.Event()

        async def slow_send(to, subject, body):
            await release.wait()

        mock_mailer.send = AsyncMock(side_effect=slow_send)

        await auth_service.send_forgot_code("alice")

        assert auth_service.mail_dispatcher.pending == 1
        release.set()
        await auth_service.mail_dispatcher.drain()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reset_while_another_worker_holds_the_lock(
        self,
        settings,
        user_repository,
        password_hasher,
        token_service,
        mail_dispatcher,
        redis_server,
        redis_client,
    ):
        store = RedisOneTimeCodeStore(redis_client, ttl_seconds=900, lock_blocking_timeout=0.2)
        service = AuthService(
            settings=settings,
            user_repository=user_repository,
            password_hasher=password_hasher,
            token_service=token_service,
            code_store=store,
            mail_dispatcher=mail_dispatcher,
        )
        await user_repository.create(UserFactory(username="alice", verified=True))
        await service.send_forgot_code("alice")
        code = await store.get("alice")

        other_worker = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
        await other_worker.set("account:forgot:lock:alice", "other-token", px=10_000)
        try:
            with pytest.raises(CodeStoreBusyError):
                await service.reset_password("alice", "N3wPassword", code)
        finally:
            await other_worker.aclose()

        assert await store.get("alice") == code
        assert (await service.login("alice", TEST_PASSWORD)).user.username == "alice"
