"""Tests for registration, sign-in and password reset."""

import uuid
from datetime import timedelta

import pytest

from backend import auth
from backend.config import utcnow
from backend.database import async_session, init_db
from backend.errors import (
    AuthenticationError,
    PermissionDeniedError,
    ValidationError,
)


def _email() -> str:
    return f"user-{uuid.uuid4().hex[:8]}@example.com"


class TestValidation:
    def test_password_mismatch(self) -> None:
        with pytest.raises(ValidationError, match="do not match"):
            auth.validate_new_password("secret1", "secret2")

    def test_password_too_short(self) -> None:
        with pytest.raises(ValidationError, match="at least 6"):
            auth.validate_new_password("abc", "abc")

    def test_password_required(self) -> None:
        with pytest.raises(ValidationError, match="required"):
            auth.validate_new_password("")

    @pytest.mark.parametrize("email", ["", "   ", "no-at-sign", "a@b", "two@@example.com"])
    def test_bad_email(self, email: str) -> None:
        with pytest.raises(ValidationError):
            auth.validate_email(email)

    def test_email_is_normalized(self) -> None:
        assert auth.validate_email("  Someone@Example.COM ") == "someone@example.com"

    def test_admin_email_is_case_insensitive(self) -> None:
        assert auth.is_admin_email("ADMIN@example.com")
        assert not auth.is_admin_email("other@example.com")

    def test_password_longer_than_bcrypt_allows(self) -> None:
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            auth.validate_new_password("x" * 100, "x" * 100)
        # Multi-byte characters count by their encoded size
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            auth.validate_new_password("é" * 40)
        auth.validate_new_password("x" * 72)

    def test_verify_rejects_overlong_password(self) -> None:
        hashed = auth.hash_password("x" * 72)
        assert not auth.verify_password("x" * 100, hashed)

    def test_password_hashing(self) -> None:
        hashed = auth.hash_password("hunter22")
        assert hashed != "hunter22"
        assert auth.verify_password("hunter22", hashed)
        assert not auth.verify_password("hunter23", hashed)


@pytest.mark.asyncio
async def test_register_and_sign_in() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        user = await auth.register(db, email.upper(), "password1", "password1")
        assert user.email == email
        assert user.email_verified is False

        token = await auth.sign_in(db, email, "password1")
        assert token.expires_at > utcnow()

        ctx = await auth.resolve_user(db, token.token)
        assert ctx.user.id == user.id
        assert ctx.is_admin is False


@pytest.mark.asyncio
async def test_duplicate_registration() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        with pytest.raises(ValidationError, match="already exists"):
            await auth.register(db, email, "password2")


@pytest.mark.asyncio
async def test_wrong_password() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        with pytest.raises(AuthenticationError):
            await auth.sign_in(db, email, "nope-nope")
        with pytest.raises(AuthenticationError):
            await auth.sign_in(db, _email(), "password1")


@pytest.mark.asyncio
async def test_sign_out_revokes_token() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        token = await auth.sign_in(db, email, "password1")
        await auth.sign_out(db, token.token)
        with pytest.raises(AuthenticationError):
            await auth.resolve_user(db, token.token)


@pytest.mark.asyncio
async def test_expired_token_is_rejected() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        token = await auth.sign_in(db, email, "password1")
        token.expires_at = utcnow() - timedelta(seconds=1)
        await db.commit()
        with pytest.raises(AuthenticationError):
            await auth.resolve_user(db, token.token)


@pytest.mark.asyncio
async def test_missing_token() -> None:
    async with async_session() as db:
        with pytest.raises(AuthenticationError, match="Not signed in"):
            await auth.resolve_user(db, None)


@pytest.mark.asyncio
async def test_password_reset_flow() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        reset = await auth.request_password_reset(db, email)
        assert reset is not None

        # A reset token cannot be used to sign in
        with pytest.raises(AuthenticationError):
            await auth.resolve_user(db, reset.token)

        with pytest.raises(ValidationError):
            await auth.reset_password(db, reset.token, "newpass1", "different")

        await auth.reset_password(db, reset.token, "newpass1", "newpass1")
        token = await auth.sign_in(db, email, "newpass1")
        ctx = await auth.resolve_user(db, token.token)
        assert ctx.user.email_verified is True

        with pytest.raises(AuthenticationError, match="reset link"):
            await auth.reset_password(db, reset.token, "again123", "again123")


@pytest.mark.asyncio
async def test_overlong_password_is_rejected_not_crashed() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            await auth.register(db, email, "x" * 100, "x" * 100)

        await auth.register(db, email, "password1")
        with pytest.raises(AuthenticationError, match="Invalid e-mail or password"):
            await auth.sign_in(db, email, "y" * 100)

        reset = await auth.request_password_reset(db, email)
        assert reset is not None
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            await auth.reset_password(db, reset.token, "z" * 100, "z" * 100)
        # The reset token is still usable after a rejected attempt
        await auth.reset_password(db, reset.token, "newpass1", "newpass1")


@pytest.mark.asyncio
async def test_password_reset_signs_out_existing_sessions() -> None:
    await init_db()
    email = _email()
    async with async_session() as db:
        await auth.register(db, email, "password1")
        first = (await auth.sign_in(db, email, "password1")).token
        second = (await auth.sign_in(db, email, "password1")).token

        reset = await auth.request_password_reset(db, email)
        assert reset is not None
        await auth.reset_password(db, reset.token, "newpass1", "newpass1")

        for token in (first, second):
            with pytest.raises(AuthenticationError):
                await auth.resolve_user(db, token)

        fresh = await auth.sign_in(db, email, "newpass1")
        ctx = await auth.resolve_user(db, fresh.token)
        assert ctx.user.email == email


@pytest.mark.asyncio
async def test_password_reset_for_unknown_email() -> None:
    await init_db()
    async with async_session() as db:
        assert await auth.request_password_reset(db, _email()) is None


@pytest.mark.asyncio
async def test_admin_context() -> None:
    await init_db()
    async with async_session() as db:
        try:
            await auth.register(db, "admin@example.com", "adminpass")
        except ValidationError:
            pass  # registered by an earlier test
        token = await auth.sign_in(db, "admin@example.com", "adminpass")
        ctx = await auth.resolve_user(db, token.token)
        assert ctx.is_admin
        ctx.require_admin()

        email = _email()
        await auth.register(db, email, "password1")
        token = await auth.sign_in(db, email, "password1")
        ctx = await auth.resolve_user(db, token.token)
        with pytest.raises(PermissionDeniedError):
            ctx.require_admin()


@pytest.mark.asyncio
async def test_list_users_newest_first() -> None:
    await init_db()
    async with async_session() as db:
        first = await auth.register(db, _email(), "password1")
        second = await auth.register(db, _email(), "password1")
        ids = [u.id for u in await auth.list_users(db)]
    assert ids.index(second.id) < ids.index(first.id)
