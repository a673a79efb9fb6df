"""Account registration, sign-in and password reset.

Passwords are hashed with bcrypt. Sign-in issues an opaque bearer token
stored in ``auth_tokens``; the API resolves it into an ``AuthContext``
that is passed explicitly to every handler that needs the caller.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.errors import (
    AuthenticationError,
    ConfigurationError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from backend.models.user import AuthToken, User

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SESSION = "session"
RESET = "reset"

# bcrypt only hashes the first 72 bytes and rejects anything longer
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class AuthContext:
    """The signed-in caller."""

    user: User
    is_admin: bool

    def require_admin(self) -> None:
        if not settings.admin_email:
            raise ConfigurationError("Administrator e-mail is not configured")
        if not self.is_admin:
            raise PermissionDeniedError("Administrator access required")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_admin_email(email: str) -> bool:
    admin = normalize_email(settings.admin_email)
    return bool(admin) and normalize_email(email) == admin


def validate_email(email: str) -> str:
    email = normalize_email(email)
    if not email:
        raise ValidationError("E-mail is required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Enter a valid e-mail address")
    return email


def validate_new_password(password: str, confirm_password: str | None = None) -> None:
    """Check a new password before anything is sent to the store."""
    if not password:
        raise ValidationError("Password is required")
    if confirm_password is not None and password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


async def _issue_token(db: AsyncSession, user: User, purpose: str, ttl_seconds: int) -> AuthToken:
    token = AuthToken(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        purpose=purpose,
        expires_at=utcnow() + timedelta(seconds=ttl_seconds),
    )
    db.add(token)
    await db.commit()
    return token


async def _find_user(db: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == normalize_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


async def register(
    db: AsyncSession,
    email: str,
    password: str,
    confirm_password: str | None = None,
) -> User:
    """Create an account.

    Raises:
        ValidationError: Bad input or the e-mail is already registered.
        StoreError: The insert failed for another reason.
    """
    email = validate_email(email)
    validate_new_password(password, confirm_password)

    user = User(email=email, password_hash=hash_password(password), email_verified=False)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ValidationError("An account with this e-mail already exists") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError(str(exc)) from exc

    await db.refresh(user)
    logger.info("Registered user %d", user.id)
    return user


async def sign_in(db: AsyncSession, email: str, password: str) -> AuthToken:
    if not email.strip() or not password:
        raise ValidationError("E-mail and password are required")
    user = await _find_user(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed sign-in attempt")
        raise AuthenticationError("Invalid e-mail or password")
    return await _issue_token(db, user, SESSION, settings.auth_token_ttl_seconds)


async def sign_out(db: AsyncSession, token: str) -> None:
    await db.execute(delete(AuthToken).where(AuthToken.token == token))
    await db.commit()


async def request_password_reset(db: AsyncSession, email: str) -> AuthToken | None:
    """Issue a reset token. Returns None for unknown e-mails without saying so to the caller."""
    email = validate_email(email)
    user = await _find_user(db, email)
    if user is None:
        logger.info("Password reset requested for unknown e-mail")
        return None
    return await _issue_token(db, user, RESET, settings.reset_token_ttl_seconds)


async def _token_user(db: AsyncSession, token: str, purpose: str) -> tuple[AuthToken, User]:
    stmt = (
        select(AuthToken, User)
        .join(User, User.id == AuthToken.user_id)
        .where(and_(AuthToken.token == token, AuthToken.purpose == purpose))
    )
    row = (await db.execute(stmt)).first()
    if row is None:
        raise AuthenticationError("Invalid or expired token")
    auth_token, user = row
    if auth_token.expires_at <= utcnow():
        await db.delete(auth_token)
        await db.commit()
        raise AuthenticationError("Invalid or expired token")
    return auth_token, user


async def reset_password(
    db: AsyncSession,
    token: str,
    password: str,
    confirm_password: str,
) -> None:
    """Set a new password using a reset token; the token is single use."""
    validate_new_password(password, confirm_password)
    try:
        reset_token, user = await _token_user(db, token, RESET)
    except AuthenticationError as exc:
        raise AuthenticationError(
            "Invalid or expired reset link. Please request a new password reset."
        ) from exc

    user.password_hash = hash_password(password)
    # A successful reset also proves control of the inbox
    user.email_verified = True
    await db.delete(reset_token)
    # Sign the user out everywhere
    await db.execute(
        delete(AuthToken).where(and_(AuthToken.user_id == user.id, AuthToken.purpose == SESSION))
    )
    await db.commit()
    logger.info("Password reset for user %d", user.id)


async def resolve_user(db: AsyncSession, token: str | None) -> AuthContext:
    """Turn a bearer token into the caller's context."""
    if not token:
        raise AuthenticationError("Not signed in")
    _, user = await _token_user(db, token, SESSION)
    return AuthContext(user=user, is_admin=is_admin_email(user.email))


async def list_users(db: AsyncSession) -> list[User]:
    """All registered users, newest first."""
    try:
        result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    except SQLAlchemyError as exc:
        raise StoreError(str(exc)) from exc
    return list(result.scalars().all())
