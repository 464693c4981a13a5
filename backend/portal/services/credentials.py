"""
Credential store: account registration, login verification and password resets.

Only the ``users`` table is touched here; profile data lives behind
``ProfileRepository``.
"""
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    PasswordMismatchError,
    StorageError,
    UnauthorizedError,
)
from ..models.user import User
from .auth import DUMMY_PASSWORD_HASH, get_password_hash, verify_password
from .email import generate_reset_token, get_reset_token_expiry, hash_reset_token

logger = logging.getLogger(__name__)

# Delivers a freshly issued raw reset token to the account's email address.
ResetNotifier = Callable[[str, str], Awaitable[object]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialStore:
    def __init__(self, db: AsyncSession, settings: Settings, notifier: Optional[ResetNotifier] = None):
        self.db = db
        self.settings = settings
        self.notifier = notifier

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(User.email == normalize_email(email))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def register(self, email: str, password: str) -> int:
        """Create an account and return its id."""
        email = normalize_email(email)
        try:
            if await self._find_by_email(email):
                raise ConflictError()

            hashed_password = await run_in_threadpool(get_password_hash, password)
            user = User(email=email, hashed_password=hashed_password)
            self.db.add(user)
            await self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            await self.db.rollback()
            raise ConflictError()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storage failure while registering an account")
            raise StorageError()

        logger.info("Registered account %s", user.id)
        return user.id

    async def authenticate(self, email: str, password: str) -> User:
        """Return the account for valid credentials.

        Unknown email and wrong password raise the same error after the same
        amount of hashing work.
        """
        try:
            user = await self._find_by_email(email)
        except SQLAlchemyError:
            logger.exception("Storage failure while authenticating")
            raise StorageError()

        if user is None:
            await run_in_threadpool(verify_password, password, DUMMY_PASSWORD_HASH)
            logger.info("Failed login attempt")
            raise UnauthorizedError("Incorrect email or password")

        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            logger.info("Failed login attempt for account %s", user.id)
            raise UnauthorizedError("Incorrect email or password")

        return user

    async def get_account(self, account_id: int) -> User:
        try:
            user = await self.db.get(User, account_id, populate_existing=True)
        except SQLAlchemyError:
            logger.exception("Storage failure while loading account %s", account_id)
            raise StorageError()
        if user is None:
            raise NotFoundError("Account not found")
        return user

    async def request_reset(self, email: str) -> None:
        """Issue a reset token when the account exists; silent otherwise."""
        try:
            user = await self._find_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown email")
                return

            token = generate_reset_token()
            user.reset_token = hash_reset_token(token)
            user.reset_token_expires_at = get_reset_token_expiry(self.settings)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storage failure while issuing a reset token")
            raise StorageError()

        logger.info("Issued password reset token for account %s", user.id)
        if self.notifier is not None:
            await self.notifier(user.email, token)

    async def reset_by_email(self, email: str, new_password: str, confirm_password: str) -> None:
        """Replace the password of an account with a pending, unexpired reset."""
        await self._consume_reset(User.email == normalize_email(email), new_password, confirm_password)

    async def reset_by_token(self, token: str, new_password: str, confirm_password: str) -> None:
        """Replace the password of the account the reset token was issued to."""
        await self._consume_reset(User.reset_token == hash_reset_token(token), new_password, confirm_password)

    async def _consume_reset(self, match, new_password: str, confirm_password: str) -> None:
        if new_password != confirm_password:
            raise PasswordMismatchError()

        hashed_password = await run_in_threadpool(get_password_hash, new_password)
        now = datetime.now(timezone.utc)
        try:
            # Checking the token and clearing it happen in one statement, so two
            # concurrent resets cannot both succeed.
            result = await self.db.execute(
                update(User)
                .where(
                    match,
                    User.reset_token.is_not(None),
                    User.reset_token_expires_at > now,
                )
                .values(
                    hashed_password=hashed_password,
                    reset_token=None,
                    reset_token_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                await self.db.commit()
                logger.info("Password reset completed")
                return

            stale = (
                await self.db.execute(
                    select(User.id, User.reset_token, User.reset_token_expires_at)
                    .where(match, User.reset_token.is_not(None))
                )
            ).first()
            expires_at = _as_utc(stale.reset_token_expires_at) if stale is not None else None
            if stale is None or (expires_at is not None and expires_at > now):
                await self.db.rollback()
                raise NotFoundError("No pending password reset")

            # Only the stale token is cleared; a reset issued since the lookup survives
            await self.db.execute(
                update(User)
                .where(
                    User.id == stale.id,
                    User.reset_token == stale.reset_token,
                    User.reset_token_expires_at <= now,
                )
                .values(reset_token=None, reset_token_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storage failure while resetting a password")
            raise StorageError()

        logger.info("Expired reset token presented for account %s", stale.id)
        raise ExpiredError()
