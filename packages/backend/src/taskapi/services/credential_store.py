"""Credential store — persistence for users and refresh tokens.

Learn: This is the only place that reads or writes the users and
refresh_tokens tables. Field-level validation (lengths, formats,
password confirmation) already happened in the pydantic schemas; the
store adds what only the database can answer: email uniqueness.

Commit rules:
- User writes commit immediately (one request = one user change).
- Refresh-token writes only flush. TokenService commits them, so a
  rotation's delete + insert lands as a single transaction.
"""

import uuid
from datetime import datetime
from typing import Optional, Union

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.auth.password import hash_password, verify_password
from taskapi.config import settings
from taskapi.db.models import RefreshToken, User, utcnow
from taskapi.errors import ValidationError

logger = structlog.get_logger()

EMAIL_TAKEN = "has already been taken"


class CredentialStore:
    """Users + refresh tokens over one AsyncSession."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: Optional[int] = None):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds or settings.bcrypt_rounds

    # ─── Users ───────────────────────────────────────────

    async def find_user_by_uuid(
        self, user_uuid: Union[uuid.UUID, str]
    ) -> Optional[User]:
        if not isinstance(user_uuid, uuid.UUID):
            try:
                user_uuid = uuid.UUID(str(user_uuid))
            except ValueError:
                return None
        result = await self.db.execute(select(User).where(User.uuid == user_uuid))
        return result.scalars().first()

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalars().first()

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Insert a new user. Raises ValidationError if the email is taken."""
        if await self.find_user_by_email(email):
            raise ValidationError({"email": [EMAIL_TAKEN]})

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
        )
        self.db.add(user)
        await self._commit_unique_email()
        logger.info("users.created", user_uuid=str(user.uuid))
        return user

    async def update_account(
        self,
        user: User,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """Update name and/or email. Only non-None fields are applied."""
        if email is not None and email.lower() != user.email.lower():
            other = await self.find_user_by_email(email)
            if other is not None and other.id != user.id:
                raise ValidationError({"email": [EMAIL_TAKEN]})
        if name is not None:
            user.name = name
        if email is not None:
            user.email = email
        await self._commit_unique_email()
        return user

    def verify_password(self, user: User, plaintext: str) -> bool:
        return verify_password(plaintext, user.password_hash)

    async def update_password(self, user: User, new_password: str) -> User:
        user.password_hash = hash_password(new_password, rounds=self.bcrypt_rounds)
        await self.db.commit()
        logger.info("users.password_updated", user_uuid=str(user.uuid))
        return user

    async def _commit_unique_email(self) -> None:
        # The unique index is the final guard against a concurrent signup.
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError({"email": [EMAIL_TAKEN]})

    # ─── Refresh tokens ──────────────────────────────────

    async def create_refresh_token(
        self, user: User, token: str, expiration_at: datetime
    ) -> RefreshToken:
        record = RefreshToken(
            token=token,
            user_id=user.id,
            expiration_at=expiration_at,
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def find_refresh_token(self, token: str) -> Optional[RefreshToken]:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token == token)
        )
        return result.scalars().first()

    async def delete_refresh_token(
        self, token: str, user_id: Optional[int] = None
    ) -> bool:
        """Delete one refresh token. False if no row matched (already gone)."""
        stmt = delete(RefreshToken).where(RefreshToken.token == token)
        if user_id is not None:
            stmt = stmt.where(RefreshToken.user_id == user_id)
        result = await self.db.execute(
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def forget(self, record: RefreshToken) -> None:
        """Drop a record deleted by token from the session's identity map."""
        self.db.expunge(record)

    async def revoke_refresh_tokens(self, user: User) -> int:
        """Delete every refresh token the user holds (all sessions)."""
        result = await self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.user_id == user.id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def purge_expired_refresh_tokens(
        self, now: Optional[datetime] = None
    ) -> int:
        result = await self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.expiration_at <= (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
