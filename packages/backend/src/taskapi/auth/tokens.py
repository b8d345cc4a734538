"""Access token signing and refresh token rotation.

Learn: Two credentials with opposite trade-offs:
- Access token: HS256 JWT, short-lived (60min). Verified by signature and
  expiry alone, so the hot path never touches the database.
- Refresh token: 256-bit random string stored in refresh_tokens (14 days).
  Stateful, so it can be revoked; strictly single-use on rotation.

The signing secret is passed in when the service is built (see
main.create_app). There is no module-level key.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import jwt
import structlog

from taskapi.db.models import RefreshToken, User, as_utc, utcnow
from taskapi.errors import ConfigurationError, NotFound
from taskapi.services.credential_store import CredentialStore

logger = structlog.get_logger()

REFRESH_TOKEN_BYTES = 32
MAX_GENERATION_ATTEMPTS = 5


class TokenError(Exception):
    """Raised when token creation/verification fails."""


class InvalidSignature(TokenError):
    """Signature does not match the payload."""


class Expired(TokenError):
    """Token (access or refresh) is past its expiry."""


class Malformed(TokenError):
    """Token can't be parsed or lacks required claims."""


@dataclass(frozen=True)
class TokenPair:
    """What login, registration and refresh hand back to the client."""

    access_token: str
    refresh_token: str
    refresh_token_exp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "refresh_token_exp": self.refresh_token_exp,
        }


def claims_for(user: User) -> dict[str, str]:
    """Minimal claim set bound into an access token."""
    return {"sub": str(user.uuid), "name": user.name}


class TokenService:
    """Issues and verifies access tokens, issues and rotates refresh tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_ttl: timedelta = timedelta(minutes=60),
        refresh_token_ttl: timedelta = timedelta(days=14),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ConfigurationError(
                "TASKAPI_JWT_SECRET must be set. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        self._secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self._clock = clock

    def __repr__(self) -> str:
        return (
            f"TokenService(algorithm={self.algorithm!r}, "
            f"access_token_ttl={self.access_token_ttl}, "
            f"refresh_token_ttl={self.refresh_token_ttl})"
        )

    # ─── Access tokens ───────────────────────────────────

    def issue_access_token(self, claims: dict[str, Any]) -> str:
        """Sign `claims` (needs sub + name) with iat/exp added."""
        if not claims.get("sub"):
            raise TokenError("Access token claims require 'sub'")
        now = self._clock()
        payload = {
            **claims,
            "sub": str(claims["sub"]),
            "iat": now,
            "exp": now + self.access_token_ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Verify and decode an access token.

        Returns the claims dict on success.
        Raises InvalidSignature, Expired or Malformed on failure.
        """
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
                leeway=0,
            )
        except jwt.ExpiredSignatureError:
            raise Expired("Token has expired")
        except jwt.InvalidSignatureError:
            raise InvalidSignature("Token signature mismatch")
        except jwt.InvalidTokenError as e:
            raise Malformed(f"Invalid token: {e}")

    # ─── Refresh tokens ──────────────────────────────────

    async def issue_refresh_token(
        self, store: CredentialStore, user: User
    ) -> RefreshToken:
        """Create and commit a new refresh token for `user`."""
        record = await self._add_refresh_token(store, user)
        await store.commit()
        return record

    async def issue_token_pair(
        self, store: CredentialStore, user: User
    ) -> TokenPair:
        """Access token + committed refresh token for one new session."""
        record = await self.issue_refresh_token(store, user)
        return self._pair(user, record)

    async def rotate(
        self,
        store: CredentialStore,
        old_token: str,
        owner: Optional[User] = None,
    ) -> TokenPair:
        """Exchange a refresh token for a new pair. The old token dies.

        Learn: The delete is checked by row count. If two requests race
        with the same token, only one delete hits a row; the loser gets
        NotFound instead of a second valid session.
        """
        record = await store.find_refresh_token(old_token)
        if record is None or (owner is not None and record.user_id != owner.id):
            raise NotFound("refresh token not found")
        if record.is_expired(self._clock()):
            raise Expired("Refresh token has expired")

        user_id = record.user_id
        user = owner or await store.get_user(user_id)
        if user is None:
            raise NotFound("refresh token owner not found")

        if not await store.delete_refresh_token(old_token, user_id=user_id):
            await store.rollback()
            raise NotFound("refresh token already used")
        store.forget(record)

        new_record = await self._add_refresh_token(store, user)
        await store.commit()
        logger.info("tokens.rotated", user_uuid=str(user.uuid))
        return self._pair(user, new_record)

    async def revoke(
        self, store: CredentialStore, token: str, owner: User
    ) -> None:
        """Logout: delete one of `owner`'s refresh tokens."""
        if not await store.delete_refresh_token(token, user_id=owner.id):
            raise NotFound("refresh token not found")
        await store.commit()
        logger.info("tokens.revoked", user_uuid=str(owner.uuid))

    # ─── Internals ───────────────────────────────────────

    async def _add_refresh_token(
        self, store: CredentialStore, user: User
    ) -> RefreshToken:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            token = self.generate_refresh_token()
            if await store.find_refresh_token(token) is None:
                break
            logger.warning("tokens.refresh_collision", user_uuid=str(user.uuid))
        else:
            raise TokenError("Could not generate a unique refresh token")

        return await store.create_refresh_token(
            user, token, self._clock() + self.refresh_token_ttl
        )

    @staticmethod
    def generate_refresh_token() -> str:
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    def _pair(self, user: User, record: RefreshToken) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(claims_for(user)),
            refresh_token=record.token,
            refresh_token_exp=int(as_utc(record.expiration_at).timestamp()),
        )
