"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

Per-request state machine:
    no header ──────────────────────────────┐
    Bearer <token> → verify → resolve user ─┴→ Unauthorized (401)
                                      └──────→ request.state.user

Every rejection looks the same to the client. The reason (missing,
expired, bad signature, malformed, unknown user) only goes to the log.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskapi.auth.tokens import TokenError, TokenService
from taskapi.db.engine import get_db
from taskapi.db.models import User
from taskapi.errors import Unauthorized
from taskapi.services.credential_store import CredentialStore

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


def get_token_service(request: Request) -> TokenService:
    """The process-wide TokenService built in create_app()."""
    return request.app.state.token_service


def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    # The auth scheme is case-insensitive (RFC 7235).
    if not authorization or authorization[:len(BEARER_PREFIX)].lower() != BEARER_PREFIX.lower():
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_credential_store),
) -> User:
    """Resolve the authenticated user (required — 401 otherwise)."""
    token = extract_bearer_token(authorization)
    if token is None:
        logger.info("auth.rejected", reason="missing_token")
        raise Unauthorized()

    try:
        claims = tokens.verify_access_token(token)
    except TokenError as e:
        logger.info("auth.rejected", reason=type(e).__name__)
        raise Unauthorized()

    user = await store.find_user_by_uuid(claims["sub"])
    if user is None:
        logger.info("auth.rejected", reason="unknown_principal")
        raise Unauthorized()

    request.state.user = user
    return user
