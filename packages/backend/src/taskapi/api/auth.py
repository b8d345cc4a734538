"""Auth API — login, refresh-token rotation, logout.

Learn: Routes for session lifecycle:
- POST /auth/login   → email/password → access + refresh token
- POST /auth/refresh → refresh token → NEW access + refresh token (old one dies)
- POST /auth/logout  → revoke one refresh token (needs access token)

Refresh does not need an access token; the usual reason to call it
is that the access token just expired.
"""

import structlog
from fastapi import APIRouter, Depends

from taskapi.api.responses import no_content, ok
from taskapi.auth.dependencies import (
    get_credential_store,
    get_current_user,
    get_token_service,
)
from taskapi.auth.tokens import TokenError, TokenService
from taskapi.db.models import User
from taskapi.errors import NotFound, Unauthorized
from taskapi.schemas.user import LoginRequest, RefreshRequest
from taskapi.services.credential_store import CredentialStore

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


@router.post("/login")
async def login(
    body: LoginRequest,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email and password → token pair."""
    user = await store.find_user_by_email(body.email)
    if user is None or not store.verify_password(user, body.password):
        logger.info("auth.login_failed")
        raise Unauthorized("invalid credentials")

    pair = await tokens.issue_token_pair(store, user)
    return ok(**pair.to_dict())


@router.post("/refresh")
async def refresh(
    body: RefreshRequest,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Rotate a refresh token. Unknown, expired and reused tokens all get 401."""
    try:
        pair = await tokens.rotate(store, body.refresh_token)
    except (NotFound, TokenError) as e:
        logger.info("auth.refresh_rejected", reason=type(e).__name__)
        raise Unauthorized()
    return ok(**pair.to_dict())


@router.post("/logout", status_code=204)
async def logout(
    body: RefreshRequest,
    user: User = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """End one session by revoking its refresh token."""
    await tokens.revoke(store, body.refresh_token, user)
    return no_content()
