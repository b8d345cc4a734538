"""Users API — registration and account maintenance.

Learn: Routes for the user's own account:
- POST  /users          → register, returns the first token pair
- GET   /users/me       → current user
- PATCH /users/account  → change name / email
- PATCH /users/password → change password, ends every other session

Registration is open; the rest need a valid access token.
"""

from fastapi import APIRouter, Depends

from taskapi.api.responses import no_content, ok
from taskapi.auth.dependencies import (
    get_credential_store,
    get_current_user,
    get_token_service,
)
from taskapi.auth.tokens import TokenService
from taskapi.db.models import User
from taskapi.errors import Unauthorized
from taskapi.schemas.user import (
    AccountUpdateRequest,
    PasswordUpdateRequest,
    UserCreateRequest,
    UserRead,
)
from taskapi.services.credential_store import CredentialStore

router = APIRouter(prefix="/users")


def _user_body(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json")


# ─── Register ────────────────────────────────────────────


@router.post("", status_code=201)
async def create_user(
    body: UserCreateRequest,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a user and log them in."""
    fields = body.user
    user = await store.create_user(
        name=fields.name,
        email=fields.email,
        password=fields.password,
    )
    pair = await tokens.issue_token_pair(store, user)
    return ok(**pair.to_dict())


# ─── Current user ───────────────────────────────────────


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    return ok(user=_user_body(user))


@router.patch("/account")
async def update_account(
    body: AccountUpdateRequest,
    user: User = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
):
    """Update name and/or email. Fields not sent are left alone."""
    changes = body.user.model_dump(exclude_unset=True)
    user = await store.update_account(
        user,
        name=changes.get("name"),
        email=changes.get("email"),
    )
    return ok(user=_user_body(user))


@router.patch("/password", status_code=204)
async def update_password(
    body: PasswordUpdateRequest,
    user: User = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
):
    """Change password after re-checking the old one.

    Learn: All refresh tokens are revoked in the same commit, so every
    session has to log in again once its access token runs out.
    """
    fields = body.user
    if not store.verify_password(user, fields.old_password):
        raise Unauthorized("old password mismatch")

    await store.revoke_refresh_tokens(user)
    await store.update_password(user, fields.password)
    return no_content()
