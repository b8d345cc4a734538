"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter for routers that are protected as a whole.
Handlers that need the user object also declare get_current_user;
FastAPI caches the dependency, so the token is verified once.
The users and auth routers mix open and protected routes, so they
declare auth per handler instead.
"""

from fastapi import APIRouter, Depends

from taskapi.api.auth import router as auth_router
from taskapi.api.health import router as health_router
from taskapi.api.tasks import router as tasks_router
from taskapi.api.users import router as users_router
from taskapi.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open (or partly open) routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])

# Protected routes — require a valid access token
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
