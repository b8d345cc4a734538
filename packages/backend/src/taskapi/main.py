"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Building the app is also where configuration is checked:
TokenService refuses an empty secret, so a missing TASKAPI_JWT_SECRET
stops the process before it serves anything.

Lifespan creates tables on SQLite (dev) and disposes the engine on
shutdown. Exception handlers turn ApiError and request validation
failures into the {"status": "NG", ...} envelope.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskapi import __version__
from taskapi.api import api_router
from taskapi.auth.tokens import TokenService
from taskapi.config import Settings, settings as default_settings
from taskapi.errors import ApiError, ValidationError
from taskapi.log import configure_logging
from taskapi.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    from taskapi.db.engine import engine, init_models, is_sqlite

    cfg: Settings = app.state.settings
    logger.info(
        "taskapi.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
        token_service=repr(app.state.token_service),
    )

    if is_sqlite(cfg.database_url):
        await init_models()
        logger.info("taskapi.sqlite_tables_created")

    yield

    logger.info("taskapi.shutdown")
    await engine.dispose()


def build_token_service(cfg: Settings) -> TokenService:
    """TokenService from settings. Raises ConfigurationError without a secret."""
    return TokenService(
        secret=cfg.jwt_secret,
        algorithm=cfg.jwt_algorithm,
        access_token_ttl=timedelta(minutes=cfg.access_token_expire_minutes),
        refresh_token_ttl=timedelta(days=cfg.refresh_token_expire_days),
    )


def validation_messages(exc: RequestValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into {"field": ["message", ...]}.

    Learn: locations look like ("body", "user", "email"); the last string
    part is the field. Errors raised from our own validators carry the
    underlying ValueError in ctx, which reads better than pydantic's
    "Value error, ..." prefix.
    """
    messages: dict[str, list[str]] = {}
    for err in exc.errors():
        names = [p for p in err.get("loc", ()) if isinstance(p, str)]
        field = names[-1] if len(names) > 1 else "base"
        ctx_error = (err.get("ctx") or {}).get("error")
        if err.get("type") == "value_error" and ctx_error is not None:
            message = str(ctx_error)
        elif err.get("type") == "missing":
            message = "can't be blank"
        else:
            message = err.get("msg", "is invalid")
        messages.setdefault(field, []).append(message)
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=headers
        )

    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(validation_messages(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = cfg or default_settings
    configure_logging(cfg.log_level, json=cfg.log_json)

    app = FastAPI(
        title="taskapi",
        description="Users and tasks API with rotating refresh-token sessions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.token_service = build_token_service(cfg)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: taskapi.main:app)
app = create_app()
