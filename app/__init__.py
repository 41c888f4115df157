"""Application factory and top-level wiring for the TimeTrac API.

``create_app`` builds everything with a process lifetime exactly once: the
database engine and session factory, the ``Authenticator`` and the
``SessionTracker``. They hang off ``app.state`` and reach handlers through
FastAPI dependencies, so no module keeps its own global connection or secret.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import AppSettings, get_settings
from .core.errors import (
    ServiceError,
    http_exception_handler,
    service_error_handler,
    storage_error_handler,
    validation_exception_handler,
)
from .db.migrate import run_migrations
from .db.seed import ensure_demo_account
from .db.session import Base, build_engine, build_session_factory
from .middlewares import RequestIdMiddleware

# Importing the models registers them with the metadata used by create_all.
from . import models as _models  # noqa: F401
from .routers import api_auth as api_auth_router
from .routers import api_time as api_time_router
from .services.auth import Authenticator
from .services.timecalc import resolve_tz
from .services.tracker import SessionTracker

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


def create_app(settings: AppSettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    if len(settings.JWT_SECRET) < MIN_SECRET_LENGTH:
        logger.warning("config.weak_jwt_secret", extra={"extra_data": {"min_length": MIN_SECRET_LENGTH}})

    app = FastAPI(title=settings.APP_NAME)

    # ---------- Dependencies ----------
    engine = build_engine(settings.DB_URL)
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    session_factory = build_session_factory(engine)
    authenticator = Authenticator(
        secret=settings.JWT_SECRET,
        token_ttl=timedelta(minutes=settings.TOKEN_TTL_MINUTES),
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )
    tracker = SessionTracker(tz=resolve_tz(settings.APP_TZ))

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.authenticator = authenticator
    app.state.tracker = tracker

    if settings.demo_account_enabled:
        ensure_demo_account(session_factory, authenticator, settings.DEMO_EMAIL, settings.DEMO_PASSWORD)

    # ---------- Middleware ----------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestIdMiddleware)

    # ---------- Routers ----------
    app.include_router(api_auth_router.router)
    app.include_router(api_time_router.router)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    # ---------- Exception handling ----------
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    @app.on_event("shutdown")
    def _dispose_engine() -> None:
        engine.dispose()

    return app


__all__ = ["create_app"]
