"""FastAPI application factory and configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import register_error_handlers, register_routes
from .api.deps import Services
from .core import (
    ACCOUNT_STORE_LAYOUT,
    ALLOWED_CORS_ORIGINS,
    APP_SECRET,
    BATCH_REFRESH_DELAY,
    EXPIRY_THRESHOLD_SECONDS,
    IDENTITY_BACKEND,
    init_db,
    make_engine,
)
from .services import (
    BatchRefreshCoordinator,
    KeyValueStore,
    OAuthSessionManager,
    PendingSessionStore,
    RefreshEngine,
    SQLModelKeyValueStore,
    create_repository,
)
from .upstream import IdentityBackend, create_backend


def build_services(
    store: KeyValueStore,
    backend: IdentityBackend,
    layout: str = ACCOUNT_STORE_LAYOUT,
    batch_delay: float = BATCH_REFRESH_DELAY,
) -> Services:
    """Wire the credential-lifecycle components around one store and backend."""

    accounts = create_repository(layout, store)
    pending = PendingSessionStore(store)
    refresher = RefreshEngine(backend, accounts)
    return Services(
        backend=backend,
        accounts=accounts,
        pending=pending,
        oauth=OAuthSessionManager(backend, pending, accounts),
        refresher=refresher,
        batch=BatchRefreshCoordinator(
            refresher, delay_seconds=batch_delay, threshold_seconds=EXPIRY_THRESHOLD_SECONDS
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        init_db(engine)
    yield


def create_app(
    store: Optional[KeyValueStore] = None,
    backend: Optional[IdentityBackend] = None,
    app_secret: Optional[str] = APP_SECRET,
    layout: str = ACCOUNT_STORE_LAYOUT,
    batch_delay: float = BATCH_REFRESH_DELAY,
) -> FastAPI:
    app = FastAPI(title="Token Keeper API", version="0.1.0", lifespan=lifespan)

    app.state.engine = None
    if store is None:
        app.state.engine = make_engine()
        store = SQLModelKeyValueStore(app.state.engine)
    app.state.app_secret = app_secret
    app.state.services = build_services(
        store, backend or create_backend(IDENTITY_BACKEND), layout, batch_delay
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_error_handlers(app)
    register_routes(app)
    return app


app = create_app()


__all__ = ["app", "build_services", "create_app"]
