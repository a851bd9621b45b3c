"""FastAPI application for the admin service.

Route handlers live under ``codewith.server.routes``. Settings and the
store are attached to ``app.state``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from codewith.config.settings import ServerSettings
from codewith.constants import VERSION
from codewith.server.middleware import RequestSizeLimitMiddleware, TokenAuthMiddleware
from codewith.server.routes import admin_router, health_router, sync_router
from codewith.server.store import AdminStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store: AdminStore = app.state.store
    logger.info(f"Admin service started (database: {store.db_path})")
    yield
    store.close()
    logger.info("Admin service stopped")


def create_app(
    settings: ServerSettings | None = None,
    store: AdminStore | None = None,
) -> FastAPI:
    """Create the admin FastAPI application.

    Args:
        settings: Server settings; read from the environment when omitted.
        store: Storage backend; opened at ``settings.database_path`` when omitted.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or ServerSettings()

    app = FastAPI(
        title="codewith admin",
        description="Device snapshots and admin configuration overrides",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store or AdminStore(settings.database_path)

    if settings.sync_token is None:
        logger.warning("No sync token configured: device routes accept unauthenticated requests")
    if settings.admin_token is None and not settings.basic_auth_enabled:
        logger.warning("No admin credentials configured: admin routes are disabled")

    # Added last runs first: size check before auth
    app.add_middleware(TokenAuthMiddleware, settings=settings)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)

    app.include_router(health_router)
    app.include_router(sync_router)
    app.include_router(admin_router)

    return app
