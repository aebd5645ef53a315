"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, the magic-link
sweeper, the database engine). Middleware, CORS, error handlers and
routers are all registered here.

The pending magic-link store is created in create_app(), not in the
lifespan, so it exists even when the app is driven without lifespan
events (ASGI test transports).
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projecthub import __version__
from projecthub.api import api_router
from projecthub.auth.magic_links import (
    InMemoryMagicLinkStore,
    MagicLinkSweeper,
    build_magic_link_store,
)
from projecthub.config import settings
from projecthub.errors import register_error_handlers
from projecthub.log import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "projecthub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        magic_link_backend=settings.magic_link_backend,
    )

    from projecthub.db.redis_pool import close_redis, init_redis
    try:
        await init_redis()
        logger.info("projecthub.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional unless it backs the magic-link store
        log = logger.error if settings.magic_link_backend == "redis" else logger.warning
        log("projecthub.redis_unavailable", error=str(e))

    sweeper = None
    sweeper_task = None
    store = app.state.magic_link_store
    if isinstance(store, InMemoryMagicLinkStore):
        sweeper = MagicLinkSweeper(
            store, interval=settings.magic_link_sweep_interval_seconds
        )
        sweeper_task = asyncio.create_task(sweeper.run_loop())

    yield

    # Shutdown
    logger.info("projecthub.shutdown")

    if sweeper is not None:
        sweeper.stop()
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass

    await close_redis()

    from projecthub.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="ProjectHub",
        description="Multi-tenant project management API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.magic_link_store = build_magic_link_store(settings.magic_link_backend)

    register_error_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler

    from projecthub.middleware.rate_limit import RateLimitMiddleware
    from projecthub.middleware.request_id import RequestIdMiddleware
    from projecthub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: projecthub.main:app)
app = create_app()
