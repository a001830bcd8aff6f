"""
Application factory for the platform servers.

Startup order:
    1. Logging and production security validation
    2. Redis cache (failure degrades to uncached operation)
    3. RBAC seed (failure aborts startup)
    4. Default user role id, stored on ``app.state``

Usage:
    app = create_app(ServerProfile.AUTH)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cache import close_redis_client, get_redis_client, init_tag_cache, redis_health_check
from config.database import get_database_settings
from config.logging_config import configure_logging, request_id_var
from config.settings import get_settings, validate_startup_security
from database.async_engine import check_database_connection, close_database, init_models
from rbac.errors import get_request_id, register_exception_handlers
from rbac.seed import seed_rbac
from services.role_service import resolve_default_user_role_id

from .dependencies import ServerProfile, get_authenticator

logger = logging.getLogger(__name__)


async def connect_cache() -> None:
    """Install the process-wide tag cache, disabled when Redis is unreachable."""
    settings = get_settings()
    if not settings.enable_caching:
        init_tag_cache(None)
        logger.info("Caching disabled")
        return

    try:
        client = await get_redis_client()
    except Exception as e:
        logger.warning(f"Redis unavailable, continuing without cache: {e}")
        init_tag_cache(None)
        return

    init_tag_cache(client.client, key_prefix=client.settings.key_prefix)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Bring up logging, cache and RBAC state; tear down connections on exit."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    if settings.is_production:
        validate_startup_security(settings, exit_on_failure=False)

    logger.info(f"Starting {settings.name} ({app.state.profile.value} profile)")

    await connect_cache()

    if get_database_settings().is_sqlite:
        await init_models()

    try:
        await seed_rbac()
    except Exception:
        logger.critical("RBAC seed failed, aborting startup", exc_info=True)
        raise

    app.state.default_user_role_id = await resolve_default_user_role_id()
    logger.info(f"Default user role: {app.state.default_user_role_id}")

    yield

    logger.info("Shutting down application...")
    await close_redis_client()
    await close_database()


def create_app(profile: ServerProfile = ServerProfile.MAIN) -> FastAPI:
    """
    Build a FastAPI app for a server profile.

    The profile's authentication dependency is exposed as
    ``app.state.authenticate`` for routers to depend on.
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.profile = ServerProfile(profile)
    app.state.authenticate = get_authenticator(app.state.profile)

    register_exception_handlers(app)

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = get_request_id(request)
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    async def health() -> JSONResponse:
        database_ok = await check_database_connection()
        cache = await redis_health_check()
        return JSONResponse(
            status_code=200 if database_ok else 503,
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "database": database_ok,
                "cache": cache,
            },
        )

    return app
