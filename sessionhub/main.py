#!/usr/bin/env python3
"""
Sessionhub - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from sessionhub.config.provider import ConfigProvider, EnvConfigProvider
from sessionhub.logging_config import configure_logging

# Import modules through their black box interfaces
from sessionhub.modules.api import (
    CaptureSessionRequest,
    CaptureSessionResponse,
    CurrentSessionsResponse,
    HealthResponse,
    PlatformAvailability,
    SessionInfoResponse,
    SessionStatsResponse,
)
from sessionhub.modules.config import get_config
from sessionhub.modules.session import (
    Platform,
    SessionCache,
    SessionResolver,
    UserCredentials,
)
from sessionhub.modules.storage import RedisSessionStore, SessionStoreError, StorageModule

logger = logging.getLogger(__name__)

# Platforms whose session is a cookie with a name discovered at runtime
COOKIE_AUTH_PLATFORMS = {Platform.MARKETINOUT.value}


def build_modules(redis_client, cache_ttl: float, key_prefix: str):
    """
    Wire store, cache and resolver together.

    Returns:
        Tuple of (store, resolver); every store write invalidates the cache
    """
    store = RedisSessionStore(redis_client, key_prefix=key_prefix)
    cache = SessionCache(store.load_all_sessions, ttl=cache_ttl)
    store.on_change = cache.invalidate
    return store, SessionResolver(cache)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    if getattr(app.state, "resolver", None) is not None:
        # Modules injected by the caller (tests, embedding)
        yield
        return

    config = get_config()
    logger.info("Starting Sessionhub API...")

    redis_url = f"redis://{config.get('redis_host')}:{config.get('redis_port')}/{config.get('redis_db')}"
    storage = StorageModule(redis_url, password=config.get("redis_password"))
    redis_client = await storage.connect()

    app.state.store, app.state.resolver = build_modules(
        redis_client,
        cache_ttl=config.get("session_cache_ttl"),
        key_prefix=config.get("session_key_prefix"),
    )
    logger.info(f"Session cache TTL: {config.get('session_cache_ttl')}s")

    yield

    logger.info("Shutting down Sessionhub API...")
    await storage.disconnect()
    logger.info("Sessionhub API shutdown complete")


def create_app(
    resolver: Optional[SessionResolver] = None,
    store: Optional[RedisSessionStore] = None,
    config_provider: Optional[ConfigProvider] = None,
) -> FastAPI:
    """Create the FastAPI application, optionally with pre-built modules."""
    config_provider = config_provider or EnvConfigProvider()
    api_config = config_provider.get_api_config()

    app = FastAPI(
        title="Sessionhub API",
        description="Sessionhub - Platform session resolution",
        version="1.0.0",
        debug=api_config.debug,
        lifespan=lifespan,
    )
    app.state.resolver = resolver
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


# Dependency injection helpers
def get_resolver(request: Request) -> SessionResolver:
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise HTTPException(503, "Service not initialized")
    return resolver


def get_store(request: Request) -> RedisSessionStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(503, "Service not initialized")
    return store


async def get_user_credentials(
    x_user_email: Optional[str] = Header(None, description="Owner email for user-scoped lookups"),
    x_user_password: Optional[str] = Header(None, description="Owner password for user-scoped lookups"),
) -> Optional[UserCredentials]:
    """Credentials are only used as an equality filter, never checked."""
    if x_user_email is None or x_user_password is None:
        return None
    return UserCredentials(user_email=x_user_email, user_password=x_user_password)


async def describe_platform(
    resolver: SessionResolver, platform: str, credentials: Optional[UserCredentials]
) -> PlatformAvailability:
    """Availability of one platform, including cookie discovery where relevant."""
    if credentials:
        latest = await resolver.get_latest_session_for_user(platform, credentials)
    else:
        latest = await resolver.get_latest_session(platform)

    cookie_auth = platform in COOKIE_AUTH_PLATFORMS
    cookie_session = None
    if cookie_auth:
        cookie_session = await resolver.get_latest_cookie_session(platform, credentials)

    return PlatformAvailability.build(platform, latest, cookie_session, cookie_auth=cookie_auth)


def register_routes(app: FastAPI) -> None:
    """Attach the REST endpoints."""

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        resolver = getattr(request.app.state, "resolver", None)
        if resolver is None:
            return HealthResponse(status="starting")
        return HealthResponse(
            status="healthy",
            cacheAgeSeconds=resolver.cache.age(),
            cacheLoads=resolver.cache.load_count,
        )

    @app.get("/api/v1/sessions/current", response_model=CurrentSessionsResponse)
    async def current_sessions(
        platform: Optional[str] = Query(None, description="Limit the answer to one platform"),
        resolver: SessionResolver = Depends(get_resolver),
        credentials: Optional[UserCredentials] = Depends(get_user_credentials),
    ):
        platforms = [platform] if platform else [p.value for p in Platform]

        availability = {}
        for name in platforms:
            availability[name] = await describe_platform(resolver, name, credentials)

        stats = await resolver.get_session_stats()
        return CurrentSessionsResponse(
            hasSession=any(a.hasSession for a in availability.values()),
            sessionAvailable=any(a.sessionAvailable for a in availability.values()),
            sessionStats=SessionStatsResponse.from_stats(stats),
            platforms=availability,
        )

    @app.get("/api/v1/sessions/stats", response_model=SessionStatsResponse)
    async def session_stats(resolver: SessionResolver = Depends(get_resolver)):
        return SessionStatsResponse.from_stats(await resolver.get_session_stats())

    @app.get("/api/v1/sessions/users", response_model=List[str])
    async def session_users(resolver: SessionResolver = Depends(get_resolver)):
        return await resolver.get_available_users()

    @app.get("/api/v1/sessions/{platform}", response_model=List[SessionInfoResponse])
    async def platform_sessions(platform: str, resolver: SessionResolver = Depends(get_resolver)):
        sessions = await resolver.get_all_sessions(platform)
        return [SessionInfoResponse.from_info(info) for info in sessions]

    @app.post("/api/v1/sessions/{platform}", response_model=CaptureSessionResponse, status_code=201)
    async def capture_session(
        platform: str,
        body: CaptureSessionRequest,
        store: RedisSessionStore = Depends(get_store),
    ):
        internal_id = body.internalId or f"session_{uuid.uuid4().hex}"
        try:
            final_id = await store.save_platform_session_with_cleanup(
                internal_id, platform, body.record_fields()
            )
        except SessionStoreError as e:
            logger.error(f"Failed to capture {platform} session: {e}")
            raise HTTPException(503, "Session store unavailable")

        return CaptureSessionResponse(platform=platform, internalId=final_id)

    @app.delete("/api/v1/sessions/{internal_id}/{platform}")
    async def delete_platform_session(
        internal_id: str, platform: str, store: RedisSessionStore = Depends(get_store)
    ):
        try:
            deleted = await store.delete_platform_session(internal_id, platform)
        except SessionStoreError as e:
            logger.error(f"Failed to delete session: {e}")
            raise HTTPException(503, "Session store unavailable")

        if not deleted:
            raise HTTPException(404, "Session not found")
        return {"deleted": 1}

    @app.delete("/api/v1/sessions/{internal_id}")
    async def delete_session(internal_id: str, store: RedisSessionStore = Depends(get_store)):
        try:
            deleted = await store.delete_session(internal_id)
        except SessionStoreError as e:
            logger.error(f"Failed to delete session: {e}")
            raise HTTPException(503, "Session store unavailable")

        if not deleted:
            raise HTTPException(404, "Session not found")
        return {"deleted": deleted}


def main():
    """Run the API server."""
    config = get_config()
    configure_logging(config.get("log_level"))

    api_config = EnvConfigProvider().get_api_config()
    uvicorn.run(
        create_app(),
        host=api_config.host,
        port=api_config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
