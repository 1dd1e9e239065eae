from contextlib import asynccontextmanager
from typing import Any, Optional, cast

import structlog
from anyio import to_thread
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.engine import Engine
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from onlinebank.api import clients, health
from onlinebank.core.config import Settings, settings as default_settings
from onlinebank.core.datasource import ResilientDataSource
from onlinebank.core.errors import init_sentry, register_exception_handlers
from onlinebank.core.health_check import HealthAggregator
from onlinebank.core.logging_config import configure_logging
from onlinebank.core.perf_metrics import MetricsRecorder
from onlinebank.core.probe import ConnectionProbe
from onlinebank.core.schema import SchemaBootstrapper
from onlinebank.db import build_engine
from onlinebank.middleware.context import RequestContextMiddleware
from onlinebank.middleware.timing import TimingMiddleware, route_prefix
from onlinebank.services.data_initializer import DataInitializer

logger = structlog.get_logger(__name__)

CLIENTS_PREFIX = "/api/clients"


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Settings = app.state.settings
    engine: Engine = app.state.engine_override or build_engine(cfg)

    logger.info(
        "OnlineBank API starting",
        profile=cfg.ACTIVE_PROFILE,
        version=cfg.APP_VERSION,
        max_pool_size=cfg.DB_MAX_POOL_SIZE,
        min_idle=cfg.DB_MIN_IDLE,
    )

    probe = ConnectionProbe(
        engine,
        interval_seconds=cfg.DB_PROBE_INTERVAL_MS / 1000,
        validation_timeout=cfg.DB_VALIDATION_TIMEOUT_MS / 1000,
    )
    bootstrapper = SchemaBootstrapper(engine, script_path=cfg.SCHEMA_SCRIPT_PATH)
    if cfg.DATA_INIT_ENABLED:
        initializer = DataInitializer(
            engine,
            client_count=cfg.DATA_INIT_CLIENT_COUNT,
            clean_before=cfg.DATA_INIT_CLEAN_BEFORE,
        )
        bootstrapper.add_listener(initializer.initialize)
    probe.add_listener(bootstrapper.on_availability_change)

    datasource = ResilientDataSource(engine, probe, max_pool_size=cfg.DB_MAX_POOL_SIZE)
    recorder = MetricsRecorder()

    app.state.probe = probe
    app.state.bootstrapper = bootstrapper
    app.state.datasource = datasource
    app.state.metrics = recorder
    app.state.health = HealthAggregator(probe, datasource, recorder, bootstrapper, cfg)

    # First probe blocks for at most the validation timeout; keep it off the event loop
    await to_thread.run_sync(probe.start)
    if not probe.is_available():
        logger.warning("Database unavailable at startup, running in degraded mode")

    try:
        yield
    finally:
        datasource.close()
        logger.info("OnlineBank API stopped")


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Overrides the environment-derived settings
        engine: Pre-built engine (tests); built from settings when None
    """
    cfg = settings or default_settings

    configure_logging(production=cfg.is_production, debug=cfg.DEBUG)
    init_sentry(cfg.SENTRY_DSN, environment=cfg.ACTIVE_PROFILE, release=cfg.APP_VERSION)

    app = FastAPI(title=cfg.PROJECT_NAME, version=cfg.APP_VERSION, lifespan=lifespan)
    app.state.settings = cfg
    app.state.engine_override = engine

    # Innermost first: timing runs inside the request context so slow-request
    # logs carry the request id
    app.add_middleware(cast(Any, TimingMiddleware))
    app.add_middleware(cast(Any, RequestContextMiddleware))
    app.add_middleware(cast(Any, GZipMiddleware), minimum_size=1000)
    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    # Outermost: trust X-Forwarded-* from the load balancer
    app.add_middleware(cast(Any, ProxyHeadersMiddleware), trusted_hosts=["*"])

    register_exception_handlers(app, debug=cfg.DEBUG)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(
        clients.router,
        prefix=CLIENTS_PREFIX,
        tags=["clients"],
        dependencies=[Depends(route_prefix(CLIENTS_PREFIX))],
    )

    @app.get("/")
    def root():
        return {"message": f"Welcome to {cfg.PROJECT_NAME} API", "health": "/health", "docs": "/docs"}

    return app


app = create_app()
