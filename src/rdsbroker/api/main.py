from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rdsbroker import __version__
from rdsbroker.api.routes import broker as broker_routes
from rdsbroker.api.routes import health
from rdsbroker.broker.events import EventBroker, register_rds_handlers
from rdsbroker.broker.service import RDSServiceBroker
from rdsbroker.config import Settings, get_settings, load_catalog
from rdsbroker.core.errors import BrokerError
from rdsbroker.logging import configure_logging

logger = structlog.get_logger()


def _install_broker(app: FastAPI, settings: Settings, broker: RDSServiceBroker) -> None:
    app.state.settings = settings
    app.state.catalog = broker.catalog
    app.state.events = register_rds_handlers(EventBroker(), broker)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if not hasattr(app.state, "events"):
        settings = get_settings()
        configure_logging(settings.log_level)
        catalog = load_catalog(settings.catalog_path)
        catalog.check_consistency()
        _install_broker(app, settings, RDSServiceBroker.from_settings(settings, catalog))
        logger.info("broker_started", region=settings.aws_region)
    yield


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    logger.error(
        "broker_request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        message=exc.message,
        **exc.details,
    )
    return JSONResponse(status_code=exc.http_status, content={"description": exc.message})


def create_app(
    settings: Settings | None = None,
    broker: RDSServiceBroker | None = None,
) -> FastAPI:
    """Build the broker app; a prebuilt broker skips catalog loading at startup."""
    app = FastAPI(title="RDS Service Broker", version=__version__, lifespan=lifespan)

    if broker is not None:
        _install_broker(app, settings or get_settings(), broker)

    app.add_exception_handler(BrokerError, broker_error_handler)  # type: ignore[arg-type]
    app.include_router(broker_routes.router, tags=["broker"])
    app.include_router(health.router, tags=["health"])
    return app
