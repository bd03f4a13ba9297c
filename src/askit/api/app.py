"""FastAPI application factory for the askit API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Response

from askit import __version__
from askit.core.config import AppSettings
from askit.core.errors import CoreError
from askit.core.logging import configure_logging
from askit.core.metrics import metrics_response
from askit.core.telemetry import init_telemetry, instrument_fastapi_app

from .dependencies import close_clients, get_settings
from .middleware import RequestContextMiddleware, core_error_handler
from .routers import jobs, query
from .schemas import HealthResponse

logger = logging.getLogger(__name__)

SERVICE_NAME = "askit_api"

SettingsDep = Annotated[AppSettings, Depends(get_settings)]


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await close_clients()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    configure_logging()
    init_telemetry(SERVICE_NAME, settings.telemetry)

    app = FastAPI(title="Askit API", version=__version__, lifespan=_lifespan)

    instrument_fastapi_app(app)
    app.add_middleware(RequestContextMiddleware, service_name=SERVICE_NAME)
    app.add_exception_handler(CoreError, core_error_handler)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    def health(_: SettingsDep) -> HealthResponse:
        return HealthResponse()

    app.include_router(jobs.router)
    app.include_router(query.router)

    @app.get("/metrics")
    async def metrics() -> Response:
        return metrics_response()

    return app
