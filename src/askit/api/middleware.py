"""Request correlation, access logging and HTTP metrics for the API."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from askit.core.errors import CoreError
from askit.core.logging import get_logger
from askit.core.metrics import REQUEST_COUNTER, REQUEST_LATENCY

_correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id_ctx.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id, log each request and record latency metrics."""

    def __init__(self, app: ASGIApp, *, service_name: str) -> None:
        super().__init__(app)
        self._logger = get_logger(service_name)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = _correlation_id_ctx.set(correlation_id)
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        start = time.perf_counter()
        response: Response | None = None
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception:
            self._logger.exception(
                "http.request.error",
                method=request.method,
                path=request.url.path,
                route=_route_from_scope(request),
            )
            raise
        finally:
            duration = time.perf_counter() - start
            route = _route_from_scope(request)
            REQUEST_COUNTER.labels(request.method, route, str(status_code)).inc()
            REQUEST_LATENCY.labels(request.method, route, str(status_code)).observe(duration)

            if response is not None:
                response.headers["X-Request-ID"] = correlation_id
                self._logger.info(
                    "http.request.completed",
                    method=request.method,
                    path=request.url.path,
                    route=route,
                    status_code=status_code,
                    duration_ms=round(duration * 1000, 2),
                )

            structlog.contextvars.unbind_contextvars("correlation_id")
            _correlation_id_ctx.reset(token)


async def core_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render :class:`CoreError` subclasses as problem-details JSON."""

    assert isinstance(exc, CoreError)
    body = exc.to_dict()
    body["instance"] = request.url.path
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        media_type="application/problem+json",
    )


def _route_from_scope(request: Request) -> str:
    route = request.scope.get("route")
    if route and getattr(route, "path", None):
        return route.path
    return request.url.path
