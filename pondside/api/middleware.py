"""
Request middleware: correlation ids, timing and kiosk identification.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from pondside.core.logging import bind_scan_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
STATION_HEADER = "X-Station-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id (the kiosk's own, or a fresh one), method and path, plus
    the station id when a gate or weigh-in kiosk sends one, then logs one
    `request_completed` line per request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        station_id = request.headers.get(STATION_HEADER)
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        bind_scan_context(station_id=station_id)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        if response.status_code >= 500:
            logger.warning("request_completed", status_code=response.status_code, duration_ms=duration_ms)
        elif request.url.path not in ("/health", "/metrics"):
            logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        if station_id:
            response.headers[STATION_HEADER] = station_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
