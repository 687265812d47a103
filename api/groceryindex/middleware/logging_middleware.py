import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from groceryindex.metrics import http_request_duration, http_requests

log = structlog.get_logger()


def route_template(request: Request) -> str:
    """Matched route path, e.g. /api/v1/price-reports/{report_id}; "unmatched" for 404s."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.monotonic() - start
            log.error("request_failed", duration_ms=round(duration * 1000, 2))
            raise

        duration = time.monotonic() - start
        status_code = response.status_code

        # Label by route template so report ids don't explode cardinality
        path_label = route_template(request)
        http_requests.labels(method=request.method, path=path_label, status_code=str(status_code)).inc()
        http_request_duration.labels(method=request.method, path=path_label).observe(duration)

        log.info(
            "request_completed",
            status_code=status_code,
            route=path_label,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
