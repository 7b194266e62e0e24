import time
import logging
import uuid
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.core.config import settings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log slow and failed requests.
    Logs: method, path, status_code, duration_ms, request_id
    Sampling: logs if duration > LOG_SLOW_REQUEST_THRESHOLD_MS or status >= 500
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        # Keep the caller's id so one booking flow can be traced across services
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        status_code = 500
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            status_code = response.status_code
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            extra = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "request_id": request_id,
            }

            if status_code >= 500:
                logger.error(
                    f"Request failed: {request.method} {request.url.path} "
                    f"-> {status_code} in {duration_ms:.2f}ms",
                    extra=extra,
                )
            elif duration_ms > settings.log_slow_request_threshold_ms:
                logger.info(
                    f"Slow request: {request.method} {request.url.path} "
                    f"took {duration_ms:.2f}ms",
                    extra=extra,
                )

        return response
