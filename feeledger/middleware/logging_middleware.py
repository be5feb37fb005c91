import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Polled by load balancers; logged at debug to keep the request log readable
QUIET_PATHS = {"/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info

        log(
            f"Request: {request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error: {request.method} {request.url.path}")
            raise

        process_time = time.perf_counter() - start_time
        log(
            f"Response: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response
