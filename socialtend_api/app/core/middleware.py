"""
HTTP middleware for request logging and unhandled errors.

Every request is logged on completion with its method, path, status
code and duration.  Responses with a 4xx status are logged as
warnings and 5xx as errors so that the health endpoints can track the
error rate.  Exceptions that escape the route handlers are logged with
their traceback and turned into a generic JSON 500 response.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("socialtend_api.requests")


def register_middleware(app: FastAPI) -> None:
    """Attach the request logger to ``app``."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "Unhandled error on %s %s after %.1fms", request.method, request.url.path, duration_ms
            )
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        duration_ms = (time.perf_counter() - start) * 1000
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response
