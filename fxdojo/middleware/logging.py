# fxdojo/middleware/logging.py
"""
Request logging middleware.
"""

import time
import uuid

import structlog
from fastapi import Request

from fxdojo.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def logging_middleware(request: Request, call_next):
    """
    Log every HTTP request with its status and duration.

    The request id is bound to the logging context, so records written while
    handling the request carry it as well.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request failed", method=request.method, path=request.url.path)
        raise

    duration = time.perf_counter() - start_time

    logger.info(
        "request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2),
        client=request.client.host if request.client else None,
    )
    structlog.contextvars.unbind_contextvars("request_id")

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
