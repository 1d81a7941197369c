"""
Logging middleware for the Blob Event Forwarder.

This module provides middleware for logging requests and binding a
correlation id that identifies each webhook invocation.
"""

import time
import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging requests and responses.

    The correlation id is taken from the incoming ``X-Request-ID`` header when
    present, stored on ``request.state.request_id`` and echoed on the response.
    """

    async def dispatch(
            self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        start_time = time.time()

        logger.info(
            "Request started",
            aeg_event_type=request.headers.get("aeg-event-type"),
            content_length=request.headers.get("content-length"),
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                "Request completed",
                status_code=response.status_code,
                process_time=f"{process_time:.4f}s",
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.exception(
                "Request failed",
                exc_info=e,
                process_time=f"{process_time:.4f}s",
            )

            raise

        finally:
            structlog.contextvars.clear_contextvars()
