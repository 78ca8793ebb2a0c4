"""
Request logging middleware for the elastic application manager
"""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse
import logging
import time
import uuid
from typing import Callable


logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate request ID for tracing
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} "
            f"from {request.client.host if request.client else 'unknown'}"
        )

        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception(f"[{request_id}] Request failed in {process_time:.3f}s: {e}")

            return JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "kind": "internal",
                        "message": "Internal server error",
                        "context": {"request_id": request_id}
                    }
                },
                headers={
                    "X-Request-ID": request_id,
                    "X-Process-Time": f"{process_time:.3f}"
                }
            )

        process_time = time.time() - start_time
        logger.info(
            f"[{request_id}] {response.status_code} "
            f"completed in {process_time:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"

        return response
