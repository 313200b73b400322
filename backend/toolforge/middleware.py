# backend/toolforge/middleware.py
import time
import traceback
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from toolforge.utils.logger import logger


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Callable):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except Exception as e:
            error_message = f"Unhandled exception: {str(e)}\n{traceback.format_exc()}"
            logger.error(error_message)
            response = JSONResponse(
                status_code=500, content={"detail": "Internal Server Error"}
            )
        finally:
            process_time = time.time() - start_time
            status_code = response.status_code if response is not None else 500
            logger.info(
                f"Request: {request.method} {request.url.path} - Response: {status_code} - Process Time: {process_time:.4f}s"
            )
        return response
