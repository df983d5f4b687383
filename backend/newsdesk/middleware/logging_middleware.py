"""请求日志中间件"""
import time
import logging
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.identity import client_ip

logger = logging.getLogger("newsdesk.request")

SKIP_PATHS: tuple[str, ...] = ("/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """记录每个请求的方法、路径、状态码与耗时，并回写 X-Request-Id"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        incoming = str(request.headers.get("X-Request-Id") or "").strip()
        request_id = incoming or uuid.uuid4().hex
        request.state.request_id = request_id

        method = request.method
        path = request.url.path
        ip = client_ip(request)
        should_log = not any(path.startswith(p) for p in SKIP_PATHS)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error("%s %s - ERROR - %.2fms - %s - %s", method, path, duration_ms, ip, e)
            raise

        duration_ms = (time.time() - start_time) * 1000
        if should_log:
            status_code = response.status_code
            if status_code >= 500:
                log = logger.error
            elif status_code >= 400:
                log = logger.warning
            else:
                log = logger.info
            log("%s %s - %s - %.2fms - %s [%s]", method, path, status_code, duration_ms, ip, request_id)

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers.setdefault("X-Request-Id", request_id)
        return response


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """捕获并记录未处理的异常"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("Unhandled exception: %s %s - %s", request.method, request.url.path, e)
            raise
