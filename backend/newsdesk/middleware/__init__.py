"""中间件模块"""
from .logging_middleware import RequestLoggingMiddleware, ErrorLoggingMiddleware

__all__ = ["RequestLoggingMiddleware", "ErrorLoggingMiddleware"]
