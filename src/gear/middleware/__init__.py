"""
Middleware package for Gear.
"""

from gear.middleware.base import Middleware, MiddlewareFunc, as_middleware
from gear.middleware.chain import MiddlewareChain, build_middlewares
from gear.middleware.interceptor import PathInterceptor
from gear.middleware.logging import (
    LOGGER_HEADER_KEY,
    LOGGER_HOST_KEY,
    LOGGER_METHOD_KEY,
    LOGGER_URL_KEY,
    AccessLogger,
    LoggerOptions,
)
from gear.middleware.recovery import PanicRecovery

__all__ = [
    "Middleware",
    "MiddlewareFunc",
    "as_middleware",
    "MiddlewareChain",
    "build_middlewares",
    "PathInterceptor",
    "LOGGER_HEADER_KEY",
    "LOGGER_HOST_KEY",
    "LOGGER_METHOD_KEY",
    "LOGGER_URL_KEY",
    "AccessLogger",
    "LoggerOptions",
    "PanicRecovery",
]
