"""
Gear - Middleware composition for ASGI applications

Attaches a per-request context to every HTTP request and runs an ordered
list of middlewares around a terminal handler, with stop, panic recovery
and structured access logging.
"""

from gear.app import GearApp, run, wrap
from gear.auth import BearerAuthMiddleware
from gear.context import Gear, attach, current_gear, get_gear
from gear.encoding import HTTPDate
from gear.exceptions import (
    BodyTooLarge,
    ChainError,
    ConfigurationError,
    ContextError,
    DecodeError,
    GearAlreadyAttachedError,
    GearException,
    NoGearError,
)
from gear.middleware import (
    AccessLogger,
    LoggerOptions,
    Middleware,
    MiddlewareFunc,
    PanicRecovery,
    PathInterceptor,
)
from gear.request import Request
from gear.response import ResponseWriter
from gear.routing import Group, Router, default_router

__version__ = "0.1.0"
__all__ = [
    "GearApp",
    "run",
    "wrap",
    "BearerAuthMiddleware",
    "Gear",
    "attach",
    "current_gear",
    "get_gear",
    "HTTPDate",
    "BodyTooLarge",
    "ChainError",
    "ConfigurationError",
    "ContextError",
    "DecodeError",
    "GearAlreadyAttachedError",
    "GearException",
    "NoGearError",
    "AccessLogger",
    "LoggerOptions",
    "Middleware",
    "MiddlewareFunc",
    "PanicRecovery",
    "PathInterceptor",
    "Request",
    "ResponseWriter",
    "Group",
    "Router",
    "default_router",
]
