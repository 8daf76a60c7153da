"""
Gear exceptions.
Following the Single Responsibility Principle - each exception handles one type of error.
"""

from typing import Any


class GearException(Exception):
    """Base exception for all Gear errors."""
    
    def __init__(self, message: str = "An error occurred") -> None:
        self.message = message
        super().__init__(self.message)


class ContextError(GearException):
    """Misuse of the per-request context."""
    pass


class NoGearError(ContextError):
    """No Gear is attached to the request."""
    
    def __init__(self, message: str = "no gear in request, see gear.wrap()") -> None:
        super().__init__(message)


class GearAlreadyAttachedError(ContextError):
    """A Gear is already attached to the request (nested wrap)."""
    
    def __init__(
        self,
        message: str = "gear already attached to request, wrap() must not be nested",
    ) -> None:
        super().__init__(message)


class ChainError(GearException):
    """Middleware chain driven incorrectly, e.g. next() called twice."""
    pass


class ConfigurationError(GearException):
    """Invalid middleware configuration."""
    pass


class RoutingError(GearException):
    """Routing-related errors."""
    pass


class NotFound(RoutingError):
    """No route matches the request path."""
    
    status_code = 404
    
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"no route for path {path!r}")


class MethodNotAllowed(RoutingError):
    """A route matches the path but not the method."""
    
    status_code = 405
    
    def __init__(self, method: str, allowed: set[str]) -> None:
        self.method = method
        self.allowed = allowed
        super().__init__(f"method {method} not allowed, allowed: {', '.join(sorted(allowed))}")


class DecodeError(GearException):
    """Base class for request decoding errors."""
    pass


class UnknownContentType(DecodeError):
    """No body decoder is registered for the request Content-Type."""
    
    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(f"unknown Content-Type {content_type!r}")


class BodyTooLarge(DecodeError):
    """The request body exceeds the allowed size."""

    def __init__(self, max_body_size: int) -> None:
        self.max_body_size = max_body_size
        super().__init__(
            f"Request body too large. Maximum allowed: {max_body_size} bytes"
        )


class InvalidDecodeError(DecodeError):
    """The decode destination is None or a type instead of an instance."""
    
    def __init__(self, dest: Any) -> None:
        self.dest = dest
        if dest is None:
            message = "gear: decode(None)"
        else:
            message = f"gear: decode(type {getattr(dest, '__name__', dest)!s}), pass an instance"
        super().__init__(message)


class DecodeTypeError(DecodeError):
    """The decode destination is of a type that can't be decoded into."""
    
    def __init__(self, type_: type) -> None:
        self.type = type_
        super().__init__(f"gear: cannot decode into {type_.__name__}")


class DecodeFieldError(DecodeError):
    """A value can't be converted to the type of a destination field."""
    
    def __init__(
        self,
        type_: Any,
        value: Any,
        name: str = "",
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.type = type_
        self.value = value
        self.error = error
        super().__init__(self._format())
    
    def _format(self) -> str:
        type_name = getattr(self.type, "__name__", str(self.type))
        message = f"gear: cannot decode {self.value!r} as {type_name} into field {self.name}"
        if self.error is not None:
            message += f": {self.error}"
        return message
    
    def with_name(self, name: str) -> "DecodeFieldError":
        """Attach the field name once it is known."""
        self.name = name
        self.message = self._format()
        self.args = (self.message,)
        return self
