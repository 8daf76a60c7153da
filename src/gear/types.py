"""
Type definitions for the Gear middleware layer.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# ASGI Types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

# Chain Types
Next: TypeAlias = Callable[[], Awaitable[None]]

# State Types
State: TypeAlias = MutableMapping[str, Any]
MultiValues: TypeAlias = dict[str, list[str]]
