"""
Bearer token authentication middleware.
"""

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import jwt

from gear.middleware.base import Middleware
from gear.request import Request
from gear.types import Next

if TYPE_CHECKING:
    from gear.context import Gear

# State key the decoded token claims are stored under
CLAIMS_STATE_KEY = "claims"


class BearerAuthMiddleware(Middleware):
    """
    Rejects requests without a valid JWT in the Authorization header.

    Rejected requests get a 401 response with a WWW-Authenticate header and
    the chain is stopped. Accepted requests have the token claims in
    ``g.state["claims"]``.

    Usage:
        wrap(handler, BearerAuthMiddleware("secret", exclude_paths=["/health"]))
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        token_prefix: str = "Bearer",
        exclude_paths: list[str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._token_prefix = token_prefix
        self.exclude_paths = set(exclude_paths or [])
        self._logger = logger or logging.getLogger("gear.auth")

    @property
    def name(self) -> str:
        return "Auth"

    def authenticate(self, request: Request) -> dict[str, Any] | None:
        """Return the claims of the request token, None if it has no valid one."""
        auth_header = request.get_header("authorization")
        if not auth_header:
            return None

        try:
            scheme, token = auth_header.split(" ", 1)
        except ValueError:
            return None

        if scheme.lower() != self._token_prefix.lower():
            return None

        try:
            return jwt.decode(token.strip(), self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            self._logger.info("expired token for %s", request.path)
            return None
        except jwt.InvalidTokenError as exc:
            self._logger.info("invalid token for %s: %s", request.path, exc)
            return None

    def is_excluded(self, path: str) -> bool:
        """Whether path equals or lies under one of the excluded paths."""
        for excluded in self.exclude_paths:
            if path == excluded or path.startswith(excluded.rstrip("/") + "/"):
                return True
        return False

    async def serve(self, g: "Gear", next: Next) -> None:
        if self.is_excluded(g.request.path):
            await next()
            return

        claims = self.authenticate(g.request)
        if claims is None:
            g.response.headers["www-authenticate"] = self._token_prefix
            await g.code(HTTPStatus.UNAUTHORIZED)
            g.stop()
            return

        g.state[CLAIMS_STATE_KEY] = claims
        await next()
