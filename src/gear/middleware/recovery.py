"""
Panic recovery middleware.
"""

import logging
import traceback
from http import HTTPStatus
from typing import TYPE_CHECKING

from gear.log import log_attrs
from gear.middleware.base import Middleware
from gear.types import Next

if TYPE_CHECKING:
    from gear.context import Gear


class PanicRecovery(Middleware):
    """
    Recovers from exceptions raised downstream.

    Logs an ERROR record "recovered from panic" with a ``value`` attribute
    (and a ``stack`` attribute if add_stack is true), answers 500 and stops
    the chain.

    Must be the last middleware supplied so that it wraps all the others.

    Usage:
        wrap(handler, AccessLogger(), PanicRecovery(add_stack=True))
    """

    def __init__(
        self,
        add_stack: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.add_stack = add_stack
        self._logger = logger or logging.getLogger("gear.errors")

    @property
    def name(self) -> str:
        return "PanicRecovery"

    async def serve(self, g: "Gear", next: Next) -> None:
        try:
            await next()
        except Exception as exc:
            attrs: dict[str, object] = {"value": exc}
            if self.add_stack:
                attrs["stack"] = traceback.format_exc()
            log_attrs(self._logger, logging.ERROR, "recovered from panic", attrs)
            await g.code(HTTPStatus.INTERNAL_SERVER_ERROR)
            g.stop()
