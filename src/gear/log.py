"""
Structured log records on top of the standard logging module.

Attributes are rendered as ``key=value`` pairs after the message and are
also attached to the record as ``record.attrs``.
"""

import logging
from collections.abc import Mapping
from typing import Any


def format_value(value: Any) -> str:
    """Render one attribute value."""
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(str(v) for v in value) + "]"
    text = str(value)
    if text == "" or any(c.isspace() or c == '"' for c in text):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def format_attrs(attrs: Mapping[str, Any]) -> str:
    """Render attributes as space separated ``key=value`` pairs."""
    return " ".join(f"{key}={format_value(value)}" for key, value in attrs.items())


def log_attrs(
    logger: logging.Logger,
    level: int,
    msg: str,
    attrs: Mapping[str, Any],
    **kwargs: Any,
) -> None:
    """Log msg with structured attributes at level."""
    if not logger.isEnabledFor(level):
        return
    if attrs:
        logger.log(level, "%s %s", msg, format_attrs(attrs), extra={"attrs": dict(attrs)}, **kwargs)
    else:
        logger.log(level, "%s", msg, extra={"attrs": {}}, **kwargs)
