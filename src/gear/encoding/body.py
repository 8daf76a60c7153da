"""
Request body decoding.

A body decoder is a callable ``(body: bytes, dest) -> dest`` that parses the
raw body and stores the result into ``dest``. Decoders are selected by the
media type of the request Content-Type header.
"""

import dataclasses
import json
import typing
import xml.etree.ElementTree as ElementTree
from collections.abc import Callable
from typing import Any, TypeAlias

from gear.encoding.mapping import decode_map
from gear.exceptions import (
    DecodeError,
    DecodeFieldError,
    DecodeTypeError,
    InvalidDecodeError,
    UnknownContentType,
)
from gear.request import Request
from gear.types import MultiValues

BodyDecoder: TypeAlias = Callable[[bytes, Any], Any]

MIME_JSON = "application/json"
MIME_XML = "application/xml"
MIME_TEXT_XML = "text/xml"

# Field metadata key naming the JSON key of a field
JSON_KEY = "json"

_PLAIN_TYPES = (str, int, float, bool)


def _lookup(obj: dict[str, Any], key: str) -> tuple[bool, Any]:
    """Find key in obj, preferring an exact match over a case-insensitive one."""
    if key in obj:
        return True, obj[key]
    folded = key.casefold()
    for name, value in obj.items():
        if name.casefold() == folded:
            return True, value
    return False, None


def _check_plain(name: str, hint: type, value: Any) -> Any:
    if hint is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    # bool is an int, but a JSON boolean is never a number
    if not isinstance(value, hint) or (isinstance(value, bool) and hint is not bool):
        raise DecodeFieldError(hint, value, name=name)
    return value


def assign(obj: Any, dest: Any) -> Any:
    """Store a parsed JSON value into dest and return dest."""
    if dest is None or isinstance(dest, type):
        raise InvalidDecodeError(dest)

    if isinstance(dest, dict) and isinstance(obj, dict):
        dest.update(obj)
        return dest
    if isinstance(dest, list) and isinstance(obj, list):
        dest.extend(obj)
        return dest
    if not dataclasses.is_dataclass(dest) or not isinstance(obj, dict):
        raise DecodeTypeError(type(dest))

    hints = typing.get_type_hints(type(dest))
    for f in dataclasses.fields(dest):
        if f.name.startswith("_"):
            continue
        key = f.metadata.get(JSON_KEY, f.name)
        if key == "-":
            continue
        found, value = _lookup(obj, key)
        if not found:
            continue
        current = getattr(dest, f.name, None)
        if dataclasses.is_dataclass(current) and isinstance(value, dict):
            assign(value, current)
            continue
        hint = hints.get(f.name)
        if hint in _PLAIN_TYPES and value is not None:
            value = _check_plain(f.name, hint, value)
        setattr(dest, f.name, value)
    return dest


def json_body_decoder(body: bytes, dest: Any) -> Any:
    """Decode body as a JSON document."""
    try:
        obj = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"gear: invalid JSON body: {exc}") from exc
    return assign(obj, dest)


def _xml_values(root: ElementTree.Element) -> MultiValues:
    values: MultiValues = {}
    for child in root:
        values.setdefault(child.tag, []).append((child.text or "").strip())
    return values


def xml_body_decoder(body: bytes, dest: Any) -> Any:
    """
    Decode body as an XML document.

    The text of every child of the root element is decoded as if it were a
    form value keyed by the child tag.
    """
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError as exc:
        raise DecodeError(f"gear: invalid XML body: {exc}") from exc
    return decode_map(_xml_values(root), dest)


# key is the media type
BODY_DECODERS: dict[str, BodyDecoder] = {
    MIME_JSON: json_body_decoder,
    MIME_XML: xml_body_decoder,
    MIME_TEXT_XML: xml_body_decoder,
}


def select_body_decoder(request: Request) -> BodyDecoder:
    """
    Select a decoder for the body of request by its Content-Type.

    Raises:
        UnknownContentType: No decoder is registered for the media type.
    """
    decoder = BODY_DECODERS.get(request.media_type)
    if decoder is None:
        raise UnknownContentType(request.content_type)
    return decoder


async def decode_body(
    request: Request,
    dest: Any,
    decoder: BodyDecoder | None = None,
) -> Any:
    """
    Decode the body of request into dest and return dest.

    If decoder is None, one is selected by the request Content-Type.
    """
    if decoder is None:
        decoder = select_body_decoder(request)
    return decoder(await request.body(), dest)
