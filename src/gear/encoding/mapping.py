"""
Decoding of multi-valued maps (forms, headers, queries) into dataclasses.

``decode_map`` works like ``json.loads`` followed by field assignment: it
reads a ``key -> list[str]`` mapping and stores the result into ``dest``.

``dest`` can be one of:
  - a ``dict``: updated with a copy of every key and its values;
  - a dataclass instance: fields are assigned in place.

A field takes its key from ``field(metadata={"map": "key_name"})`` or, by
default, from its name. ``metadata={"map": "-"}`` ignores the field. Keys
absent from the map leave the field untouched. Supported field types:

  - ``str``, ``int``, ``float``, ``bool``;
  - ``X | None`` of the above;
  - ``list[X]`` of the above, holding every value of the key;
  - any type with a ``from_map_value(values)`` classmethod.

Non-list fields take the first value only. A value that can't be converted
raises :class:`~gear.exceptions.DecodeFieldError`.
"""

import dataclasses
import types
import typing
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, Union, runtime_checkable

from gear.exceptions import DecodeError, DecodeFieldError, DecodeTypeError, InvalidDecodeError
from gear.request import Request, canonical_header_key
from gear.types import MultiValues

# Field metadata key naming the map key of a field
MAP_KEY = "map"

_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}

# RFC 7231 section 7.1.1.1: IMF-fixdate, obsolete RFC 850 and ANSI C asctime
HTTP_DATE_FORMATS: tuple[str, ...] = (
    "%a, %d %b %Y %H:%M:%S GMT",
    "%A, %d-%b-%y %H:%M:%S GMT",
    "%a %b %d %H:%M:%S %Y",
)


@runtime_checkable
class MapValueUnmarshaler(Protocol):
    """Types that build themselves from all the values of a key."""

    @classmethod
    def from_map_value(cls, values: list[str]) -> Any: ...


@dataclass(frozen=True, slots=True)
class HTTPDate:
    """A timestamp used in headers such as Date or If-Modified-Since."""

    value: datetime

    @classmethod
    def parse(cls, text: str) -> "HTTPDate":
        for fmt in HTTP_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text.strip(), fmt)
            except ValueError:
                continue
            return cls(parsed.replace(tzinfo=timezone.utc))
        raise ValueError(f"not an HTTP date: {text!r}")

    @classmethod
    def from_map_value(cls, values: list[str]) -> "HTTPDate":
        return cls.parse(values[0])


def parse_bool(value: str) -> bool:
    """Parse a form bool. Anything unparseable is true: presence means true."""
    if value in _FALSE_VALUES:
        return False
    return True


def parse_int(value: str) -> int:
    """Parse an int, accepting 0x, 0o and 0b prefixes."""
    try:
        return int(value, 0)
    except ValueError:
        return int(value, 10)


_SCALAR_PARSERS: dict[Any, Any] = {
    str: str,
    int: parse_int,
    float: float,
    bool: parse_bool,
    Any: str,
}


def _parse_value(values: list[str], tp: Any) -> Any:
    """Convert values to tp. Raises DecodeFieldError without a field name."""
    unmarshal = getattr(tp, "from_map_value", None)
    if isinstance(tp, type) and callable(unmarshal):
        try:
            return unmarshal(values)
        except (ValueError, TypeError) as exc:
            raise DecodeFieldError(tp, values, error=exc) from exc

    origin = typing.get_origin(tp)
    if origin in (Union, types.UnionType):
        args = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        if len(args) != 1:
            raise DecodeFieldError(tp, values)
        return _parse_value(values, args[0])
    if origin is list:
        (item_type,) = typing.get_args(tp) or (str,)
        return [_parse_value([value], item_type) for value in values]
    if tp is list:
        return list(values)

    value = values[0] if values else ""
    parser = _SCALAR_PARSERS.get(tp)
    if parser is None:
        raise DecodeFieldError(tp, value)
    try:
        return parser(value)
    except (ValueError, TypeError) as exc:
        raise DecodeFieldError(tp, value, error=exc) from exc


def decode_map(
    values: MultiValues,
    dest: Any,
    normalize: typing.Callable[[str], str] | None = None,
) -> Any:
    """
    Decode values into dest and return dest.

    Args:
        values: Mapping of key to all its values.
        dest: A dict or a dataclass instance.
        normalize: Applied to field keys before lookup.

    Raises:
        InvalidDecodeError: dest is None or a class.
        DecodeTypeError: dest is neither a dict nor a dataclass instance.
        DecodeFieldError: A value can't be converted to its field type.
    """
    if dest is None or isinstance(dest, type):
        raise InvalidDecodeError(dest)

    if isinstance(dest, dict):
        for key, key_values in values.items():
            dest[key] = list(key_values)
        return dest

    if not dataclasses.is_dataclass(dest):
        raise DecodeTypeError(type(dest))

    hints = typing.get_type_hints(type(dest))
    for f in dataclasses.fields(dest):
        if f.name.startswith("_"):
            continue
        key = f.metadata.get(MAP_KEY, f.name)
        if key == "-":
            continue
        if normalize is not None:
            key = normalize(key)
        if key not in values:
            continue
        try:
            setattr(dest, f.name, _parse_value(values[key], hints.get(f.name, Any)))
        except DecodeFieldError as exc:
            exc.with_name(f.name)
            raise
    return dest


async def decode_form(request: Request, dest: Any) -> Any:
    """Decode urlencoded body and query values of request into dest."""
    try:
        values = await request.form_values()
    except UnicodeDecodeError as exc:
        raise DecodeError(f"gear: invalid form body: {exc}") from exc
    return decode_map(values, dest)


def decode_header(request: Request, dest: Any) -> Any:
    """Decode request headers into dest. Field keys are canonicalized."""
    return decode_map(request.header_values, dest, normalize=canonical_header_key)


def decode_query(request: Request, dest: Any) -> Any:
    """Decode request query values into dest."""
    return decode_map(request.query_values, dest)
