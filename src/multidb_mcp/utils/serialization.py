"""JSON rendering of result rows using orjson.

orjson handles most driver types natively (datetime, date, time, UUID,
dataclasses, pydantic models). The default handler below covers what the
asyncpg and aiomysql drivers return beyond that: Decimal, timedelta, bytes,
IP addresses and range objects.
"""

import base64
import datetime
import decimal
import ipaddress
from typing import Any, Iterable, Mapping

import orjson

_OPTIONS = orjson.OPT_NON_STR_KEYS


def _decode_binary(data: bytes) -> str:
    """Decode bytes as UTF-8, falling back to base64."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return base64.b64encode(data).decode("ascii")


def _default_handler(obj: Any) -> Any:
    """
    Convert types orjson does not serialize natively.

    Raises:
        TypeError: If the object has no JSON representation
    """
    # NUMERIC / DECIMAL columns keep their exact digits
    if isinstance(obj, decimal.Decimal):
        return str(obj)

    # interval / TIME columns on MySQL
    if isinstance(obj, datetime.timedelta):
        return obj.total_seconds()

    if isinstance(obj, (bytes, bytearray)):
        return _decode_binary(bytes(obj))

    if isinstance(obj, memoryview):
        return _decode_binary(obj.tobytes())

    if isinstance(obj, (set, frozenset)):
        return list(obj)

    if isinstance(
        obj,
        (
            ipaddress.IPv4Address,
            ipaddress.IPv6Address,
            ipaddress.IPv4Network,
            ipaddress.IPv6Network,
            ipaddress.IPv4Interface,
            ipaddress.IPv6Interface,
        ),
    ):
        return str(obj)

    # asyncpg Range (lower, upper, lower_inc, upper_inc)
    if hasattr(obj, "lower") and hasattr(obj, "upper") and hasattr(obj, "lower_inc"):
        return {
            "lower": obj.lower,
            "upper": obj.upper,
            "lower_inc": obj.lower_inc,
            "upper_inc": obj.upper_inc,
        }

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def convert_value_to_json_safe(value: Any) -> Any:
    """
    Convert a single value into plain JSON types.

    Values orjson cannot handle even with the default handler are
    rendered with str().
    """
    try:
        return orjson.loads(orjson.dumps(value, default=_default_handler, option=_OPTIONS))
    except TypeError:
        return str(value)


def convert_rows_to_json_safe(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Convert every value of every row into plain JSON types."""
    return [
        {key: convert_value_to_json_safe(value) for key, value in row.items()}
        for row in rows
    ]


def dumps(obj: Any, indent: bool = False) -> str:
    """
    Serialize an object to a JSON string.

    Args:
        obj: Object to serialize
        indent: Pretty-print with two-space indentation

    Returns:
        JSON string
    """
    option = _OPTIONS | orjson.OPT_INDENT_2 if indent else _OPTIONS
    return orjson.dumps(obj, default=_default_handler, option=option).decode("utf-8")


def format_rows(rows: Iterable[Mapping[str, Any]]) -> str:
    """Render result rows as an indented JSON array of objects."""
    return dumps(convert_rows_to_json_safe(rows), indent=True)
