"""Conversion of column values to requested Python types.

This backs the arbitrary-typed result shape: row 1 / column 1 is read from the
cursor and handed to :meth:`TypeConverter.convert` with the caller's target type.
"""

import datetime
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar, Union
from uuid import UUID

from procspec.utils.serializers import from_json

__all__ = (
    "TypeConverter",
    "convert_bool",
    "convert_bytes",
    "convert_decimal",
    "convert_iso_date",
    "convert_iso_datetime",
    "convert_iso_time",
    "convert_json",
    "convert_uuid",
)

T = TypeVar("T")

_TRUE_STRINGS = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "f", "false", "n", "no", "off"})


def convert_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        msg = f"Cannot convert {value!r} to bool"
        raise ValueError(msg)
    return bool(value)


def convert_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value if isinstance(value, (int, str)) else str(value))


def convert_iso_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        # fromisoformat only accepts a trailing Z from Python 3.11
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return datetime.datetime.fromisoformat(value)
    msg = f"Cannot convert {type(value).__name__} to datetime"
    raise TypeError(msg)


def convert_iso_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return datetime.date.fromisoformat(value[:10])
    msg = f"Cannot convert {type(value).__name__} to date"
    raise TypeError(msg)


def convert_iso_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, str):
        return datetime.time.fromisoformat(value)
    msg = f"Cannot convert {type(value).__name__} to time"
    raise TypeError(msg)


def convert_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, (bytes, bytearray)):
        return UUID(bytes=bytes(value))
    return UUID(str(value))


def convert_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def convert_json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return from_json(value)
    return value


class TypeConverter:
    """Converts driver column values to a requested Python type.

    Values that already have the target type are returned unchanged. Types without a
    registered converter are constructed directly from the value.
    """

    __slots__ = ("_converters",)

    def __init__(self, converters: "Optional[dict[type, Callable[[Any], Any]]]" = None) -> None:
        self._converters: dict[type, Callable[[Any], Any]] = {
            bool: convert_bool,
            int: int,
            float: float,
            str: str,
            Decimal: convert_decimal,
            datetime.datetime: convert_iso_datetime,
            datetime.date: convert_iso_date,
            datetime.time: convert_iso_time,
            UUID: convert_uuid,
            bytes: convert_bytes,
            dict: convert_json,
            list: convert_json,
        }
        if converters:
            self._converters.update(converters)

    def register(self, target_type: "type[T]", converter: "Callable[[Any], T]") -> None:
        self._converters[target_type] = converter

    def convert(self, value: Any, target_type: "type[T]") -> "Optional[T]":
        """Convert ``value`` to ``target_type``.

        Args:
            value: Raw column value from the driver.
            target_type: Requested Python type.

        Raises:
            TypeError: If the value cannot be converted.
            ValueError: If the value has the wrong format for the target type.

        Returns:
            The converted value, or ``None`` for SQL NULL.
        """
        if value is None:
            return None
        if type(value) is target_type:
            return value
        if isinstance(value, memoryview):
            value = value.tobytes()
        converter: Union[Callable[[Any], Any], type[T]] = self._converters.get(target_type, target_type)
        result = converter(value)
        if target_type in {dict, list} and not isinstance(result, target_type):
            msg = f"Column value decoded to {type(result).__name__}, expected {target_type.__name__}"
            raise TypeError(msg)
        return result  # type: ignore[no-any-return]
