import datetime
import enum
import json
from decimal import Decimal
from typing import Any, Union
from uuid import UUID

__all__ = ("decode_json", "encode_json")


def _type_to_string(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode_json(data: Any, *, as_bytes: bool = False) -> Union[str, bytes]:
    encoded = json.dumps(data, default=_type_to_string, separators=(",", ":"))
    return encoded.encode("utf-8") if as_bytes else encoded


def decode_json(data: Union[str, bytes], *, decode_bytes: bool = True) -> Any:
    if isinstance(data, bytes):
        if not decode_bytes:
            return data
        data = data.decode("utf-8")
    return json.loads(data)
