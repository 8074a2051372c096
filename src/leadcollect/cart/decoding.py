"""Persisted cart payload decoding.

Cart payloads reach us in several shapes depending on the host version:
compressed or plain, PHP-serialized object graphs or JSON. Decoding runs a
fixed chain and stops at the first step that yields a mapping:

    1. decompress (zlib or gzip); "not compressed" is not an error
    2. PHP unserialize; objects become dicts, collections become lists
    3. JSON

A payload that survives none of the steps raises ``DecodeError``.
"""

import json
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import Any

import phpserialize

from leadcollect.errors import DecodeError


class PayloadFormat(Enum):
    SERIALIZED = "serialized"
    JSON = "json"


@dataclass(frozen=True)
class DecodedPayload:
    """Result of a successful decode — the format tag plus the cart mapping."""

    format: PayloadFormat
    compressed: bool
    data: dict


def decode_payload(raw: bytes | str | None) -> DecodedPayload:
    """Decode a raw cart payload into a mapping."""
    if raw is None or len(raw) == 0:
        raise DecodeError("Cart payload is empty")

    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)

    compressed = False
    inflated = _decompress(data)
    if inflated is not None:
        data = inflated
        compressed = True

    decoded = _unserialize(data)
    if decoded is not None:
        return DecodedPayload(format=PayloadFormat.SERIALIZED, compressed=compressed, data=decoded)

    decoded = _json(data)
    if decoded is not None:
        return DecodedPayload(format=PayloadFormat.JSON, compressed=compressed, data=decoded)

    raise DecodeError("Cart payload is neither PHP-serialized nor JSON")


def _decompress(data: bytes) -> bytes | None:
    try:
        # 32 + MAX_WBITS accepts both zlib (gzcompress) and gzip headers
        return zlib.decompress(data, zlib.MAX_WBITS | 32)
    except zlib.error:
        return None


def _unserialize(data: bytes) -> dict | None:
    try:
        value = phpserialize.loads(
            data,
            decode_strings=True,
            object_hook=_php_object,
            array_hook=_php_array,
        )
    except (ValueError, TypeError, IndexError, UnicodeDecodeError):
        return None
    return _as_cart_mapping(value)


def _json(data: bytes) -> dict | None:
    try:
        value = json.loads(data)
    except (ValueError, UnicodeDecodeError):
        return None
    return _as_cart_mapping(value)


def _as_cart_mapping(value: Any) -> dict | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        # A bare array is a list of line items
        return {"lineItems": value}
    return None


def _php_array(pairs: list[tuple]) -> dict | list:
    """Turn a PHP array into a list when its keys are 0..n-1, else a dict."""
    keys = [key for key, _ in pairs]
    if keys == list(range(len(pairs))):
        return [value for _, value in pairs]
    return {_property_name(key): value for key, value in pairs}


def _php_object(class_name: str, properties: dict) -> dict | list:
    """Flatten a PHP object to a plain mapping.

    Private and protected properties carry ``\\0Class\\0`` / ``\\0*\\0``
    prefixes, which are stripped. Collection objects are reduced to the
    values of their ``elements`` map.
    """
    if isinstance(class_name, bytes):
        class_name = class_name.decode("utf-8", "replace")
    flattened = {_property_name(key): value for key, value in properties.items()}

    elements = flattened.get("elements")
    if class_name.endswith("Collection") and elements is not None:
        if isinstance(elements, dict):
            return list(elements.values())
        return list(elements)

    return flattened


def _property_name(key: Any) -> Any:
    if isinstance(key, str) and key.startswith("\x00"):
        return key.rsplit("\x00", 1)[-1]
    return key
