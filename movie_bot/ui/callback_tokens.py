"""Compact JSON payloads carried by inline buttons.

Telegram echoes ``callback_data`` back verbatim when a button is pressed and
rejects payloads above 64 bytes, so tokens are serialized without whitespace
and checked against that limit at build time.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from ..config import CALLBACK_DATA_MAX_BYTES
from ..services.media_models import MediaType

_TYPE_ALIASES = {"series": MediaType.TV, "show": MediaType.TV}


@dataclass(frozen=True)
class TypeChoice:
    media_type: MediaType


@dataclass(frozen=True)
class ItemChoice:
    index: int


CallbackToken = Union[TypeChoice, ItemChoice]


def _encode(payload: dict[str, Any]) -> str:
    data = json.dumps(payload, separators=(",", ":"))
    if len(data.encode("utf-8")) > CALLBACK_DATA_MAX_BYTES:
        raise ValueError(
            f"Callback payload {data!r} exceeds {CALLBACK_DATA_MAX_BYTES} bytes."
        )
    return data


def encode_type_token(media_type: MediaType) -> str:
    return _encode({"type": media_type.value})


def encode_index_token(index: int) -> str:
    return _encode({"index": index})


def decode_token(data: str | None) -> CallbackToken | None:
    """Parses a button payload. Returns None for anything that is not a known token."""
    if not data:
        return None
    try:
        payload = json.loads(data)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    if "type" in payload:
        raw_type = payload["type"]
        if not isinstance(raw_type, str):
            return None
        lowered = raw_type.strip().lower()
        if lowered in _TYPE_ALIASES:
            return TypeChoice(_TYPE_ALIASES[lowered])
        try:
            return TypeChoice(MediaType(lowered))
        except ValueError:
            return None

    if "index" in payload:
        raw_index = payload["index"]
        # bool is an int subclass; reject it explicitly
        if isinstance(raw_index, bool) or not isinstance(raw_index, int):
            return None
        return ItemChoice(raw_index)

    return None
