"""Detection of CloudEvents envelopes in serialized event payloads."""

from __future__ import annotations

import json

_REQUIRED_FIELDS = ("id", "source", "specversion", "type")


def _reject_constant(name: str) -> None:
    raise ValueError(f"invalid JSON constant {name}")


def is_cloud_event(event: bytes | bytearray | str) -> bool:
    """Return True when the JSON event carries non-empty id, source, specversion and type."""
    if isinstance(event, (bytes, bytearray)):
        text = bytes(event).decode("utf-8", errors="replace")
    else:
        text = event
    try:
        document = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return False
    if not isinstance(document, dict):
        return False

    found = dict.fromkeys(_REQUIRED_FIELDS, "")
    for key, value in document.items():
        name = key.lower()
        if name not in found or value is None:
            continue
        if not isinstance(value, str):
            return False
        found[name] = value
    return all(found.values())