from __future__ import annotations

import os
import secrets
import threading
import time
from typing import Any

from services.negotiation_controller import NegotiationController


NEGOTIATION_TTL_SECONDS = int(os.environ.get("NEGOTIATION_TTL_SECONDS") or str(60 * 60 * 4))

_LOCK = threading.Lock()
_NEGOTIATIONS: dict[str, dict[str, Any]] = {}


def open_negotiation(service) -> tuple[str, NegotiationController]:
    negotiation_id = secrets.token_hex(16)
    controller = NegotiationController(service, strict=True)
    with _LOCK:
        _NEGOTIATIONS[negotiation_id] = {
            "controller": controller,
            "expiresAt": time.time() + NEGOTIATION_TTL_SECONDS,
        }
    return negotiation_id, controller


def get_negotiation(negotiation_id: str | None) -> NegotiationController | None:
    if not negotiation_id:
        return None
    now = time.time()
    with _LOCK:
        entry = _NEGOTIATIONS.get(negotiation_id)
        if not entry:
            return None
        if now >= entry["expiresAt"]:
            _NEGOTIATIONS.pop(negotiation_id, None)
            entry["controller"].close()
            return None
        entry["expiresAt"] = now + NEGOTIATION_TTL_SECONDS
        return entry["controller"]


def close_negotiation(negotiation_id: str | None) -> bool:
    if not negotiation_id:
        return False
    with _LOCK:
        entry = _NEGOTIATIONS.pop(negotiation_id, None)
    if not entry:
        return False
    entry["controller"].close()
    return True


def prune_expired_negotiations(now: float | None = None) -> int:
    current = time.time() if now is None else now
    with _LOCK:
        expired = [key for key, entry in _NEGOTIATIONS.items() if current >= entry["expiresAt"]]
        entries = [_NEGOTIATIONS.pop(key) for key in expired]
    for entry in entries:
        entry["controller"].close()
    return len(entries)


def clear_negotiations() -> None:
    with _LOCK:
        entries = list(_NEGOTIATIONS.values())
        _NEGOTIATIONS.clear()
    for entry in entries:
        entry["controller"].close()
