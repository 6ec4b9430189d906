from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request
from typing import Any


LOGGER = logging.getLogger("rental_dashboard.api_client")

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"
_DEFAULT_TIMEOUT_SECONDS = 20.0


class RentalApiError(RuntimeError):
    pass


class RentalApiTransportError(RentalApiError):
    pass


class RentalApiRejection(RentalApiError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _require_env(name: str) -> str:
    value = (os.environ.get(name) or "").strip()
    if not value:
        raise RentalApiTransportError(f"Missing required environment variable: {name}")
    return value


def _build_auth_header_value(token: str, scheme: str) -> str:
    if not scheme:
        return token
    return f"{scheme} {token}"


def _timeout_seconds() -> float:
    raw = (os.environ.get("RENTAL_API_TIMEOUT_SECONDS") or "").strip()
    if not raw:
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        return max(float(raw), 1.0)
    except ValueError:
        return _DEFAULT_TIMEOUT_SECONDS


def _build_headers() -> dict[str, str]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    token = (os.environ.get("RENTAL_API_TOKEN") or "").strip()
    if token:
        auth_header_name = (os.environ.get("RENTAL_API_AUTH_HEADER") or "Authorization").strip()
        auth_scheme = (os.environ.get("RENTAL_API_AUTH_SCHEME") or "Bearer").strip()
        headers[auth_header_name] = _build_auth_header_value(token, auth_scheme)
    return headers


def _extract_error_message(raw_body: bytes) -> str:
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return DEFAULT_ERROR_MESSAGE
    if isinstance(payload, dict):
        message = str(payload.get("error") or payload.get("message") or "").strip()
        if message:
            return message
    return DEFAULT_ERROR_MESSAGE


def _read_error_body(exc: urllib.error.HTTPError) -> bytes:
    try:
        return exc.read() or b""
    except (AttributeError, OSError):
        return b""


def post_json(path: str, payload: dict[str, Any]) -> dict[str, Any]:
    """POST ``payload`` to the rental API and return the decoded JSON object.

    Blocking; async callers run it through ``asyncio.to_thread``.
    """
    base_url = _require_env("RENTAL_API_BASE_URL").rstrip("/")
    url = f"{base_url}/{path.lstrip('/')}"
    request = urllib.request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        headers=_build_headers(),
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=_timeout_seconds()) as response:
            body = json.loads(response.read().decode("utf-8"))
            if not isinstance(body, dict):
                raise RentalApiRejection("Rental API payload is not an object", response.status)
            return body
    except urllib.error.HTTPError as exc:
        message = _extract_error_message(_read_error_body(exc))
        LOGGER.warning("Rental API rejected url=%s status=%s error=%s", url, exc.code, message)
        raise RentalApiRejection(message, exc.code) from exc
    except urllib.error.URLError as exc:
        LOGGER.warning("Rental API unreachable url=%s reason=%s", url, exc.reason)
        raise RentalApiTransportError(f"Rental API connection error: {exc.reason}") from exc
    except TimeoutError as exc:
        LOGGER.warning("Rental API timed out url=%s", url)
        raise RentalApiTransportError("Rental API request timed out") from exc
    except OSError as exc:
        LOGGER.warning("Rental API transport failure url=%s error=%s", url, exc)
        raise RentalApiTransportError(f"Rental API transport error: {exc}") from exc
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        LOGGER.warning("Rental API returned an undecodable body url=%s error=%s", url, exc)
        raise RentalApiRejection("Rental API returned invalid JSON") from exc
