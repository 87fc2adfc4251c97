"""Map HTTP outcomes and transport failures to classified errors.

This is the only place that decides which ``KeycloakAPIError`` subclass a
failure becomes. It never raises; callers raise what it returns.
"""

import asyncio
import json
from http import HTTPStatus
from typing import Any

import aiohttp

from kcadmin.exceptions import (
    ConflictError,
    KeycloakAPIError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
    ValidationFailedError,
)

# Keys Keycloak uses for a human-readable error in its JSON bodies.
# Admin API uses errorMessage, the token endpoint uses error_description.
MESSAGE_KEYS = ("errorMessage", "error_description", "error", "message")

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def decode_body(raw: bytes, charset: str | None = None, errors: str = "strict") -> str:
    """Decode a response body using its declared charset (UTF-8 by default).

    Raises:
        UnicodeDecodeError: If the bytes are not valid in that encoding and
            errors is "strict"
    """
    try:
        return raw.decode(charset or "utf-8", errors)
    except LookupError:
        # unknown charset label
        return raw.decode("utf-8", errors)


def load_payload(text: str) -> Any:
    """Parse a response body as JSON, falling back to the raw text.

    Returns None for an empty body.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def error_message(status_code: int | None, payload: Any) -> str:
    """Extract the most useful message from an error payload."""
    if isinstance(payload, dict):
        for key in MESSAGE_KEYS:
            value = payload.get(key)
            if value:
                return str(value)
    if isinstance(payload, str) and payload.strip():
        return payload.strip()[:200]
    if status_code is not None:
        try:
            return HTTPStatus(status_code).phrase
        except ValueError:
            return f"HTTP {status_code}"
    return "Unknown error"


def classify_response(status_code: int, payload: Any = None, endpoint: str | None = None) -> KeycloakAPIError:
    """Classify a non-2xx admin API response.

    Args:
        status_code: HTTP status of the response
        payload: Parsed error body (see ``load_payload``)
        endpoint: Request URL, included in the message for diagnostics

    Returns:
        The classified error, ready to be raised
    """
    detail = error_message(status_code, payload)
    message = f"HTTP {status_code}: {detail}"
    if endpoint:
        message = f"{message} ({endpoint})"

    if status_code in (401, 403):
        error_class = UnauthorizedError
    elif status_code == 404:
        error_class = NotFoundError
    elif status_code == 409:
        error_class = ConflictError
    elif status_code == 400 and isinstance(payload, dict):
        error_class = ValidationFailedError
    elif 500 <= status_code < 600:
        error_class = ServerError
    else:
        error_class = KeycloakAPIError

    return error_class(message, status_code=status_code, payload=payload)


def classify_transport_error(error: BaseException, endpoint: str | None = None) -> KeycloakAPIError:
    """Classify a failure where no usable response was received."""
    if isinstance(error, aiohttp.ClientResponseError):
        # raised by aiohttp itself after a response arrived (e.g. bad headers)
        return classify_response(error.status, error.message, endpoint)

    if isinstance(error, TRANSPORT_ERRORS):
        reason = str(error) or type(error).__name__
        message = f"Failed to communicate with Keycloak: {reason}"
        if endpoint:
            message = f"{message} ({endpoint})"
        return NetworkError(message)

    return KeycloakAPIError(f"Unexpected error: {error}")


__all__ = [
    "TRANSPORT_ERRORS",
    "decode_body",
    "load_payload",
    "error_message",
    "classify_response",
    "classify_transport_error",
]
