"""
Small helpers shared by the HTTP adapters.
"""

from typing import Any, Dict

import requests

from ..domain.exceptions import MalformedResponse, TransportError


def post_json(
    session: requests.Session,
    service: str,
    url: str,
    payload: Dict[str, Any],
    timeout: float,
    headers: Dict[str, str] | None = None,
    params: Dict[str, str] | None = None,
) -> requests.Response:
    """
    POST a JSON body, translating transport failures into TransportError.

    Non-2xx responses are returned as-is so callers can read error bodies.
    Exception messages name the service, never the URL, since some
    services take their key as a query parameter.
    """
    request_headers = {"Content-Type": "application/json"}
    request_headers.update(headers or {})

    try:
        return session.post(
            url,
            headers=request_headers,
            params=params,
            json=payload,
            timeout=timeout,
        )
    except requests.exceptions.RequestException as exc:
        raise TransportError(f"{service} unreachable: {type(exc).__name__}") from exc
    except (UnicodeError, ValueError) as exc:
        # Keys that cannot be encoded into a header or query string
        raise TransportError(f"{service} request could not be encoded: {type(exc).__name__}") from exc


def read_json(response: requests.Response, service: str) -> Any:
    """Decode a response body, raising MalformedResponse when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponse(f"{service} returned a non-JSON body") from exc


def status_error(response: requests.Response, service: str, detail: str | None = None) -> TransportError:
    """Build the error raised for a non-success HTTP status."""
    return TransportError(
        f"{service} error ({response.status_code}): {detail or response.reason}"
    )
