"""
Shared fixtures for HTTP adapter tests.
"""

import json
from typing import Any, Dict, List

import pytest
import requests


def make_response(status_code: int = 200, body: Any = None, text: str | None = None, reason: str = "OK") -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    return response


class FakeSession:
    """Stands in for requests.Session, returning queued responses."""

    def __init__(self, response: requests.Response | None = None, error: Exception | None = None):
        self._response = response
        self._error = error
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append(
            {
                "url": url,
                "headers": headers,
                "params": params,
                "json": json,
                "timeout": timeout,
            }
        )
        if self._error is not None:
            raise self._error
        return self._response

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Factory fixture: ``fake_session(response=..., error=...)``."""
    return FakeSession
