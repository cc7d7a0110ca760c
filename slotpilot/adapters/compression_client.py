"""
Client for the context-compression service.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Tuple

import requests

from ..domain.models import CompressionResult
from .http import post_json, read_json, status_error

logger = logging.getLogger(__name__)

SERVICE_NAME = "Compression API"


def _nested(*keys: str) -> Callable[[Any], Any]:
    """Build an extractor that walks ``keys`` through nested dicts."""
    def extract(data: Any) -> Any:
        for key in keys:
            if not isinstance(data, dict):
                return None
            data = data.get(key)
        return data
    return extract


# Tried in order; the first non-empty string wins.
EXTRACTION_STRATEGIES: List[Tuple[str, Callable[[Any], Any]]] = [
    ("results.compressed_prompt", _nested("results", "compressed_prompt")),
    ("compressed_prompt", _nested("compressed_prompt")),
    ("compressed_text", _nested("compressed_text")),
    ("text", _nested("text")),
]


def extract_compressed_text(data: Any) -> str:
    """
    Pull the compressed text out of a response of unknown shape.

    Falls back to the serialised response, so the result is never empty.
    """
    for name, strategy in EXTRACTION_STRATEGIES:
        value = strategy(data)
        if isinstance(value, str) and value:
            logger.debug("Compressed text found at '%s'", name)
            return value

    logger.debug("No known field in compression response, using the whole body")
    return json.dumps(data)


def build_prompt(preferences_text: str) -> str:
    return f"Based on the context, schedule a meeting with these constraints: {preferences_text}"


class CompressionClient:
    """
    Compresses the calendar into a shorter context for the generative model.
    """

    def __init__(
        self,
        url: str,
        model: str = "gpt-4o",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize the compression client.

        Args:
            url: Compression endpoint
            model: Target model name the compression is tuned for
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.url = url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def compress(
        self,
        calendar_text: str,
        preferences_text: str,
        api_key: str,
    ) -> CompressionResult:
        """
        Compress calendar text with the preferences as the prompt.

        Returns:
            CompressionResult with sizes and the measured latency

        Raises:
            TransportError: On network failure or non-2xx status
            MalformedResponse: If the body is not JSON
        """
        raw_size = len(calendar_text) + len(preferences_text)
        payload: Dict[str, Any] = {
            "context": calendar_text,
            "prompt": build_prompt(preferences_text),
            "model": self.model,
            "scaledown": {"rate": "auto"},
        }

        started = time.perf_counter()
        response = post_json(
            self.session,
            SERVICE_NAME,
            self.url,
            payload,
            self.timeout,
            headers={"x-api-key": api_key},
        )
        latency_ms = (time.perf_counter() - started) * 1000

        if not response.ok:
            raise status_error(response, SERVICE_NAME)

        compressed_text = extract_compressed_text(read_json(response, SERVICE_NAME))

        result = CompressionResult(
            compressed_text=compressed_text,
            raw_size=raw_size,
            compressed_size=len(compressed_text),
            latency_ms=latency_ms,
        )
        logger.info(
            "Compressed %d -> %d chars (%.1f%%) in %.0f ms",
            result.raw_size,
            result.compressed_size,
            result.ratio,
            latency_ms,
        )
        return result
