"""
Client for the generative model that drafts schedule candidates.
"""

import logging
from typing import Any, Dict

import requests

from ..domain.exceptions import MalformedResponse, RepairFailure, ServiceError
from ..domain.repair import is_valid_json, repair_json, strip_code_fences
from .http import post_json, read_json, status_error

logger = logging.getLogger(__name__)

SERVICE_NAME = "Gemini API"

PROMPT_TEMPLATE = """You are an expert meeting scheduler.
Based on the following compressed calendar context and user preferences, propose 3 optimal meeting times.

COMPRESSED CALENDAR CONTEXT:
{compressed_text}

USER PREFERENCES:
{preferences_text}

OUTPUT FORMAT (JSON ONLY):
Return a valid JSON array with exactly 3 meeting options. Each option must have:
- "title": Short title (max 5 words)
- "date": Day name from the calendar (e.g., "Monday", "Tuesday")
- "time": Time range (e.g., "10:00 AM - 11:00 AM")
- "duration": Duration in minutes (number)
- "reasoning": One sentence, max 15 words, explaining why this slot works

Keep the entire response under 500 characters. Return ONLY the JSON array. No markdown, no code fences, no extra text."""


def build_prompt(compressed_text: str, preferences_text: str) -> str:
    return PROMPT_TEMPLATE.format(
        compressed_text=compressed_text,
        preferences_text=preferences_text,
    )


def _error_message(response: requests.Response) -> str | None:
    """Read ``error.message`` from an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message")
    return None


def extract_text(data: Any) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` or None."""
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class GenerationClient:
    """
    Asks the generative model for three schedule candidates as a JSON array.

    Extended reasoning is switched off (``thinkingBudget: 0``) so the whole
    output budget goes to the answer.
    """

    def __init__(
        self,
        base_url: str,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        thinking_budget: int = 0,
        require_structured_output: bool = False,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize the generation client.

        Args:
            base_url: API root, e.g. ``https://generativelanguage.googleapis.com/v1beta``
            temperature: Sampling temperature
            max_output_tokens: Upper bound on the generated output
            thinking_budget: Reasoning token budget; 0 disables it
            require_structured_output: Raise RepairFailure on unrecoverable output
                instead of returning it as opaque text
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.thinking_budget = thinking_budget
        self.require_structured_output = require_structured_output
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(self, compressed_text: str, preferences_text: str) -> Dict[str, Any]:
        return {
            "contents": [
                {"parts": [{"text": build_prompt(compressed_text, preferences_text)}]}
            ],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "thinkingConfig": {"thinkingBudget": self.thinking_budget},
            },
        }

    def generate(
        self,
        compressed_text: str,
        preferences_text: str,
        api_key: str,
        model_id: str,
    ) -> str:
        """
        Generate schedule candidates from compressed context.

        Args:
            compressed_text: Output of the compression tier
            preferences_text: The user's scheduling constraints
            api_key: Generation service key
            model_id: Model name, e.g. ``gemini-2.0-flash``

        Returns:
            JSON array text (repaired if it was truncated), or the raw text
            if it could not be repaired

        Raises:
            TransportError: On network failure or non-2xx status
            MalformedResponse: If the body is not JSON
            ServiceError: If the response carries no text
            RepairFailure: If structured output is required and cannot be recovered
        """
        response = post_json(
            self.session,
            SERVICE_NAME,
            f"{self.base_url}/models/{model_id}:generateContent",
            self.build_payload(compressed_text, preferences_text),
            self.timeout,
            params={"key": api_key},
        )
        if not response.ok:
            raise status_error(response, SERVICE_NAME, _error_message(response))

        text = extract_text(read_json(response, SERVICE_NAME))
        if not text:
            raise ServiceError(f"{SERVICE_NAME} returned an empty response")
        if not isinstance(text, str):
            raise MalformedResponse(f"{SERVICE_NAME} returned non-text content")

        cleaned = strip_code_fences(text)
        repaired = repair_json(cleaned)

        if self.require_structured_output and not is_valid_json(repaired):
            raise RepairFailure(f"{SERVICE_NAME} output is not valid JSON and could not be repaired")

        return repaired
