"""
Tests for the generation service client.
"""

import json

import pytest
import requests

from slotpilot.adapters.generation_client import GenerationClient, extract_text
from slotpilot.domain.exceptions import RepairFailure, ServiceError, TransportError

from conftest import make_response

BASE_URL = "https://generation.example.test/v1beta"


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGenerationClient:
    """Tests for GenerationClient.generate."""

    def test_request_shape(self, fake_session):
        session = fake_session(response=make_response(body=_gemini_body("[]")))
        client = GenerationClient(base_url=BASE_URL, temperature=0.7, max_output_tokens=8192, session=session)

        client.generate("ctx", "30 min with design", api_key="g-key", model_id="gemini-2.0-flash")

        call = session.calls[0]
        assert call["url"] == f"{BASE_URL}/models/gemini-2.0-flash:generateContent"
        assert call["params"] == {"key": "g-key"}
        config = call["json"]["generationConfig"]
        assert config["temperature"] == 0.7
        assert config["maxOutputTokens"] == 8192
        assert config["thinkingConfig"] == {"thinkingBudget": 0}
        prompt = call["json"]["contents"][0]["parts"][0]["text"]
        assert "ctx" in prompt
        assert "30 min with design" in prompt
        assert "exactly 3 meeting options" in prompt

    def test_fenced_output_is_stripped(self, fake_session):
        payload = '[{"title": "A", "date": "Monday", "time": "t", "duration": 30, "reasoning": "r"}]'
        session = fake_session(response=make_response(body=_gemini_body(f"```json\n{payload}\n```")))
        client = GenerationClient(base_url=BASE_URL, session=session)

        assert client.generate("ctx", "prefs", "k", "m") == payload

    def test_truncated_output_is_repaired(self, fake_session):
        truncated = '[{"title": "A", "reasoning": "Quiet afternoon'
        session = fake_session(response=make_response(body=_gemini_body(truncated)))
        client = GenerationClient(base_url=BASE_URL, session=session)

        result = client.generate("ctx", "prefs", "k", "m")

        assert json.loads(result)[0]["reasoning"] == "Quiet afternoon"

    def test_unrepairable_output_returned_as_text(self, fake_session):
        session = fake_session(response=make_response(body=_gemini_body("Monday at 10 works:")))
        client = GenerationClient(base_url=BASE_URL, session=session)

        assert client.generate("ctx", "prefs", "k", "m") == "Monday at 10 works:"

    def test_unrepairable_output_raises_when_structure_required(self, fake_session):
        session = fake_session(response=make_response(body=_gemini_body("Monday at 10 works:")))
        client = GenerationClient(base_url=BASE_URL, require_structured_output=True, session=session)

        with pytest.raises(RepairFailure):
            client.generate("ctx", "prefs", "k", "m")

    def test_empty_response_raises_service_error(self, fake_session):
        session = fake_session(response=make_response(body={"candidates": []}))
        client = GenerationClient(base_url=BASE_URL, session=session)

        with pytest.raises(ServiceError, match="empty"):
            client.generate("ctx", "prefs", "k", "m")

    def test_error_body_message_is_reported(self, fake_session):
        body = {"error": {"message": "API key not valid"}}
        session = fake_session(response=make_response(status_code=400, body=body, reason="Bad Request"))
        client = GenerationClient(base_url=BASE_URL, session=session)

        with pytest.raises(TransportError, match="API key not valid"):
            client.generate("ctx", "prefs", "k", "m")

    def test_network_failure_does_not_leak_key(self, fake_session):
        error = requests.exceptions.ConnectionError("failed for url ...?key=secret")
        session = fake_session(error=error)
        client = GenerationClient(base_url=BASE_URL, session=session)

        with pytest.raises(TransportError) as exc_info:
            client.generate("ctx", "prefs", "secret", "m")

        assert "secret" not in str(exc_info.value)


def test_extract_text_handles_missing_parts():
    assert extract_text({"candidates": [{"content": {}}]}) is None
    assert extract_text(None) is None
    assert extract_text(_gemini_body("hi")) == "hi"
