"""
Tests for domain models.
"""

import json

import pendulum

from slotpilot.domain.models import (
    BusyInterval,
    CompressionResult,
    Credentials,
    PipelineResult,
    PipelineStage,
    ScheduleCandidate,
    parse_candidates,
)


class TestScheduleCandidate:
    """Tests for ScheduleCandidate model."""

    def test_duration_uses_wire_alias(self):
        """Test that duration is read and written under its wire name."""
        candidate = ScheduleCandidate.model_validate(
            {"title": "Sync", "date": "Monday", "time": "9:00 AM - 9:30 AM", "duration": 30, "reasoning": "Free"}
        )

        assert candidate.duration_minutes == 30
        assert candidate.to_wire()["duration"] == 30
        assert "duration_minutes" not in candidate.to_wire()

    def test_duration_with_unit_text(self):
        candidate = ScheduleCandidate.model_validate({"duration": "45 minutes"})

        assert candidate.duration_minutes == 45


class TestParseCandidates:
    """Tests for parse_candidates."""

    def test_fenced_array(self):
        payload = '```json\n[{"title": "A", "date": "Friday", "time": "t", "duration": 15, "reasoning": "r"}]\n```'

        candidates = parse_candidates(payload)

        assert candidates is not None
        assert candidates[0].date == "Friday"
        assert candidates[0].duration_minutes == 15

    def test_plain_text_returns_none(self):
        assert parse_candidates("Monday at 10 looks good") is None

    def test_object_instead_of_array_returns_none(self):
        assert parse_candidates('{"title": "A"}') is None

    def test_invalid_item_returns_none(self):
        assert parse_candidates('[{"duration": "soon"}]') is None

    def test_empty_payload_returns_none(self):
        assert parse_candidates("   ") is None


class TestPipelineResult:
    """Tests for PipelineResult model."""

    def test_stage_not_serialised(self):
        """Provenance never changes the result schema."""
        result = PipelineResult(schedule="[]", stage=PipelineStage.HEURISTIC_FALLBACK)

        data = json.loads(result.model_dump_json())

        assert set(data) == {"status", "schedule", "compressed_text", "metrics"}

    def test_schedule_list_is_encoded(self):
        result = PipelineResult.model_validate(
            {"status": "success", "schedule": [{"title": "A"}], "compressed_text": "x", "metrics": {}}
        )

        assert json.loads(result.schedule) == [{"title": "A"}]
        assert result.candidates()[0].title == "A"

    def test_display_text_has_banner_in_degraded_modes(self):
        offline = PipelineResult(compressed_text="ctx", stage=PipelineStage.HEURISTIC_FALLBACK)
        direct = PipelineResult(compressed_text="ctx", stage=PipelineStage.DIRECT_COMPRESSION)
        backend = PipelineResult(compressed_text="ctx", stage=PipelineStage.BACKEND)

        assert offline.display_text().startswith("All APIs Unreachable")
        assert direct.display_text().startswith("Running via Direct API Mode")
        assert backend.display_text() == "ctx"


class TestPipelineStage:
    """Tests for PipelineStage helpers."""

    def test_direct_stages_share_banner(self):
        assert PipelineStage.DIRECT_COMPRESSION.is_direct
        assert PipelineStage.DIRECT_GENERATION.is_direct
        assert not PipelineStage.BACKEND.is_direct
        assert PipelineStage.DIRECT_COMPRESSION.banner == PipelineStage.DIRECT_GENERATION.banner
        assert PipelineStage.BACKEND.banner is None


class TestCredentials:
    """Tests for Credentials model."""

    def test_whitespace_keys_count_as_missing(self):
        credentials = Credentials(api_key="  ", gemini_api_key="")

        assert not credentials.has_compression_key
        assert not credentials.has_generation_key

    def test_present_keys(self):
        credentials = Credentials(api_key="sd-key", gemini_api_key="g-key")

        assert credentials.has_compression_key
        assert credentials.has_generation_key


class TestValueObjects:
    """Tests for the frozen dataclasses."""

    def test_compression_result_ratio(self):
        result = CompressionResult(compressed_text="x" * 25, raw_size=100, compressed_size=25, latency_ms=12.0)

        assert result.ratio == 75.0

    def test_busy_interval_is_hashable(self):
        interval = BusyInterval(day="MONDAY", start=pendulum.time(9, 0), end=pendulum.time(10, 0))

        assert interval in {interval}
