"""
Tests for the metrics calculator.
"""

import pytest
from pydantic import ValidationError

from slotpilot.domain.metrics import (
    SPEEDUP_REAL_AI,
    Metrics,
    compression_ratio,
    compute_metrics,
    format_ratio,
)


class TestComputeMetrics:
    """Tests for compute_metrics."""

    def test_ratio_against_raw_size(self):
        """Ratio is the share of the input removed, to one decimal."""
        metrics = compute_metrics(raw_size=200, compressed_size=50)

        assert metrics.compression_ratio == "75.0%"
        assert metrics.raw_input_size == 200
        assert metrics.compressed_input_size == 50

    def test_ratio_rounds_to_one_decimal(self):
        metrics = compute_metrics(raw_size=3, compressed_size=1)

        assert metrics.compression_ratio == "66.7%"

    def test_zero_raw_size_uses_divisor_of_one(self):
        """An empty input must not divide by zero."""
        metrics = compute_metrics(raw_size=0, compressed_size=0)

        assert metrics.compression_ratio == "100.0%"
        assert compression_ratio(0, 5) == -400.0

    def test_expansion_gives_negative_ratio(self):
        metrics = compute_metrics(raw_size=10, compressed_size=15)

        assert metrics.compression_ratio == "-50.0%"

    def test_latencies_rounded_and_summed(self):
        """Total is the sum of unrounded latencies, rounded once."""
        metrics = compute_metrics(
            raw_size=100,
            compressed_size=40,
            compression_latency_ms=10.4,
            generation_latency_ms=20.4,
            speedup_factor=SPEEDUP_REAL_AI,
        )

        assert metrics.compression_latency_ms == 10
        assert metrics.generation_latency_ms == 20
        assert metrics.total_pipeline_ms == 31
        assert metrics.speedup_factor == "Real AI"

    def test_offline_defaults(self):
        metrics = compute_metrics(raw_size=10, compressed_size=5)

        assert metrics.compression_latency_ms == 0
        assert metrics.generation_latency_ms == 0
        assert metrics.total_pipeline_ms == 0
        assert metrics.speedup_factor == "N/A (Offline)"


class TestMetricsModel:
    """Tests for normalising metrics reported by a backend."""

    def test_numeric_ratio_is_formatted(self):
        metrics = Metrics.model_validate({"compression_ratio": 0.425})

        assert metrics.compression_ratio == "42.5%"

    def test_string_ratio_is_kept(self):
        metrics = Metrics.model_validate({"compression_ratio": "12.0%"})

        assert metrics.compression_ratio == "12.0%"

    def test_string_and_float_latencies_are_rounded(self):
        metrics = Metrics.model_validate(
            {
                "compression_latency_ms": "123",
                "generation_latency_ms": 45.6,
                "total_pipeline_ms": "",
            }
        )

        assert metrics.compression_latency_ms == 123
        assert metrics.generation_latency_ms == 46
        assert metrics.total_pipeline_ms == 0

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), "1e999", "nan"])
    def test_non_finite_latency_is_rejected(self, value):
        with pytest.raises(ValidationError, match="finite"):
            Metrics.model_validate({"total_pipeline_ms": value})

    def test_format_ratio(self):
        assert format_ratio(33.333) == "33.3%"
