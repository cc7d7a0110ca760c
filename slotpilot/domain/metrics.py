"""
Size, ratio and latency metrics reported with every pipeline result.

The calculator functions are pure and cannot fail. The Metrics model
rejects non-finite latencies reported by a remote service.
"""

import math

from pydantic import BaseModel, field_validator

SPEEDUP_REAL_AI = "Real AI"
SPEEDUP_NO_GENERATION_KEY = "N/A (No Gemini Key)"
SPEEDUP_GENERATION_FAILED = "N/A (Generation Failed)"
SPEEDUP_OFFLINE = "N/A (Offline)"


def compression_ratio(raw_size: int, compressed_size: int) -> float:
    """
    Percentage of the input removed by compression.

    Negative when the "compressed" text is longer than the input.
    """
    return 100 * (1 - compressed_size / max(raw_size, 1))


def format_ratio(ratio: float) -> str:
    """Format a percentage with one decimal place, e.g. ``42.0%``."""
    return f"{ratio:.1f}%"


def round_ms(latency_ms: float) -> int:
    return int(round(latency_ms))


class Metrics(BaseModel):
    """Metrics block of a pipeline result, in the shape the backend reports it."""
    raw_input_size: int = 0
    compressed_input_size: int = 0
    compression_ratio: str = format_ratio(0.0)
    compression_latency_ms: int = 0
    generation_latency_ms: int = 0
    total_pipeline_ms: int = 0
    speedup_factor: str = ""

    @field_validator("compression_ratio", mode="before")
    @classmethod
    def normalise_ratio(cls, value):
        """Accept a bare fraction (0.42) as well as a formatted string."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return format_ratio(value * 100)
        return value

    @field_validator(
        "compression_latency_ms",
        "generation_latency_ms",
        "total_pipeline_ms",
        mode="before",
    )
    @classmethod
    def round_latency(cls, value):
        """Latencies may arrive as fractional numbers or numeric strings."""
        if isinstance(value, str):
            value = float(value) if value.strip() else 0.0
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"latency must be a finite number, got {value}")
            return round_ms(value)
        return value


def compute_metrics(
    raw_size: int,
    compressed_size: int,
    compression_latency_ms: float = 0.0,
    generation_latency_ms: float = 0.0,
    speedup_factor: str = SPEEDUP_OFFLINE,
) -> Metrics:
    """
    Build the metrics block for one pipeline run.

    Args:
        raw_size: Characters of calendar plus preference text
        compressed_size: Characters of the compressed context
        compression_latency_ms: Wall-clock time of the compression call
        generation_latency_ms: Wall-clock time of the generation call
        speedup_factor: Display label describing how the schedule was produced

    Returns:
        Metrics with the ratio formatted and latencies rounded to whole ms
    """
    total_ms = compression_latency_ms + generation_latency_ms

    return Metrics(
        raw_input_size=raw_size,
        compressed_input_size=compressed_size,
        compression_ratio=format_ratio(compression_ratio(raw_size, compressed_size)),
        compression_latency_ms=round_ms(compression_latency_ms),
        generation_latency_ms=round_ms(generation_latency_ms),
        total_pipeline_ms=round_ms(total_ms),
        speedup_factor=speedup_factor,
    )
