"""
Domain layer - Pure business logic without external dependencies.
"""

from .metrics import Metrics, compute_metrics
from .models import (
    BusyInterval,
    CompressionResult,
    Credentials,
    PipelineResult,
    PipelineStage,
    ScheduleCandidate,
)
from .repair import repair_json, strip_code_fences
from .slot_finder import SlotFinder, encode_schedule

__all__ = [
    "BusyInterval",
    "CompressionResult",
    "Credentials",
    "Metrics",
    "PipelineResult",
    "PipelineStage",
    "ScheduleCandidate",
    "SlotFinder",
    "compute_metrics",
    "encode_schedule",
    "repair_json",
    "strip_code_fences",
]
