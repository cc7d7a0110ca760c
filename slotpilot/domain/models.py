"""
Domain models shared by every tier of the scheduling pipeline.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Literal

from pendulum import Time
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .metrics import Metrics, compression_ratio
from .repair import strip_code_fences


class PipelineStage(str, Enum):
    """
    Which tier produced a result.

    Used for logging and display only; the result shape never depends on it.
    """
    BACKEND = "backend"
    DIRECT_COMPRESSION = "direct_compression"
    DIRECT_GENERATION = "direct_generation"
    HEURISTIC_FALLBACK = "heuristic_fallback"

    @property
    def is_direct(self) -> bool:
        return self in (PipelineStage.DIRECT_COMPRESSION, PipelineStage.DIRECT_GENERATION)

    @property
    def banner(self) -> str | None:
        """Notice shown above the compressed text for degraded modes."""
        if self.is_direct:
            return "Running via Direct API Mode (No Backend Required)"
        if self is PipelineStage.HEURISTIC_FALLBACK:
            return "All APIs Unreachable. Running in Offline Demo Mode."
        return None


class ScheduleCandidate(BaseModel):
    """A proposed meeting slot."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    date: str = ""
    time: str = ""
    duration_minutes: int = Field(default=30, alias="duration")
    reasoning: str = ""

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def parse_duration(cls, value):
        """Models sometimes answer ``"30 minutes"`` instead of ``30``."""
        if isinstance(value, str):
            match = re.match(r"\s*(\d+)", value)
            if match:
                return int(match.group(1))
        return value

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


def parse_candidates(payload: str) -> List[ScheduleCandidate] | None:
    """
    Parse a schedule payload into candidates.

    Returns None when the payload is not a JSON array of candidate objects,
    in which case callers should show it as plain text.
    """
    cleaned = strip_code_fences(payload)
    if not cleaned:
        return None

    try:
        data = json.loads(cleaned)
    except ValueError:
        return None

    if not isinstance(data, list):
        return None

    try:
        return [ScheduleCandidate.model_validate(item) for item in data]
    except ValidationError:
        return None


class PipelineResult(BaseModel):
    """
    The single value returned to callers, whichever tier produced it.

    ``stage`` records provenance and is excluded from serialisation.
    """
    status: Literal["success", "error"] = "success"
    schedule: str = ""
    compressed_text: str = ""
    metrics: Metrics = Field(default_factory=Metrics)
    stage: PipelineStage = Field(default=PipelineStage.BACKEND, exclude=True)

    @field_validator("schedule", mode="before")
    @classmethod
    def encode_schedule(cls, value):
        """A backend may send the candidate list itself rather than its JSON text."""
        if isinstance(value, (list, dict)):
            return json.dumps(value)
        if value is None:
            return ""
        return value

    def candidates(self) -> List[ScheduleCandidate] | None:
        return parse_candidates(self.schedule)

    def display_text(self) -> str:
        """Compressed text, prefixed with the provenance banner in degraded modes."""
        banner = self.stage.banner
        if banner:
            return f"{banner}\n\n{self.compressed_text}"
        return self.compressed_text


class Credentials(BaseModel):
    """Keys supplied by the caller for one pipeline invocation."""
    api_key: str = ""
    gemini_api_key: str = ""
    gemini_model: str = ""

    @property
    def has_compression_key(self) -> bool:
        return bool(self.api_key.strip())

    @property
    def has_generation_key(self) -> bool:
        return bool(self.gemini_api_key.strip())


@dataclass(frozen=True)
class BusyInterval:
    """
    A busy block parsed from calendar text, attributed to one weekday.
    """
    day: str
    start: Time
    end: Time


@dataclass(frozen=True)
class CompressionResult:
    """
    Output of the compression service plus the measurements taken around it.
    """
    compressed_text: str
    raw_size: int
    compressed_size: int
    latency_ms: float

    @property
    def ratio(self) -> float:
        return compression_ratio(self.raw_size, self.compressed_size)
