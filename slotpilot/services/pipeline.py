"""
The tiered scheduling pipeline.

Tiers are tried in a fixed order, one network call at a time:

1. remote orchestration backend
2. direct compression, then direct generation (or the local heuristic
   when there is no generation key or generation fails)
3. offline mode: local compression approximation plus the local heuristic

Every tier failure is caught here and turned into a move to the next
tier, so ``run`` always resolves to a PipelineResult.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Protocol, Tuple

import requests

from ..adapters import CompressionClient, GenerationClient, OrchestrationClient
from ..config import AppConfig
from ..domain.exceptions import CredentialMissing, ServiceError, SlotPilotError
from ..domain.metrics import (
    SPEEDUP_GENERATION_FAILED,
    SPEEDUP_NO_GENERATION_KEY,
    SPEEDUP_OFFLINE,
    SPEEDUP_REAL_AI,
    compute_metrics,
)
from ..domain.models import CompressionResult, Credentials, PipelineResult, PipelineStage
from ..domain.slot_finder import SlotFinder, encode_schedule

logger = logging.getLogger(__name__)

OFFLINE_HEADER = "CONTEXT: SCHEDULE OPTIMIZATION"
OFFLINE_MAX_LINES = 10
OFFLINE_PREFERENCE_CHARS = 50
_SCHEDULING_KEYWORDS = ("time", "schedule")
_DIGIT = re.compile(r"\d")


class OrchestrationClientProtocol(Protocol):
    """Protocol describing the backend client behaviour needed by the pipeline."""

    def optimize(
        self,
        calendar_text: str,
        preferences_text: str,
        credentials: Credentials,
    ) -> PipelineResult:
        """Run the whole pipeline remotely."""


class CompressionClientProtocol(Protocol):
    """Protocol describing the compression client behaviour needed by the pipeline."""

    def compress(
        self,
        calendar_text: str,
        preferences_text: str,
        api_key: str,
    ) -> CompressionResult:
        """Return the compressed context with sizes and latency."""


class GenerationClientProtocol(Protocol):
    """Protocol describing the generation client behaviour needed by the pipeline."""

    def generate(
        self,
        compressed_text: str,
        preferences_text: str,
        api_key: str,
        model_id: str,
    ) -> str:
        """Return the schedule payload produced by the model."""


Attempt = Callable[[str, str, Credentials], Awaitable[PipelineResult]]


@dataclass(frozen=True)
class _DirectSchedule:
    schedule: str
    stage: PipelineStage
    generation_latency_ms: float
    speedup_factor: str


def compress_locally(calendar_text: str, preferences_text: str) -> str:
    """
    Approximate compression without any service.

    Keeps calendar lines mentioning a digit or a scheduling keyword, capped
    at ten, between a fixed header and a truncated preference line.
    """
    kept = [
        line.strip()
        for line in calendar_text.split("\n")
        if _DIGIT.search(line) or any(word in line.lower() for word in _SCHEDULING_KEYWORDS)
    ]
    kept = [line for line in kept if line][:OFFLINE_MAX_LINES]

    lines = [OFFLINE_HEADER, *kept, f"PREFERENCES: {preferences_text[:OFFLINE_PREFERENCE_CHARS]}..."]
    return "\n".join(lines)


class SchedulingPipeline:
    """
    Orchestrates the fallback chain from remote tiers to the local heuristic.

    Clients are typed against protocols so stubs can replace the HTTP
    adapters in tests. Each blocking client call runs in a worker thread
    and is awaited before the next tier starts.
    """

    def __init__(
        self,
        compression_client: CompressionClientProtocol,
        generation_client: GenerationClientProtocol,
        orchestration_client: OrchestrationClientProtocol | None = None,
        default_model: str = "gemini-2.0-flash",
        slot_finder: SlotFinder | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._orchestration_client = orchestration_client
        self._compression_client = compression_client
        self._generation_client = generation_client
        self._default_model = default_model
        self._slot_finder = slot_finder or SlotFinder()
        self._session = session

    def __enter__(self) -> "SchedulingPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP session shared by the adapters, if this pipeline owns one."""
        if self._session is not None:
            self._session.close()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        session: requests.Session | None = None,
    ) -> "SchedulingPipeline":
        """
        Build a pipeline wired to the HTTP adapters described by ``config``.

        All adapters share one session, closed with the pipeline.
        """
        session = session or requests.Session()
        services = config.services
        generation = config.generation

        orchestration_client = None
        if services.backend_url:
            orchestration_client = OrchestrationClient(
                base_url=services.backend_url,
                timeout=services.request_timeout_seconds,
                session=session,
            )

        return cls(
            compression_client=CompressionClient(
                url=services.compression_url,
                model=services.compression_model,
                timeout=services.request_timeout_seconds,
                session=session,
            ),
            generation_client=GenerationClient(
                base_url=services.generation_base_url,
                temperature=generation.temperature,
                max_output_tokens=generation.max_output_tokens,
                thinking_budget=generation.thinking_budget,
                require_structured_output=generation.require_structured_output,
                timeout=services.request_timeout_seconds,
                session=session,
            ),
            orchestration_client=orchestration_client,
            default_model=generation.model,
            session=session,
        )

    async def run(
        self,
        calendar_text: str,
        preferences_text: str,
        credentials: Credentials,
    ) -> PipelineResult:
        """
        Produce schedule candidates from the best tier that works.

        Never raises for tier failures: the offline tier cannot fail on
        network grounds and is always the last resort.
        """
        for stage, attempt in self._remote_stages():
            try:
                result = await attempt(calendar_text, preferences_text, credentials)
            except SlotPilotError as exc:
                logger.warning("%s tier failed, falling back: %s", stage.value, exc)
                continue
            except Exception:
                logger.exception("%s tier crashed, falling back", stage.value)
                continue

            logger.info("Schedule produced by %s tier", result.stage.value)
            return result

        logger.warning("All remote tiers failed, running offline")
        return self.simulate_offline(calendar_text, preferences_text)

    def _remote_stages(self) -> List[Tuple[PipelineStage, Attempt]]:
        stages: List[Tuple[PipelineStage, Attempt]] = []
        if self._orchestration_client is not None:
            stages.append((PipelineStage.BACKEND, self._attempt_backend))
        else:
            logger.debug("No backend configured, skipping backend tier")
        stages.append((PipelineStage.DIRECT_COMPRESSION, self._attempt_direct))
        return stages

    async def _attempt_backend(
        self,
        calendar_text: str,
        preferences_text: str,
        credentials: Credentials,
    ) -> PipelineResult:
        result = await asyncio.to_thread(
            self._orchestration_client.optimize,
            calendar_text,
            preferences_text,
            credentials,
        )
        return result.model_copy(update={"stage": PipelineStage.BACKEND})

    async def _attempt_direct(
        self,
        calendar_text: str,
        preferences_text: str,
        credentials: Credentials,
    ) -> PipelineResult:
        if not credentials.has_compression_key:
            raise CredentialMissing("No compression API key supplied")

        compression = await asyncio.to_thread(
            self._compression_client.compress,
            calendar_text,
            preferences_text,
            credentials.api_key,
        )
        direct = await self._generate_or_fallback(compression, preferences_text, credentials)

        return PipelineResult(
            status="success",
            schedule=direct.schedule,
            compressed_text=compression.compressed_text,
            metrics=compute_metrics(
                raw_size=compression.raw_size,
                compressed_size=compression.compressed_size,
                compression_latency_ms=compression.latency_ms,
                generation_latency_ms=direct.generation_latency_ms,
                speedup_factor=direct.speedup_factor,
            ),
            stage=direct.stage,
        )

    async def _generate_or_fallback(
        self,
        compression: CompressionResult,
        preferences_text: str,
        credentials: Credentials,
    ) -> _DirectSchedule:
        """
        Generate with the model, or use the heuristic on the compressed text.

        A missing generation key is not a pipeline failure.
        """
        if not credentials.has_generation_key:
            logger.info("No generation key supplied, using local heuristic")
            speedup_factor = SPEEDUP_NO_GENERATION_KEY
        else:
            model_id = credentials.gemini_model.strip() or self._default_model
            started = time.perf_counter()
            try:
                schedule = await asyncio.to_thread(
                    self._generation_client.generate,
                    compression.compressed_text,
                    preferences_text,
                    credentials.gemini_api_key,
                    model_id,
                )
            except ServiceError as exc:
                logger.warning("Generation failed, using local heuristic: %s", exc)
                speedup_factor = SPEEDUP_GENERATION_FAILED
            except Exception:
                logger.exception("Generation crashed, using local heuristic")
                speedup_factor = SPEEDUP_GENERATION_FAILED
            else:
                latency_ms = (time.perf_counter() - started) * 1000
                logger.info("%s responded in %.0f ms", model_id, latency_ms)
                return _DirectSchedule(
                    schedule=schedule,
                    stage=PipelineStage.DIRECT_GENERATION,
                    generation_latency_ms=latency_ms,
                    speedup_factor=SPEEDUP_REAL_AI,
                )

        candidates = self._slot_finder.find_slots(
            compression.compressed_text,
            compression_ratio=compression.ratio,
        )
        return _DirectSchedule(
            schedule=encode_schedule(candidates),
            stage=PipelineStage.DIRECT_COMPRESSION,
            generation_latency_ms=0.0,
            speedup_factor=speedup_factor,
        )

    def simulate_offline(self, calendar_text: str, preferences_text: str) -> PipelineResult:
        """
        Offline tier: local compression approximation plus the heuristic.

        The heuristic reads the original calendar text, not the approximation.
        """
        compressed_text = compress_locally(calendar_text, preferences_text)
        candidates = self._slot_finder.find_slots(calendar_text)

        return PipelineResult(
            status="success",
            schedule=encode_schedule(candidates),
            compressed_text=compressed_text,
            metrics=compute_metrics(
                raw_size=len(calendar_text) + len(preferences_text),
                compressed_size=len(compressed_text),
                speedup_factor=SPEEDUP_OFFLINE,
            ),
            stage=PipelineStage.HEURISTIC_FALLBACK,
        )
