"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .pipeline import (
    CompressionClientProtocol,
    GenerationClientProtocol,
    OrchestrationClientProtocol,
    SchedulingPipeline,
)

__all__ = [
    "CompressionClientProtocol",
    "GenerationClientProtocol",
    "OrchestrationClientProtocol",
    "SchedulingPipeline",
]
