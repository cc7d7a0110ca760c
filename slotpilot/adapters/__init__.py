"""
Adapters layer - External integrations (backend, compression, generation).
"""

from .compression_client import CompressionClient
from .generation_client import GenerationClient
from .orchestration_client import OrchestrationClient

__all__ = ["CompressionClient", "GenerationClient", "OrchestrationClient"]
