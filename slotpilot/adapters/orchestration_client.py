"""
Client for the remote orchestration backend, the preferred tier.
"""

import logging

import requests
from pydantic import ValidationError

from ..domain.exceptions import MalformedResponse, ServiceError
from ..domain.models import Credentials, PipelineResult
from .http import post_json, read_json, status_error

logger = logging.getLogger(__name__)

SERVICE_NAME = "Orchestration backend"


class OrchestrationClient:
    """
    Sends the whole job to a backend that runs compression and generation itself.

    Uses the ``POST /optimize`` endpoint, which answers with a PipelineResult.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize the backend client.

        Args:
            base_url: Backend root URL; empty means no backend is configured
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def optimize(
        self,
        calendar_text: str,
        preferences_text: str,
        credentials: Credentials,
    ) -> PipelineResult:
        """
        Run the full pipeline remotely.

        Returns:
            PipelineResult as reported by the backend

        Raises:
            TransportError: On network failure or non-2xx status
            MalformedResponse: If the body is not a PipelineResult
            ServiceError: If the backend reports an error status
        """
        payload = {
            "calendar_text": calendar_text,
            "preferences_text": preferences_text,
            "api_key": credentials.api_key,
            "gemini_api_key": credentials.gemini_api_key,
            "gemini_model": credentials.gemini_model,
        }

        response = post_json(
            self.session,
            SERVICE_NAME,
            f"{self.base_url}/optimize",
            payload,
            self.timeout,
        )
        if not response.ok:
            raise status_error(response, SERVICE_NAME)

        data = read_json(response, SERVICE_NAME)

        try:
            result = PipelineResult.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponse(f"{SERVICE_NAME} returned an unexpected shape: {exc}") from exc

        if result.status != "success":
            raise ServiceError(f"{SERVICE_NAME} reported status '{result.status}'")

        logger.info("Backend produced the schedule")
        return result
