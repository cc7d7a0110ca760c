"""
Domain-specific exception hierarchy for the slotpilot pipeline.
"""


class SlotPilotError(Exception):
    """Base class for all application-level errors."""


class ServiceError(SlotPilotError):
    """Raised when a remote tier fails to produce a usable answer."""


class TransportError(ServiceError):
    """Raised on network failures or non-success HTTP status codes."""


class MalformedResponse(ServiceError):
    """Raised when a response body is present but cannot be used."""


class RepairFailure(MalformedResponse):
    """Raised when generated output cannot be recovered as structured data."""


class CredentialMissing(SlotPilotError):
    """Raised when an optional tier has no key to authenticate with."""
