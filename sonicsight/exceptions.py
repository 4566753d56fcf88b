from __future__ import annotations


class SonicSightError(Exception):
    """Base class for every error raised by the ingestion core."""


class ConfigurationError(SonicSightError):
    """Configuration cannot be used for the selected transport."""


class TransportOpenError(SonicSightError):
    """The native connection could not be set up."""


class StreamFault(SonicSightError):
    """An open stream dropped, was cancelled or was denied."""


class PayloadParseError(SonicSightError):
    """A single inbound frame could not be decoded."""


class InvalidTransitionError(SonicSightError):
    def __init__(self, current, requested):
        super().__init__(f"Cannot go from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested
