"""Ingestion and connection-lifecycle core for the SonicSight distance dashboard."""
from __future__ import annotations

from .config import Configuration, TransportKind
from .demo import DemoGenerator
from .exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    PayloadParseError,
    SonicSightError,
    StreamFault,
    TransportOpenError,
)
from .manager import ConnectionManager
from .normalizer import extract_event_value, normalize
from .session import ConnectionStatus, DistanceRecord, SessionState

__all__ = [
    "Configuration",
    "ConfigurationError",
    "ConnectionManager",
    "ConnectionStatus",
    "DemoGenerator",
    "DistanceRecord",
    "InvalidTransitionError",
    "PayloadParseError",
    "SessionState",
    "SonicSightError",
    "StreamFault",
    "TransportKind",
    "TransportOpenError",
    "extract_event_value",
    "normalize",
]
