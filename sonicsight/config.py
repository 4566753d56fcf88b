"""
Connection configuration for the distance feed.

A ``Configuration`` is immutable: the settings form builds a new one on every
save and hands it to the connection manager wholesale.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Optional

from .exceptions import ConfigurationError


class TransportKind(enum.Enum):
    PUSH_SUBSCRIPTION = "sdk"
    SERVER_STREAM = "rest"

    @property
    def label(self) -> str:
        if self is TransportKind.PUSH_SUBSCRIPTION:
            return "Firebase SDK (service account)"
        return "REST stream (public database)"


def normalize_data_path(path: Optional[str]) -> str:
    """Return ``path`` with exactly one leading slash and no trailing slash.

    >>> normalize_data_path("distance/")
    '/distance'
    >>> normalize_data_path("")
    '/'
    """
    parts = [p for p in (path or "").strip().split("/") if p]
    return "/" + "/".join(parts)


def normalize_endpoint(url: Optional[str]) -> str:
    return (url or "").strip().rstrip("/")


@dataclass(frozen=True)
class Configuration:
    transport_kind: TransportKind
    endpoint_url: str
    credential: Optional[str] = None
    data_path: str = "/"

    def __post_init__(self):
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "endpoint_url", normalize_endpoint(self.endpoint_url))
        object.__setattr__(self, "data_path", normalize_data_path(self.data_path))
        credential = (self.credential or "").strip() or None
        object.__setattr__(self, "credential", credential)

    @property
    def requires_credential(self) -> bool:
        return self.transport_kind is TransportKind.PUSH_SUBSCRIPTION

    def validate(self) -> None:
        if not self.endpoint_url:
            raise ConfigurationError("Database URL is required.")
        if self.requires_credential and not self.credential:
            raise ConfigurationError(
                "A service account credential is required for SDK mode. Please check settings."
            )

    def with_changes(self, **changes) -> "Configuration":
        return replace(self, **changes)
