from __future__ import annotations

from typing import Dict, Type

from ..config import TransportKind
from .base import ErrorCallback, OpenCallback, Transport, ValueCallback
from .push import PushSubscriptionTransport
from .stream import STREAM_ERROR_MESSAGE, ServerStreamTransport

TRANSPORTS: Dict[TransportKind, Type[Transport]] = {
    TransportKind.PUSH_SUBSCRIPTION: PushSubscriptionTransport,
    TransportKind.SERVER_STREAM: ServerStreamTransport,
}


def create_transport(kind: TransportKind) -> Transport:
    try:
        return TRANSPORTS[kind]()
    except KeyError:
        raise ValueError(f"No transport registered for {kind!r}") from None


__all__ = [
    "ErrorCallback",
    "OpenCallback",
    "PushSubscriptionTransport",
    "STREAM_ERROR_MESSAGE",
    "ServerStreamTransport",
    "TRANSPORTS",
    "Transport",
    "ValueCallback",
    "create_transport",
]
