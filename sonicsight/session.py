"""
Session state: connection status, latest reading and the rolling history.

Only the methods below mutate it. The connection manager calls them from the
page thread while draining its inbox, so no locking is needed here.
"""
from __future__ import annotations

import enum
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, FrozenSet, List, Optional

import pandas as pd

from .exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 60


class ConnectionStatus(enum.Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    ERROR = "Error"
    SIMULATING = "Simulation Mode"


_ANY: FrozenSet[ConnectionStatus] = frozenset(ConnectionStatus)

# target status -> statuses it may be entered from
_ALLOWED: Dict[ConnectionStatus, FrozenSet[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: _ANY,
    ConnectionStatus.SIMULATING: _ANY,
    ConnectionStatus.CONNECTING: frozenset({
        ConnectionStatus.DISCONNECTED,
        ConnectionStatus.ERROR,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
    }),
    ConnectionStatus.CONNECTED: frozenset({
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
    }),
    ConnectionStatus.ERROR: frozenset({
        ConnectionStatus.DISCONNECTED,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
        ConnectionStatus.ERROR,
    }),
}


@dataclass(frozen=True)
class DistanceRecord:
    timestamp: int  # ms since epoch
    value: float


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionState:
    def __init__(self, capacity: int = HISTORY_CAPACITY, clock: Optional[Callable[[], int]] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._clock = clock or now_ms
        self._history: Deque[DistanceRecord] = deque(maxlen=capacity)
        self._status = ConnectionStatus.DISCONNECTED
        self._value = 0.0
        self._last_error: Optional[str] = None

    # ----------------------------- Readers ----------------------------- #

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def value(self) -> float:
        return self._value

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def capacity(self) -> int:
        return self._history.maxlen

    @property
    def history(self) -> List[DistanceRecord]:
        return list(self._history)

    def history_frame(self) -> pd.DataFrame:
        """History as a ``time``/``value`` frame ready for charting."""
        df = pd.DataFrame(
            [(r.timestamp, r.value) for r in self._history],
            columns=["timestamp", "value"],
        )
        df["time"] = pd.to_datetime(df["timestamp"], unit="ms")
        return df[["time", "value"]]

    # ----------------------------- Mutations ----------------------------- #

    def _move(self, target: ConnectionStatus) -> None:
        if self._status not in _ALLOWED[target]:
            raise InvalidTransitionError(self._status, target)
        if self._status is not target:
            logger.debug("status %s -> %s", self._status.value, target.value)
        self._status = target

    def begin_connecting(self) -> None:
        self._last_error = None
        self._move(ConnectionStatus.CONNECTING)

    def begin_simulating(self) -> None:
        self._last_error = None
        self._move(ConnectionStatus.SIMULATING)

    def on_open(self) -> None:
        self._move(ConnectionStatus.CONNECTED)

    def now(self) -> int:
        """Current time in ms from the session clock; safe to call from any thread."""
        return self._clock()

    def on_value(self, value: float, timestamp: Optional[int] = None) -> None:
        if self._status is not ConnectionStatus.SIMULATING:
            self._move(ConnectionStatus.CONNECTED)
        self._value = value
        self._history.append(DistanceRecord(
            timestamp=self._clock() if timestamp is None else timestamp, value=value
        ))

    def on_error(self, message: str) -> None:
        self._move(ConnectionStatus.ERROR)
        self._last_error = message

    def reset(self) -> None:
        self._move(ConnectionStatus.DISCONNECTED)
        self._value = 0.0
        self._history.clear()
        self._last_error = None
