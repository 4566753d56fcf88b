from __future__ import annotations

import logging
import math
import random
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEMO_INTERVAL_S = 0.2
PHASE_STEP = 0.1


class DemoGenerator:
    """Synthetic distance feed: a slow sine wave with a bit of sensor noise."""

    def __init__(self, interval: float = DEMO_INTERVAL_S, rng: Optional[random.Random] = None):
        self.interval = interval
        self._rng = rng or random.Random()
        self._phase = 0.0
        self._on_value: Optional[Callable[[float], None]] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, on_value: Callable[[float], None]) -> None:
        self.stop()
        self._phase = 0.0
        self._on_value = on_value
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name="sonicsight-demo", daemon=True
        )
        self._thread.start()
        logger.info("Demo generator started (%.0f ms tick)", self.interval * 1000)

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        self._thread = None
        self._on_value = None
        if thread is not threading.current_thread():
            thread.join(self.interval * 2)
        logger.info("Demo generator stopped")

    def next_value(self) -> float:
        self._phase += PHASE_STEP
        return 100 + math.sin(self._phase) * 80 + self._rng.uniform(0, 5)

    def tick(self) -> Optional[float]:
        """Emit one reading. Does nothing when the generator is stopped."""
        callback = self._on_value
        if callback is None:
            return None
        value = self.next_value()
        callback(value)
        return value

    def _run(self, stop: threading.Event) -> None:
        # each thread owns its own stop event, so a restart never revives it
        while not stop.wait(self.interval):
            self.tick()
