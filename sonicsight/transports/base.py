from __future__ import annotations

import abc
from typing import Callable

from ..config import Configuration

ValueCallback = Callable[[float], None]
ErrorCallback = Callable[[str], None]
OpenCallback = Callable[[], None]


class Transport(abc.ABC):
    """A live channel delivering distance readings from the database.

    ``open`` never raises; setup faults are reported through ``on_error`` and a
    ``False`` return. ``close`` may be called any number of times, and once it
    returns no callback fires again.
    """

    @abc.abstractmethod
    def open(
        self,
        config: Configuration,
        on_value: ValueCallback,
        on_error: ErrorCallback,
        on_open: OpenCallback,
    ) -> bool:
        ...

    @abc.abstractmethod
    def close(self) -> None:
        ...

    @property
    @abc.abstractmethod
    def is_open(self) -> bool:
        ...
