"""Common interface shared by the CPU and GPU engines."""

from __future__ import annotations

import abc
from typing import NamedTuple

from ..batch import Batch, DigestBuffer


class DispatchResult(NamedTuple):
    digests: DigestBuffer
    elapsed: float


class Backend(abc.ABC):
    """Turns a batch into an index-aligned digest buffer.

    Backends own their long-lived resources (worker pool, device session) and
    release them in ``close()``. They are context managers.
    """

    label: str = "backend"

    @abc.abstractmethod
    def dispatch(self, batch: Batch) -> DispatchResult:
        """Hash every record of ``batch`` and return the digests with the elapsed seconds."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
