"""Thread-group arithmetic for a 1-D compute dispatch.

Each invocation handles ``chunk_size`` consecutive records. The grid is
rounded up to whole thread groups of ``width`` invocations; invocations whose
first record is past the end do nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple


def ceil_div(a: int, b: int) -> int:
    return -(-a // b)


@dataclass(frozen=True)
class DispatchGeometry:
    record_count: int
    width: int
    chunk_size: int = 1

    def __post_init__(self):
        if self.record_count < 1:
            raise ValueError(f"record_count must be >= 1, got {self.record_count}")
        if self.width < 1:
            raise ValueError(f"thread-group width must be >= 1, got {self.width}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

    @property
    def invocations(self) -> int:
        """Invocations that have at least one record to hash."""
        return ceil_div(self.record_count, self.chunk_size)

    @property
    def group_count(self) -> int:
        return ceil_div(self.invocations, self.width)

    @property
    def global_size(self) -> Tuple[int]:
        return (self.group_count * self.width,)

    @property
    def local_size(self) -> Tuple[int]:
        return (self.width,)

    def invocation_range(self, gid: int) -> range:
        """Record indices hashed by global invocation ``gid`` (empty when over-provisioned)."""
        first = min(gid * self.chunk_size, self.record_count)
        return range(first, min(first + self.chunk_size, self.record_count))

    def ranges(self) -> Iterator[range]:
        for gid in range(self.global_size[0]):
            yield self.invocation_range(gid)
