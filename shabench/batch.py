"""Input batches, digest buffers and the host hash primitive."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple

import numpy as np

from .config import DIGEST_SIZE, FIXED_INPUT

U32_MAX = 0xFFFFFFFF


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


@dataclass(frozen=True)
class InputRecord:
    data: bytes
    length: int

    def __post_init__(self):
        if self.length != len(self.data):
            raise ValueError(f"length {self.length} does not match {len(self.data)} data bytes")
        if self.length > U32_MAX:
            raise ValueError("record length does not fit in u32")

    @classmethod
    def of(cls, data: bytes) -> "InputRecord":
        data = bytes(data)
        return cls(data, len(data))


class Batch(Sequence[InputRecord]):
    """Ordered, non-empty sequence of input records."""

    def __init__(self, records: Iterable[InputRecord]):
        self._records: Tuple[InputRecord, ...] = tuple(records)
        if not self._records:
            raise ValueError("a batch needs at least one record")

    @classmethod
    def from_payloads(cls, payloads: Iterable[bytes]) -> "Batch":
        return cls(InputRecord.of(p) for p in payloads)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __iter__(self) -> Iterator[InputRecord]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"Batch(n={len(self)})"

    def flat_bytes(self) -> np.ndarray:
        """All record bytes back to back; at least one byte so device buffers are never empty."""
        joined = b"".join(r.data for r in self._records)
        return np.frombuffer(joined or b"\x00", dtype=np.uint8)

    def lengths(self) -> np.ndarray:
        return np.fromiter((r.length for r in self._records), dtype=np.uint32, count=len(self))

    def offsets(self) -> np.ndarray:
        """Exclusive prefix sum of lengths: byte offset of each record in ``flat_bytes``."""
        lengths = self.lengths().astype(np.uint64)
        offsets = np.zeros(len(self), dtype=np.uint64)
        np.cumsum(lengths[:-1], out=offsets[1:])
        if len(self) and int(offsets[-1]) > U32_MAX:
            raise ValueError("batch payload exceeds the 4 GiB u32 offset range")
        return offsets.astype(np.uint32)


def generate_batch(count: int, payload: bytes = FIXED_INPUT) -> Batch:
    """Build ``count`` identical records carrying ``payload``."""
    if count < 1:
        raise ValueError(f"batch size must be >= 1, got {count}")
    record = InputRecord.of(payload)
    return Batch([record] * count)


class DigestBuffer(Sequence[bytes]):
    """Read-only view of ``N`` contiguous 32-byte digests, indexed by record number."""

    def __init__(self, data: bytes):
        if len(data) % DIGEST_SIZE:
            raise ValueError(f"digest buffer length {len(data)} is not a multiple of {DIGEST_SIZE}")
        self._data = bytes(data)
        self._count = len(self._data) // DIGEST_SIZE

    @classmethod
    def from_digests(cls, digests: Iterable[bytes]) -> "DigestBuffer":
        parts = list(digests)
        for d in parts:
            if len(d) != DIGEST_SIZE:
                raise ValueError(f"digest of {len(d)} bytes, expected {DIGEST_SIZE}")
        return cls(b"".join(parts))

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"digest index out of range for {self._count} records")
        start = index * DIGEST_SIZE
        return self._data[start:start + DIGEST_SIZE]

    def __iter__(self) -> Iterator[bytes]:
        for i in range(self._count):
            yield self[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, DigestBuffer):
            return NotImplemented
        return self._data == other._data

    __hash__ = None

    def __repr__(self) -> str:
        return f"DigestBuffer(n={self._count})"

    def hex(self, index: int) -> str:
        return self[index].hex()

    def tobytes(self) -> bytes:
        return self._data
