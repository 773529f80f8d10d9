"""Process-pool backend: a data-parallel map of hashlib SHA-256 over a batch.

Small inputs never release the GIL inside ``hashlib``, so the workers are
processes. Each worker hashes one contiguous range and returns its digests as
one block; the parent copies every block into its own slice of the output.
"""

from __future__ import annotations

import multiprocessing
import time
from typing import List

from ..batch import Batch, DigestBuffer, sha256
from ..config import DIGEST_SIZE
from ..errors import PoolSetupError
from ..logger import get_logger
from .base import Backend, DispatchResult

logger = get_logger(__name__)


def partition(count: int, parts: int) -> List[range]:
    """Split ``range(count)`` into at most ``parts`` contiguous, disjoint ranges."""
    parts = max(1, min(parts, count))
    base, extra = divmod(count, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        ranges.append(range(start, stop))
        start = stop
    return ranges


def hash_payloads(payloads: List[bytes]) -> bytes:
    """Worker task: concatenated digests of ``payloads``, in order."""
    return b"".join(sha256(p) for p in payloads)


class CpuBackend(Backend):
    def __init__(self, threads: int = 8):
        if not isinstance(threads, int) or threads < 1:
            raise PoolSetupError(f"worker pool width must be a positive integer, got {threads!r}")
        try:
            self._pool = multiprocessing.Pool(processes=threads)
        except (ValueError, OSError) as exc:
            raise PoolSetupError(f"could not create a {threads}-process pool: {exc}") from exc
        self.threads = threads
        self.label = f"CPU x{threads}"
        logger.debug("Created CPU pool with %d worker processes", threads)

    def dispatch(self, batch: Batch) -> DispatchResult:
        n = len(batch)
        ranges = partition(n, self.threads)
        tasks = [[batch[i].data for i in r] for r in ranges]
        out = bytearray(n * DIGEST_SIZE)

        start = time.perf_counter()
        blocks = self._pool.map(hash_payloads, tasks)
        elapsed = time.perf_counter() - start

        for r, block in zip(ranges, blocks):
            if len(block) != len(r) * DIGEST_SIZE:
                raise RuntimeError(f"worker returned {len(block)} bytes for {len(r)} records")
            out[r.start * DIGEST_SIZE:r.stop * DIGEST_SIZE] = block
        return DispatchResult(DigestBuffer(bytes(out)), elapsed)

    def close(self) -> None:
        self._pool.close()
        self._pool.join()
