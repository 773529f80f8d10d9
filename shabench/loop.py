"""The benchmark loop: generate, dispatch, validate, accumulate, report."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .backends.base import Backend, DispatchResult
from .batch import Batch, generate_batch
from .config import BenchmarkConfig
from .errors import DispatchError
from .logger import get_logger
from .results import ThroughputRecorder
from .throughput import ThroughputStats, report_line
from .validate import spot_check, validate

logger = get_logger(__name__)


@dataclass
class IterationResult:
    hashes: int
    elapsed: float


class BenchmarkLoop:
    """Drives one backend until stopped.

    The loop never resets its stats; ``stop()`` (or setting ``stop_event``)
    ends the run at the next iteration boundary.
    """

    def __init__(
        self,
        backend: Backend,
        config: BenchmarkConfig,
        recorder: Optional[ThroughputRecorder] = None,
        stop_event: Optional[threading.Event] = None,
        emit: Callable[[str], None] = print,
        wait: Optional[Callable[[float], bool]] = None,
    ):
        self.backend = backend
        self.config = config.check()
        self.label = config.label or backend.label
        self.recorder = recorder
        self.stop_event = stop_event or threading.Event()
        self.emit = emit
        self.wait = wait
        self.stats = ThroughputStats()
        self._batch: Optional[Batch] = None

    def stop(self) -> None:
        self.stop_event.set()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def next_batch(self) -> Batch:
        if self.config.regenerate_batch or self._batch is None:
            self._batch = generate_batch(self.config.batch_size, self.config.payload)
        return self._batch

    def _dispatch(self, batch: Batch) -> Optional[DispatchResult]:
        """Dispatch with retries; None when a stop arrives during a backoff."""
        retries = self.config.dispatch_retries
        delay = self.config.retry_backoff
        attempt = 0
        while True:
            try:
                return self.backend.dispatch(batch)
            except DispatchError as exc:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning("%s: dispatch failed (%s), retry %d/%d in %.2fs",
                               self.label, exc, attempt, retries, delay)
                wait = self.wait or self.stop_event.wait
                if wait(delay):
                    return None
                delay *= 2

    def run_iteration(self) -> Optional[IterationResult]:
        """One generate -> dispatch -> validate cycle, without accumulating."""
        batch = self.next_batch()
        result = self._dispatch(batch)
        if result is None:
            return None
        digests, elapsed = result
        validate(digests, self.config.expected, self.config.validation, count=len(batch))
        return IterationResult(len(batch), elapsed)

    def warmup(self) -> None:
        if self.config.warmup_iterations:
            logger.info("%s: warming up for %d iterations", self.label, self.config.warmup_iterations)
        for _ in range(self.config.warmup_iterations):
            if self.stopped or self.run_iteration() is None:
                return

    def report(self) -> None:
        self.emit(report_line(self.label, self.stats, self.config.rate_unit))
        if self.recorder is not None:
            self.recorder.sample(self.stats)

    def run(self, max_iterations: Optional[int] = None) -> ThroughputStats:
        """Run until stopped or ``max_iterations`` (default ``config.max_iterations``) complete."""
        if max_iterations is None:
            max_iterations = self.config.max_iterations
        if self.stopped:
            return self.stats
        if self.config.spot_check:
            checked = spot_check(self.backend)
            logger.info("%s: %d known vectors verified", self.label, checked)
        self.warmup()
        logger.info("%s: batch %d, reporting every %d iterations",
                    self.label, self.config.batch_size, self.config.report_interval)

        while not self.stopped:
            if max_iterations is not None and self.stats.iteration_count >= max_iterations:
                break
            result = self.run_iteration()
            if result is None:
                break
            self.stats.record(result.hashes, result.elapsed)
            if self.stats.iteration_count % self.config.report_interval == 0:
                self.report()
        return self.stats
