"""Running hash totals and hashes/s formatting."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import ConfigError

UNIT_SCALE = {"H/s": 1.0, "kH/s": 1e3, "MH/s": 1e6, "GH/s": 1e9}


@dataclass
class ThroughputStats:
    total_hashes: int = 0
    total_elapsed: float = 0.0
    iteration_count: int = 0
    best_rate: float = 0.0
    worst_rate: float = math.inf

    def record(self, hashes: int, elapsed: float) -> None:
        if hashes < 0 or elapsed < 0:
            raise ValueError(f"cannot record negative work ({hashes} hashes, {elapsed} s)")
        self.total_hashes += hashes
        self.total_elapsed += elapsed
        self.iteration_count += 1
        if elapsed > 0:
            rate = hashes / elapsed
            self.best_rate = max(self.best_rate, rate)
            self.worst_rate = min(self.worst_rate, rate)

    @property
    def rate(self) -> float:
        """Sustained hashes/s; 0.0 until some time has been recorded."""
        if self.total_elapsed <= 0:
            return 0.0
        return self.total_hashes / self.total_elapsed


def pick_unit(rate: float) -> str:
    for unit in ("GH/s", "MH/s", "kH/s"):
        if rate >= UNIT_SCALE[unit]:
            return unit
    return "H/s"


def format_rate(rate: float, unit: str = "auto") -> str:
    if unit == "auto":
        unit = pick_unit(rate)
    if unit not in UNIT_SCALE:
        raise ConfigError(f"unknown rate unit {unit!r}")
    return f"{rate / UNIT_SCALE[unit]:.2f} {unit}"


def report_line(label: str, stats: ThroughputStats, unit: str = "auto") -> str:
    return f"{label}: After {stats.iteration_count} iterations: {format_rate(stats.rate, unit)}"
