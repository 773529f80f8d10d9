"""CSV + PNG export of throughput samples.

Files are written as results/YYYY-MM-DD_HH-MM_<name>.csv with a matching
.png plot next to each CSV.
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import List, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from .logger import get_logger  # noqa: E402
from .throughput import ThroughputStats  # noqa: E402

logger = get_logger(__name__)


def stamp() -> str:
    return datetime.datetime.now().strftime("%Y-%m-%d_%H-%M")


def slug(text: str) -> str:
    return "".join(c if c.isalnum() else "_" for c in text).strip("_").lower() or "run"


def save_table(df: pd.DataFrame, results_dir: Path, name: str) -> Path:
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    csv_path = results_dir / f"{stamp()}_{slug(name)}.csv"
    df.to_csv(csv_path, index=False)
    logger.info("CSV  → %s", csv_path)
    return csv_path


def save_plot(df: pd.DataFrame, x: str, y: str, png_path: Path,
              title: str, xlabel: str, ylabel: str, kind: str = "line") -> Path:
    fig = plt.figure()
    if kind == "bar":
        plt.bar(df[x].astype(str), df[y])
        plt.grid(True, axis="y")
    else:
        plt.plot(df[x], df[y], "-o")
        plt.grid(True)
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.savefig(png_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info("Plot → %s", png_path)
    return png_path


class ThroughputRecorder:
    """Collects one row per report of a benchmark loop."""

    def __init__(self, label: str):
        self.label = label
        self.rows: List[dict] = []

    def sample(self, stats: ThroughputStats) -> None:
        self.rows.append(dict(
            iteration=stats.iteration_count,
            total_hashes=stats.total_hashes,
            total_seconds=stats.total_elapsed,
            hashes_per_s=stats.rate,
        ))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=["iteration", "total_hashes", "total_seconds", "hashes_per_s"])

    def save(self, results_dir: Path) -> Optional[Path]:
        if not self.rows:
            logger.warning("No throughput samples for %s, nothing to save", self.label)
            return None
        df = self.to_frame()
        csv_path = save_table(df, results_dir, f"{self.label}_throughput")
        save_plot(df, "iteration", "hashes_per_s", csv_path.with_suffix(".png"),
                  title=f"{self.label} sustained throughput",
                  xlabel="Iterations", ylabel="Hashes per second")
        return csv_path
