"""CPU vs GPU sustained throughput.

Runs the CPU backend, then the GPU backend, for the same number of
iterations. Each backend gets its own run and its own stats; they never share
an iteration. Prints the GPU/CPU speed-up and optionally stores CSV + bar chart.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional

import pandas as pd

from .backends import create_backend
from .config import BenchmarkConfig
from .logger import get_logger
from .loop import BenchmarkLoop
from .results import save_plot, save_table
from .throughput import format_rate

logger = get_logger(__name__)


def run_backend(config: BenchmarkConfig, iterations: int, stop_event=None) -> dict:
    with create_backend(config) as backend:
        loop = BenchmarkLoop(backend, config, stop_event=stop_event, emit=logger.debug)
        stats = loop.run(max_iterations=iterations)
        return dict(mode=config.backend, label=loop.label,
                    iterations=stats.iteration_count, hashes=stats.total_hashes,
                    seconds=stats.total_elapsed, hashes_per_s=stats.rate)


def compare(config: BenchmarkConfig, iterations: int,
            results_dir: Optional[Path] = None, stop_event=None) -> pd.DataFrame:
    rows = []
    for mode in ("cpu", "gpu"):
        if stop_event is not None and stop_event.is_set():
            logger.warning("Stopped before the %s run", mode)
            break
        cfg = dataclasses.replace(config, backend=mode, label="")
        row = run_backend(cfg, iterations, stop_event)
        rows.append(row)
        print(f"{row['label']}: {row['iterations']} iterations in {row['seconds']:.3f}s   "
              f"{format_rate(row['hashes_per_s'], config.rate_unit)}")

    df = pd.DataFrame(rows)
    if len(rows) < 2 or not (df["iterations"] > 0).all():
        logger.warning("Comparison incomplete, no speed-up computed")
        return df

    cpu_rate, gpu_rate = df["hashes_per_s"].tolist()
    speedup = gpu_rate / cpu_rate if cpu_rate > 0 else float("nan")
    df["speedup"] = [1.0, speedup]
    print(f"GPU / CPU speed-up: {speedup:4.1f}×")

    if results_dir is not None:
        csv_path = save_table(df, results_dir, "compare")
        save_plot(df, "mode", "hashes_per_s", csv_path.with_suffix(".png"),
                  title=f"Raw throughput (batch {config.batch_size}, {iterations} iterations)",
                  xlabel="Backend", ylabel="Hashes per second", kind="bar")
    return df
