"""GPU thread-group width sweep.

Opens one OpenCL session and measures sustained throughput for each
thread-group width, reusing the compiled program between widths.
Widths above the kernel's work-group limit on the device are skipped.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .backends.gpu import GpuBackend, GpuSession
from .config import BenchmarkConfig
from .logger import get_logger
from .loop import BenchmarkLoop
from .results import save_plot, save_table
from .throughput import format_rate

logger = get_logger(__name__)

WIDTHS = [64, 128, 256, 512, 1024]


def sweep(config: BenchmarkConfig, iterations: int, widths: Iterable[int] = WIDTHS,
          results_dir: Optional[Path] = None, stop_event=None) -> pd.DataFrame:
    rows = []
    with GpuSession.open(config.device_name, config.allow_cpu_device) as session:
        for width in widths:
            if stop_event is not None and stop_event.is_set():
                break
            if width > session.max_width:
                logger.warning("Skipping width %d: kernel limit on %s is %d",
                               width, session.name, session.max_width)
                continue
            cfg = dataclasses.replace(config, backend="gpu", thread_group_width=width)
            backend = GpuBackend(session, width, config.chunk_size, owns_session=False)
            loop = BenchmarkLoop(backend, cfg, stop_event=stop_event, emit=logger.debug)
            stats = loop.run(max_iterations=iterations)
            rows.append((width, stats.rate))
            print(f"{width:4d} threads → {format_rate(stats.rate, config.rate_unit)}")

    df = pd.DataFrame(rows, columns=["width", "hashes_per_s"])
    if results_dir is not None and not df.empty:
        csv_path = save_table(df, results_dir, "gpu_width_sweep")
        save_plot(df, "width", "hashes_per_s", csv_path.with_suffix(".png"),
                  title=f"GPU thread-group width sweep (batch {config.batch_size})",
                  xlabel="Threads per group", ylabel="Hashes per second")
    return df
