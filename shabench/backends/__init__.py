"""Compute backends and the factory that picks one from a run configuration."""

from __future__ import annotations

from ..config import BenchmarkConfig
from ..errors import ConfigError
from .base import Backend, DispatchResult
from .cpu import CpuBackend
from .sizing import DispatchGeometry

__all__ = ["Backend", "CpuBackend", "DispatchGeometry", "DispatchResult", "create_backend"]


def create_backend(config: BenchmarkConfig) -> Backend:
    """Build the single backend a run uses. Setup failures raise ``SetupError``."""
    if config.backend == "cpu":
        return CpuBackend(config.threads)
    if config.backend != "gpu":
        raise ConfigError(f"unknown backend {config.backend!r}")
    # imported lazily so CPU runs work without an OpenCL ICD loader
    from .gpu import GpuBackend, GpuSession

    session = GpuSession.open(config.device_name, config.allow_cpu_device)
    try:
        return GpuBackend(session, config.thread_group_width, config.chunk_size)
    except Exception:
        session.close()
        raise
