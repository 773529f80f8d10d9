"""SHA-256 throughput harness with interchangeable CPU thread-pool and OpenCL backends."""

__version__ = "0.1.0"

from .batch import Batch, DigestBuffer, InputRecord, generate_batch, sha256  # noqa: E402
from .config import BenchmarkConfig, ValidationPolicy  # noqa: E402
from .errors import (  # noqa: E402
    ConfigError,
    DeviceNotFoundError,
    DispatchError,
    HarnessError,
    KernelBuildError,
    PipelineError,
    PoolSetupError,
    SetupError,
    ValidationError,
)
from .throughput import ThroughputStats  # noqa: E402

__all__ = [
    "Batch", "BenchmarkConfig", "ConfigError", "DeviceNotFoundError", "DigestBuffer",
    "DispatchError", "HarnessError", "InputRecord", "KernelBuildError", "PipelineError",
    "PoolSetupError", "SetupError", "ThroughputStats", "ValidationError", "ValidationPolicy",
    "generate_batch", "sha256",
]
