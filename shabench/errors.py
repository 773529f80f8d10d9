"""Exception hierarchy for the hashing harness.

Setup failures (bad configuration, missing device, kernel build, pipeline or
pool construction) are fatal and raised once at startup. Dispatch and
validation failures are raised per iteration by the backends and the
validator.
"""

from __future__ import annotations

from typing import Optional


class HarnessError(Exception):
    """Base exception for all harness errors."""
    pass


class SetupError(HarnessError):
    """Raised when a backend or the run configuration cannot be set up."""
    pass


class ConfigError(SetupError):
    """Raised for invalid tunables (batch size, widths, cadence...)."""
    pass


class DeviceNotFoundError(SetupError):
    """Raised when no compute device matches the requested name or type."""

    def __init__(self, message: str, requested: Optional[str] = None):
        super().__init__(message)
        self.requested = requested


class KernelBuildError(SetupError):
    """Raised when the device program fails to compile.

    Attributes:
        build_log: Compiler output reported by the driver, if any
    """

    def __init__(self, message: str, build_log: str = ""):
        super().__init__(message)
        self.build_log = build_log


class PipelineError(SetupError):
    """Raised when the kernel object cannot be created or sized."""
    pass


class PoolSetupError(SetupError):
    """Raised when the CPU worker pool cannot be constructed."""
    pass


class DispatchError(HarnessError):
    """Raised when a single dispatch fails on the device.

    Attributes:
        backend: Label of the backend that failed
        original_error: The underlying driver exception
    """

    def __init__(
        self,
        message: str,
        backend: str,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.original_error = original_error


class ValidationError(HarnessError):
    """Raised when a produced digest does not match the expected one.

    Attributes:
        index: Record index that failed (None for a count mismatch)
        expected: Expected digest bytes
        actual: Digest bytes produced by the backend
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        expected: bytes = b"",
        actual: bytes = b"",
    ):
        super().__init__(message)
        self.index = index
        self.expected = expected
        self.actual = actual
