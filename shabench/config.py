"""Run configuration and well-known constants."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ConfigError

DIGEST_SIZE = 32
FIXED_INPUT = b"hello1"

# FIPS 180-2 vectors plus the benchmark payload
KNOWN_DIGESTS = {
    b"": "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
    b"abc": "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad",
    b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq":
        "248d6a61d20638b8e5c026930c3e6039a33ce45964ff2167f6ecedd419db06c1",
    b"abcdefghbcdefghicdefghijdefghijkefghijklfghijklmghijklmn"
    b"hijklmnoijklmnopjklmnopqklmnopqrlmnopqrsmnopqrstnopqrstu":
        "cf5b16a778af8380036ce59e7b0492370b249b11e8f07a51afac45037afee9d1",
    FIXED_INPUT: "91e9240f415223982edc345532630710e94a7f52cd5f48f5ee1afc555078f0ab",
}

BACKENDS = ("cpu", "gpu")
RATE_UNITS = ("auto", "H/s", "kH/s", "MH/s", "GH/s")


class ValidationPolicy(str, Enum):
    FIRST = "first"
    FIRST_AND_LAST = "first-and-last"
    ALL = "all"


@dataclass(frozen=True)
class BenchmarkConfig:
    """Tunables for one benchmark run.

    ``expected_digest`` defaults to the known vector for ``payload`` and falls
    back to the host ``hashlib`` digest for payloads outside the table.
    """

    backend: str = "cpu"
    batch_size: int = 32768
    payload: bytes = FIXED_INPUT
    expected_digest: Optional[bytes] = None
    threads: int = 8
    thread_group_width: int = 64
    chunk_size: int = 1
    report_interval: int = 1000
    validation: ValidationPolicy = ValidationPolicy.FIRST_AND_LAST
    warmup_iterations: int = 0
    max_iterations: Optional[int] = None
    device_name: Optional[str] = None
    allow_cpu_device: bool = False
    dispatch_retries: int = 0
    retry_backoff: float = 0.5
    rate_unit: str = "auto"
    results_dir: Optional[Path] = None
    spot_check: bool = True
    regenerate_batch: bool = True
    label: str = ""

    @property
    def expected(self) -> bytes:
        if self.expected_digest is not None:
            return self.expected_digest
        known = KNOWN_DIGESTS.get(self.payload)
        if known is not None:
            return bytes.fromhex(known)
        return hashlib.sha256(self.payload).digest()

    def check(self) -> "BenchmarkConfig":
        """Raise ConfigError for values no backend can run with."""
        if self.backend not in BACKENDS:
            raise ConfigError(f"unknown backend {self.backend!r} (expected one of {BACKENDS})")
        for name in ("batch_size", "threads", "thread_group_width", "chunk_size", "report_interval"):
            value = getattr(self, name)
            if value < 1:
                raise ConfigError(f"{name} must be >= 1, got {value}")
        if self.warmup_iterations < 0 or self.dispatch_retries < 0:
            raise ConfigError("warmup_iterations and dispatch_retries must be >= 0")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ConfigError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.retry_backoff < 0:
            raise ConfigError(f"retry_backoff must be >= 0, got {self.retry_backoff}")
        if self.rate_unit not in RATE_UNITS:
            raise ConfigError(f"unknown rate unit {self.rate_unit!r}")
        if len(self.expected) != DIGEST_SIZE:
            raise ConfigError(f"expected digest must be {DIGEST_SIZE} bytes")
        if len(self.payload) > 0xFFFFFFFF:
            raise ConfigError("payload length does not fit in u32")
        return self
