"""Shared fixtures.

GPU tests need pyopencl and at least one usable OpenCL device (a CPU runtime
such as pocl is accepted); they are skipped otherwise.
"""

import hashlib

import pytest

from shabench.backends.base import Backend, DispatchResult
from shabench.batch import DigestBuffer
from shabench.errors import DispatchError

HELLO1_DIGEST = bytes.fromhex("91e9240f415223982edc345532630710e94a7f52cd5f48f5ee1afc555078f0ab")


class FakeBackend(Backend):
    """Hashes on the host and reports a fixed elapsed time; can fail on demand."""

    label = "FAKE"

    def __init__(self, elapsed=0.5, fail_times=0, corrupt_index=None):
        self.elapsed = elapsed
        self.fail_times = fail_times
        self.corrupt_index = corrupt_index
        self.calls = 0
        self.last_batch = None
        self.closed = False

    def dispatch(self, batch):
        self.calls += 1
        self.last_batch = batch
        if self.fail_times > 0:
            self.fail_times -= 1
            raise DispatchError("device lost", backend=self.label)
        digests = [hashlib.sha256(r.data).digest() for r in batch]
        if self.corrupt_index is not None and len(batch) > 1:
            digests[self.corrupt_index] = bytes(32)
        return DispatchResult(DigestBuffer.from_digests(digests), self.elapsed)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture(scope="session")
def gpu_session():
    cl = pytest.importorskip("pyopencl")
    from shabench.backends.gpu import GpuSession
    from shabench.errors import SetupError

    try:
        session = GpuSession.open(allow_cpu_device=True)
    except (SetupError, cl.Error) as exc:
        pytest.skip(f"no usable OpenCL device: {exc}")
    yield session
    session.close()
