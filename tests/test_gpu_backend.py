"""OpenCL backend tests. Skipped without pyopencl or a usable device."""

import hashlib

import pytest

from shabench.batch import Batch, generate_batch
from shabench.config import KNOWN_DIGESTS
from shabench.errors import DeviceNotFoundError, KernelBuildError, PipelineError
from shabench.validate import spot_check

from conftest import HELLO1_DIGEST

cl = pytest.importorskip("pyopencl")

from shabench.backends.cpu import CpuBackend  # noqa: E402
from shabench.backends.gpu import GpuBackend, GpuSession, encode_batch, select_device  # noqa: E402


def make_backend(session, width=None, chunk=1):
    width = width or min(64, session.max_width)
    return GpuBackend(session, width, chunk, owns_session=False)


class TestEncode:
    def test_slots_for_heterogeneous_batch(self):
        inputs, lengths, offsets = encode_batch(Batch.from_payloads([b"abc", b"de"]))
        assert inputs.tobytes() == b"abcde"
        assert lengths.tolist() == [3, 2]
        assert offsets.tolist() == [0, 3]


class TestGpuBackend:
    def test_single_record(self, gpu_session):
        digests, elapsed = make_backend(gpu_session).dispatch(generate_batch(1))
        assert list(digests) == [HELLO1_DIGEST]
        assert elapsed > 0

    def test_full_batch_first_and_last(self, gpu_session):
        digests, _ = make_backend(gpu_session).dispatch(generate_batch(32768))
        assert len(digests) == 32768
        assert digests[0] == HELLO1_DIGEST
        assert digests[32767] == HELLO1_DIGEST

    @pytest.mark.parametrize("extra", [-1, 0, 1])
    def test_group_boundaries(self, gpu_session, extra):
        width = min(64, gpu_session.max_width)
        n = max(1, width + extra)
        digests, _ = make_backend(gpu_session, width).dispatch(generate_batch(n))
        assert len(digests) == n
        assert all(d == HELLO1_DIGEST for d in digests)

    @pytest.mark.parametrize("chunk", [1, 3, 8])
    def test_index_alignment_heterogeneous(self, gpu_session, chunk):
        payloads = [bytes([i % 251]) * (i % 130) for i in range(300)]
        digests, _ = make_backend(gpu_session, chunk=chunk).dispatch(Batch.from_payloads(payloads))
        assert list(digests) == [hashlib.sha256(p).digest() for p in payloads]

    def test_known_vectors(self, gpu_session):
        assert spot_check(make_backend(gpu_session)) == len(KNOWN_DIGESTS)

    def test_matches_cpu_backend(self, gpu_session):
        batch = Batch.from_payloads([b"record-%d" % i for i in range(1000)])
        with CpuBackend(4) as cpu:
            expected, _ = cpu.dispatch(batch)
        got, _ = make_backend(gpu_session, chunk=2).dispatch(batch)
        assert got == expected

    def test_width_above_kernel_limit(self, gpu_session):
        with pytest.raises(PipelineError):
            GpuBackend(gpu_session, gpu_session.max_width + 1, owns_session=False)

    def test_session_reused_across_widths(self, gpu_session):
        for width in (1, 2, min(32, gpu_session.max_width)):
            digests, _ = make_backend(gpu_session, width).dispatch(generate_batch(40))
            assert digests[39] == HELLO1_DIGEST


class TestSessionSetup:
    def test_unknown_device_name(self):
        try:
            cl.get_platforms()
        except cl.Error:
            pytest.skip("no OpenCL platform")
        with pytest.raises(DeviceNotFoundError):
            select_device("no-such-device-name-xyz", allow_cpu_device=True)

    def test_broken_kernel_source_carries_build_log(self, gpu_session):
        with pytest.raises(KernelBuildError) as info:
            GpuSession(gpu_session.device, source="__kernel void sha256_kernel( { }")
        assert info.value.build_log != ""

    def test_missing_entry_point(self, gpu_session):
        with pytest.raises(PipelineError):
            GpuSession(gpu_session.device, source="__kernel void other(__global uint *x) { x[0] = 1; }")
