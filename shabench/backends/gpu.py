"""OpenCL backend.

A ``GpuSession`` holds everything with process lifetime: the selected device,
its context, the compiled program, the ``sha256_kernel`` kernel object and a
single in-order command queue. ``GpuBackend`` encodes one batch per dispatch
into transient device buffers, launches the kernel over a grid sized by
``DispatchGeometry``, waits for completion and copies the digests back.
"""

from __future__ import annotations

import time
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pyopencl as cl

from ..batch import Batch, DigestBuffer
from ..config import DIGEST_SIZE
from ..errors import DeviceNotFoundError, DispatchError, KernelBuildError, PipelineError
from ..logger import get_logger
from .base import Backend, DispatchResult
from .sizing import DispatchGeometry

logger = get_logger(__name__)

KERNEL_PATH = Path(__file__).resolve().parent.parent / "kernels" / "sha256.cl"
KERNEL_NAME = "sha256_kernel"

# kernel ABI slot numbers
SLOT_INPUTS = 0
SLOT_LENGTHS = 1
SLOT_OUTPUTS = 2
SLOT_CHUNK = 3
SLOT_COUNT = 4
SLOT_OFFSETS = 5


@dataclass(frozen=True)
class DeviceInfo:
    platform: str
    name: str
    type: str
    max_work_group_size: int
    compute_units: int


def _all_devices() -> List[Tuple[cl.Platform, cl.Device]]:
    try:
        platforms = cl.get_platforms()
    except cl.Error as exc:
        raise DeviceNotFoundError(f"no OpenCL platform available: {exc}") from exc
    found = []
    for platform in platforms:
        try:
            devices = platform.get_devices()
        except cl.Error as exc:
            logger.warning("Skipping platform %s: %s", platform.name, exc)
            continue
        found.extend((platform, d) for d in devices)
    return found


def list_devices() -> List[DeviceInfo]:
    return [
        DeviceInfo(
            platform=p.name.strip(),
            name=d.name.strip(),
            type=cl.device_type.to_string(d.type),
            max_work_group_size=d.max_work_group_size,
            compute_units=d.max_compute_units,
        )
        for p, d in _all_devices()
    ]


def select_device(name: Optional[str] = None, allow_cpu_device: bool = False) -> cl.Device:
    """Pick a device by case-insensitive name substring, else the first GPU.

    OpenCL CPU devices (pocl, vendor CPU runtimes) are only eligible when
    ``allow_cpu_device`` is set.
    """
    candidates = [d for _, d in _all_devices()]
    if not allow_cpu_device:
        candidates = [d for d in candidates if not d.type & cl.device_type.CPU]
    if name:
        matches = [d for d in candidates if name.lower() in d.name.lower()]
        if not matches:
            raise DeviceNotFoundError(f"no compute device named {name!r}", requested=name)
        return matches[0]
    gpus = [d for d in candidates if d.type & cl.device_type.GPU]
    if gpus:
        return gpus[0]
    if candidates:
        return candidates[0]
    raise DeviceNotFoundError("no OpenCL GPU device found")


def _build_log(program: cl.Program, device: cl.Device) -> str:
    try:
        return program.get_build_info(device, cl.program_build_info.LOG).strip()
    except cl.Error:
        return ""


class GpuSession:
    """Device, context, program, kernel and queue shared by every dispatch."""

    def __init__(self, device: cl.Device, source: Optional[str] = None):
        self.device = device
        self.name = device.name.strip()
        try:
            self.context = cl.Context([device])
            self.queue = cl.CommandQueue(self.context, device=device)
        except cl.Error as exc:
            raise PipelineError(f"could not create a context on {self.name}: {exc}") from exc

        if source is None:
            source = KERNEL_PATH.read_text(encoding="utf-8")
        program = cl.Program(self.context, source)
        try:
            self.program = program.build()
        except cl.Error as exc:
            log = _build_log(program, device)
            raise KernelBuildError(f"kernel build failed on {self.name}: {exc}", build_log=log) from exc

        try:
            self.kernel = cl.Kernel(self.program, KERNEL_NAME)
            self.max_width = self.kernel.get_work_group_info(
                cl.kernel_work_group_info.WORK_GROUP_SIZE, device
            )
        except cl.Error as exc:
            raise PipelineError(f"could not create {KERNEL_NAME} on {self.name}: {exc}") from exc
        logger.info("OpenCL session ready on %s (max thread-group width %d)", self.name, self.max_width)

    @classmethod
    def open(cls, device_name: Optional[str] = None, allow_cpu_device: bool = False) -> "GpuSession":
        return cls(select_device(device_name, allow_cpu_device))

    def close(self) -> None:
        if self.queue is not None:
            self.queue.finish()
        self.queue = None
        self.kernel = None
        self.program = None
        self.context = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def encode_batch(batch: Batch) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Host arrays for slots 0, 1 and 5: flat bytes, u32 lengths, u32 offsets."""
    return batch.flat_bytes(), batch.lengths(), batch.offsets()


class GpuBackend(Backend):
    def __init__(
        self,
        session: GpuSession,
        thread_group_width: int = 64,
        chunk_size: int = 1,
        owns_session: bool = True,
    ):
        if thread_group_width < 1 or chunk_size < 1:
            raise PipelineError("thread-group width and chunk size must be >= 1")
        if thread_group_width > session.max_width:
            raise PipelineError(
                f"thread-group width {thread_group_width} exceeds the kernel limit "
                f"{session.max_width} on {session.name}"
            )
        self.session = session
        self.width = thread_group_width
        self.chunk_size = chunk_size
        self.owns_session = owns_session
        self.label = f"GPU {session.name} w{thread_group_width}"

    def dispatch(self, batch: Batch) -> DispatchResult:
        n = len(batch)
        geometry = DispatchGeometry(n, self.width, self.chunk_size)
        ctx = self.session.context
        queue = self.session.queue
        kernel = self.session.kernel
        mf = cl.mem_flags

        start = time.perf_counter()
        with ExitStack() as stack:

            def device_buffer(flags, hostbuf):
                buf = cl.Buffer(ctx, flags | mf.COPY_HOST_PTR, hostbuf=hostbuf)
                stack.callback(buf.release)
                return buf

            try:
                inputs, lengths, offsets = encode_batch(batch)
                d_inputs = device_buffer(mf.READ_ONLY, inputs)
                d_lengths = device_buffer(mf.READ_ONLY, lengths)
                d_offsets = device_buffer(mf.READ_ONLY, offsets)
                d_outputs = device_buffer(mf.WRITE_ONLY, np.zeros(n * DIGEST_SIZE, dtype=np.uint8))

                kernel.set_arg(SLOT_INPUTS, d_inputs)
                kernel.set_arg(SLOT_LENGTHS, d_lengths)
                kernel.set_arg(SLOT_OUTPUTS, d_outputs)
                kernel.set_arg(SLOT_CHUNK, np.uint32(self.chunk_size))
                kernel.set_arg(SLOT_COUNT, np.uint32(n))
                kernel.set_arg(SLOT_OFFSETS, d_offsets)

                event = cl.enqueue_nd_range_kernel(
                    queue, kernel, geometry.global_size, geometry.local_size
                )
                event.wait()

                host = np.empty(n * DIGEST_SIZE, dtype=np.uint8)
                cl.enqueue_copy(queue, host, d_outputs, is_blocking=True)
            except cl.Error as exc:
                raise DispatchError(
                    f"dispatch of {n} records failed on {self.session.name}: {exc}",
                    backend=self.label,
                    original_error=exc,
                ) from exc
        elapsed = time.perf_counter() - start
        return DispatchResult(DigestBuffer(host.tobytes()), elapsed)

    def close(self) -> None:
        if self.owns_session:
            self.session.close()
