"""Command line entry point: ``shabench [run|compare|sweep|devices] ...``."""

from __future__ import annotations

import argparse
import math
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from . import __version__
from .backends import create_backend
from .config import BenchmarkConfig, RATE_UNITS, ValidationPolicy
from .errors import ConfigError, DispatchError, KernelBuildError, SetupError, ValidationError
from .logger import get_logger, setup_logging
from .loop import BenchmarkLoop
from .results import ThroughputRecorder
from .throughput import format_rate

logger = get_logger(__name__)

EXIT_SETUP = 2
EXIT_VALIDATION = 3
EXIT_DISPATCH = 4
EXIT_INTERRUPTED = 130


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("-n", "--batch-size", type=int, default=32768, help="records per batch")
    p.add_argument("--payload", default="hello1", help="record content (UTF-8)")
    p.add_argument("--expected", default=None, help="expected digest as hex (default: known vector)")
    p.add_argument("-t", "--threads", type=int, default=8, help="CPU pool width")
    p.add_argument("-w", "--width", type=int, default=64, help="GPU thread-group width")
    p.add_argument("--chunk", type=int, default=1, help="records per GPU invocation")
    p.add_argument("-k", "--report-every", type=int, default=1000, help="reporting cadence in iterations")
    p.add_argument("--validate", choices=[v.value for v in ValidationPolicy],
                   default=ValidationPolicy.FIRST_AND_LAST.value)
    p.add_argument("--warmup", type=int, default=0, help="warm-up iterations (not measured)")
    p.add_argument("--device", default=None, help="OpenCL device name substring")
    p.add_argument("--allow-cpu-device", action="store_true", help="accept OpenCL CPU devices")
    p.add_argument("--retries", type=int, default=0, help="retries for a failed GPU dispatch")
    p.add_argument("--retry-backoff", type=float, default=0.5, help="first retry delay in seconds")
    p.add_argument("--unit", choices=RATE_UNITS, default="auto")
    p.add_argument("--results-dir", type=Path, default=None, help="write CSV + PNG here")
    p.add_argument("--no-spot-check", action="store_true", help="skip the known-vector check")
    p.add_argument("--reuse-batch", action="store_true", help="build the batch once instead of per iteration")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shabench", description="SHA-256 CPU/GPU throughput harness")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--log-format", choices=["text", "json"], default="text")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="run one backend until interrupted")
    run.add_argument("-b", "--backend", choices=["cpu", "gpu"], default="cpu")
    run.add_argument("-i", "--iterations", type=int, default=None, help="stop after N iterations")
    _add_common(run)

    cmp_ = sub.add_parser("compare", help="CPU then GPU for a fixed number of iterations")
    cmp_.add_argument("-i", "--iterations", type=int, default=100)
    _add_common(cmp_)

    sw = sub.add_parser("sweep", help="GPU throughput per thread-group width")
    sw.add_argument("-i", "--iterations", type=int, default=100)
    sw.add_argument("--widths", type=int, nargs="+", default=[64, 128, 256, 512, 1024])
    _add_common(sw)

    sub.add_parser("devices", help="list OpenCL devices")
    return parser


def config_from_args(args: argparse.Namespace, backend: str = "cpu") -> BenchmarkConfig:
    try:
        expected = bytes.fromhex(args.expected) if args.expected else None
    except ValueError as exc:
        raise ConfigError(f"--expected is not a hex digest: {exc}") from exc
    return BenchmarkConfig(
        backend=getattr(args, "backend", backend),
        batch_size=args.batch_size,
        payload=args.payload.encode("utf-8"),
        expected_digest=expected,
        threads=args.threads,
        thread_group_width=args.width,
        chunk_size=args.chunk,
        report_interval=args.report_every,
        validation=ValidationPolicy(args.validate),
        warmup_iterations=args.warmup,
        max_iterations=getattr(args, "iterations", None),
        device_name=args.device,
        allow_cpu_device=args.allow_cpu_device,
        dispatch_retries=args.retries,
        retry_backoff=args.retry_backoff,
        rate_unit=args.unit,
        results_dir=args.results_dir,
        spot_check=not args.no_spot_check,
        regenerate_batch=not args.reuse_batch,
    ).check()


def install_stop_handlers(stop_event: threading.Event) -> dict:
    def _handler(signum, frame):
        logger.info("Received signal %d, stopping after the current iteration", signum)
        stop_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def cmd_run(config: BenchmarkConfig, stop_event: threading.Event) -> int:
    with create_backend(config) as backend:
        recorder = ThroughputRecorder(config.label or backend.label) if config.results_dir else None
        loop = BenchmarkLoop(backend, config, recorder=recorder, stop_event=stop_event)
        try:
            stats = loop.run()
        finally:
            if recorder is not None:
                recorder.save(config.results_dir)
        if stats.iteration_count:
            worst = stats.worst_rate if math.isfinite(stats.worst_rate) else 0.0
            print(f"{loop.label}: {stats.iteration_count} iterations, {stats.total_hashes:,} hashes "
                  f"in {stats.total_elapsed:.3f}s, {format_rate(stats.rate, config.rate_unit)} "
                  f"(best {format_rate(stats.best_rate, config.rate_unit)}, "
                  f"worst {format_rate(worst, config.rate_unit)})")
    return EXIT_INTERRUPTED if stop_event.is_set() else 0


def cmd_devices() -> int:
    from .backends.gpu import list_devices

    devices = list_devices()
    if not devices:
        print("No OpenCL devices found.")
        return EXIT_SETUP
    for i, d in enumerate(devices):
        print(f"{i}: {d.name}  [{d.type}]  platform={d.platform}  "
              f"max_work_group={d.max_work_group_size}  compute_units={d.compute_units}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(argv + ["run"])
    setup_logging(args.log_level, args.log_file, args.log_format)

    stop_event = threading.Event()
    previous = install_stop_handlers(stop_event)
    try:
        if args.command == "devices":
            return cmd_devices()
        if args.command == "compare":
            from .compare import compare

            compare(config_from_args(args), args.iterations, args.results_dir, stop_event)
        elif args.command == "sweep":
            from .sweep import sweep

            sweep(config_from_args(args, backend="gpu"), args.iterations, args.widths,
                  args.results_dir, stop_event)
        else:
            return cmd_run(config_from_args(args), stop_event)
    except KernelBuildError as exc:
        logger.error("Setup failed: %s", exc)
        if exc.build_log:
            logger.error("Build log:\n%s", exc.build_log)
        return EXIT_SETUP
    except SetupError as exc:
        logger.error("Setup failed: %s", exc)
        return EXIT_SETUP
    except ValidationError as exc:
        logger.error("Validation failed: %s", exc)
        return EXIT_VALIDATION
    except DispatchError as exc:
        logger.error("Dispatch failed on %s: %s", exc.backend, exc)
        return EXIT_DISPATCH
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
    return EXIT_INTERRUPTED if stop_event.is_set() else 0


if __name__ == "__main__":
    sys.exit(main())
