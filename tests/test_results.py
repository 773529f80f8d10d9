"""Tests for CSV + PNG export."""

import pandas as pd

from shabench.results import ThroughputRecorder, save_plot, save_table, slug
from shabench.throughput import ThroughputStats


def test_slug():
    assert slug("GPU Apple M1 w64") == "gpu_apple_m1_w64"
    assert slug("///") == "run"


def test_save_table_and_plot(tmp_path):
    df = pd.DataFrame(dict(mode=["cpu", "gpu"], hashes_per_s=[1.0e6, 4.0e7]))
    csv_path = save_table(df, tmp_path / "out", "compare")
    assert csv_path.exists()
    assert csv_path.name.endswith("_compare.csv")
    assert pd.read_csv(csv_path)["mode"].tolist() == ["cpu", "gpu"]

    png = save_plot(df, "mode", "hashes_per_s", csv_path.with_suffix(".png"),
                    title="t", xlabel="x", ylabel="y", kind="bar")
    assert png.exists() and png.stat().st_size > 0


def test_recorder_roundtrip(tmp_path):
    recorder = ThroughputRecorder("CPU x8")
    stats = ThroughputStats()
    for _ in range(3):
        stats.record(100, 0.5)
        recorder.sample(stats)
    csv_path = recorder.save(tmp_path)
    df = pd.read_csv(csv_path)
    assert df["iteration"].tolist() == [1, 2, 3]
    assert df["hashes_per_s"].tolist() == [200.0, 200.0, 200.0]
    assert csv_path.with_suffix(".png").exists()


def test_recorder_without_samples(tmp_path):
    assert ThroughputRecorder("x").save(tmp_path) is None
    assert list(tmp_path.iterdir()) == []
