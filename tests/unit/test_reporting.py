import csv
import json
from pathlib import Path

import pytest

from neuralnet.core.types import EpochRecord, TrainingHistory
from neuralnet.reporting import CsvSink, JsonlSink, PlotAdapter, write_summary
from neuralnet.reporting.summary import compute_auc, read_records


def test_jsonl_sink_writes_sorted_records_and_nulls_non_finite(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl", split="train", seed=3)
    sink.on_epoch(1, {"loss": 0.5, "accuracy": 1.0})
    sink.on_epoch(2, {"loss": float("nan")})
    lines = (tmp_path / "metrics.jsonl").read_text().splitlines()
    first = json.loads(lines[0])
    assert first == {"accuracy": 1.0, "epoch": 1, "loss": 0.5, "seed": 3, "split": "train"}
    assert json.loads(lines[1])["loss"] is None


def test_sinks_truncate_previous_runs(tmp_path):
    path = tmp_path / "metrics.jsonl"
    JsonlSink(path).on_epoch(1, {"loss": 1.0})
    JsonlSink(path).on_epoch(1, {"loss": 2.0})
    assert len(read_records(path)) == 1


def test_csv_sink_has_header_once(tmp_path):
    sink = CsvSink(tmp_path / "metrics.csv")
    sink.on_epoch(1, {"loss": 0.5})
    sink.on_epoch(2, {"loss": 0.25})
    with (tmp_path / "metrics.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["epoch"] for row in rows] == ["1", "2"]


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter.on_epoch(1, {"loss": 1.0, "val_loss": 1.2})
    adapter.on_epoch(2, {"loss": 0.5, "val_loss": 0.7})
    assert adapter.close() == tmp_path / "loss.png"
    assert (tmp_path / "loss.png").exists()


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "run", enable_plots=False)
    adapter.on_epoch(1, {"loss": 1.0})
    assert adapter.close() is None
    assert not (tmp_path / "run").exists()


def test_summary_statistics_and_history_fields(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl", seed=0)
    for epoch, loss in enumerate([1.0, 0.5, 0.25], start=1):
        sink.on_epoch(epoch, {"loss": loss})
    history = TrainingHistory(
        records=[EpochRecord(epoch=1, train_loss=1.0), EpochRecord(epoch=2, train_loss=0.5)],
        best_epoch=2,
        best_loss=0.5,
    )
    out = write_summary(sink.path, tmp_path / "summary.json", tail=2, history=history)
    summary = json.loads(Path(out).read_text())
    loss = summary["metrics"]["loss"]
    assert loss["min"] == 0.25
    assert loss["last"] == 0.25
    assert loss["tail_auc"] == pytest.approx(compute_auc([0.5, 0.25]))
    assert "seed" not in summary["metrics"]
    assert summary["best_epoch"] == 2
    assert summary["diverged"] is False
