"""Deterministic run summaries built from the JSONL metric log."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import numpy as np

from ..core.types import TrainingHistory


def _area(y: np.ndarray, x: np.ndarray) -> float:
    trapezoid = getattr(np, "trapezoid", None)
    if callable(trapezoid):
        return float(trapezoid(y, x))
    return float(np.trapz(y, x))


def compute_auc(points: Sequence[float]) -> float:
    """Return the area-under-curve of ``points`` along an implicit step axis."""

    if not points:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    x = np.arange(len(points), dtype=np.float64)
    return _area(y, x)


def _extract_numeric(
    records: Iterable[Mapping[str, object]]
) -> Mapping[str, list[float]]:
    metrics: dict[str, list[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in {"epoch", "seed"}:
                continue
            if isinstance(value, (int, float)):
                metrics.setdefault(key, []).append(float(value))
    return metrics


def _build_summary(
    records: list[Mapping[str, object]], tail: int, history: TrainingHistory | None
) -> Mapping[str, object]:
    metrics = _extract_numeric(records)
    tail_window = min(tail, len(records)) if records else 0
    summary_metrics: dict[str, Mapping[str, float]] = {}
    for name, values in metrics.items():
        arr = np.asarray(values, dtype=np.float64)
        tail_arr = arr[-tail_window:] if tail_window else arr[:0]
        summary_metrics[name] = {
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "mean": float(np.mean(arr)),
            "last": float(arr[-1]),
            "tail_auc": compute_auc(tail_arr.tolist()) if tail_window else 0.0,
        }

    summary: dict[str, object] = {
        "version": 1,
        "records": len(records),
        "tail_window": tail_window,
        "metrics": summary_metrics,
    }
    if history is not None:
        summary["best_epoch"] = history.best_epoch
        summary["best_loss"] = (
            history.best_loss if np.isfinite(history.best_loss) else None
        )
        summary["stopped_early"] = history.stopped_early
        summary["diverged"] = any(not np.isfinite(loss) for loss in history.train_loss)
    return summary


def read_records(metrics_jsonl: str | Path) -> list[Mapping[str, object]]:
    records: list[Mapping[str, object]] = []
    path = Path(metrics_jsonl)
    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def write_summary(
    metrics_jsonl: str | Path,
    out_summary_json: str | Path,
    *,
    tail: int = 32,
    history: TrainingHistory | None = None,
) -> str:
    """Write a deterministic summary for ``metrics_jsonl``.

    Non-finite values are logged as ``null`` and therefore left out of the
    per-metric statistics; ``diverged`` reports them when ``history`` is given.
    """

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary = _build_summary(read_records(metrics_jsonl), tail, history)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["compute_auc", "read_records", "write_summary"]
