"""Evaluation metrics computed from predictions and targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.errors import InvalidConfiguration, InvalidInput
from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


@dataclass(frozen=True)
class ClassificationReport:
    """Per-class confusion-derived scores and their macro averages."""

    precision: List[float]
    recall: List[float]
    f1: List[float]
    support: List[int]
    accuracy: float

    @property
    def macro_precision(self) -> float:
        return float(np.mean(self.precision)) if self.precision else 0.0

    @property
    def macro_recall(self) -> float:
        return float(np.mean(self.recall)) if self.recall else 0.0

    @property
    def macro_f1(self) -> float:
        return float(np.mean(self.f1)) if self.f1 else 0.0


def _as_2d(values) -> Array:
    array = np.asarray(values, dtype=np.float64)
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    return array


def _check_rows(predictions: Array, targets: Array) -> None:
    if predictions.shape[0] != targets.shape[0]:
        raise InvalidInput(
            f"Got {predictions.shape[0]} predictions for {targets.shape[0]} targets"
        )


def class_indices(values, *, threshold: float = 0.5) -> Array:
    """Argmax over columns, or ``value >= threshold`` for single-column outputs."""

    array = _as_2d(values)
    if array.shape[1] == 1:
        return (array[:, 0] >= threshold).astype(np.int64)
    return np.argmax(array, axis=1)


def _num_classes(predictions: Array, targets: Array) -> int:
    width = max(predictions.shape[1], targets.shape[1])
    return 2 if width == 1 else width


def accuracy(predictions, targets, *, threshold: float = 0.5) -> float:
    preds = _as_2d(predictions)
    targs = _as_2d(targets)
    _check_rows(preds, targs)
    if preds.shape[0] == 0:
        return 0.0
    pred_idx = class_indices(preds, threshold=threshold)
    targ_idx = class_indices(targs, threshold=threshold)
    return float(np.mean(pred_idx == targ_idx))


def confusion_matrix(
    predictions, targets, *, num_classes: int | None = None, threshold: float = 0.5
) -> Array:
    """Counts with rows indexed by true class and columns by predicted class."""

    preds = _as_2d(predictions)
    targs = _as_2d(targets)
    _check_rows(preds, targs)
    n = num_classes or _num_classes(preds, targs)
    pred_idx = class_indices(preds, threshold=threshold)
    targ_idx = class_indices(targs, threshold=threshold)
    counts = np.zeros((n, n), dtype=np.int64)
    np.add.at(counts, (targ_idx, pred_idx), 1)
    return counts


def classification_report(
    predictions, targets, *, num_classes: int | None = None, threshold: float = 0.5
) -> ClassificationReport:
    counts = confusion_matrix(
        predictions, targets, num_classes=num_classes, threshold=threshold
    )
    tp = np.diag(counts).astype(np.float64)
    predicted = counts.sum(axis=0).astype(np.float64)
    actual = counts.sum(axis=1).astype(np.float64)
    precision = np.divide(tp, predicted, out=np.zeros_like(tp), where=predicted > 0)
    recall = np.divide(tp, actual, out=np.zeros_like(tp), where=actual > 0)
    denom = precision + recall
    f1 = np.divide(2 * precision * recall, denom, out=np.zeros_like(tp), where=denom > 0)
    total = counts.sum()
    return ClassificationReport(
        precision=precision.tolist(),
        recall=recall.tolist(),
        f1=f1.tolist(),
        support=actual.astype(np.int64).tolist(),
        accuracy=float(tp.sum() / total) if total else 0.0,
    )


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mae", "rmse", "r2"]
    if task_type in {"multiclass", "binary"}:
        return ["accuracy", "precision", "recall", "f1"]
    raise InvalidConfiguration(f"Unknown task type: {task_type}")


def compute_metric(
    name: str,
    predictions,
    targets,
    *,
    num_classes: int | None = None,
) -> MetricResult:
    key = name.lower()
    preds = _as_2d(predictions)
    targs = _as_2d(targets)
    _check_rows(preds, targs)
    if key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "r2":
        mean = np.mean(targs, axis=0, keepdims=True)
        ss_res = float(np.sum((targs - preds) ** 2))
        ss_tot = float(np.sum((targs - mean) ** 2))
        value = 1.0 if ss_tot == 0 else float(1 - ss_res / ss_tot)
    elif key == "accuracy":
        value = accuracy(preds, targs)
    elif key in {"precision", "recall", "f1", "macro_f1"}:
        report = classification_report(preds, targs, num_classes=num_classes)
        if key == "precision":
            value = report.macro_precision
        elif key == "recall":
            value = report.macro_recall
        else:
            key = "f1"
            value = report.macro_f1
    else:
        raise InvalidConfiguration(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str],
    predictions,
    targets,
    *,
    num_classes: int | None = None,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets, num_classes=num_classes)
        results[metric.name] = metric.value
    return results


class Evaluator:
    """Summarise held-out performance for one task type."""

    def __init__(
        self,
        task_type: str = "multiclass",
        *,
        metrics: Iterable[str] | None = None,
        num_classes: int | None = None,
    ) -> None:
        self.task_type = task_type
        self.metric_names = list(metrics) if metrics is not None else default_metrics(task_type)
        self.num_classes = num_classes

    def evaluate(self, predictions, targets) -> Mapping[str, float]:
        return compute_metrics(
            self.metric_names, predictions, targets, num_classes=self.num_classes
        )

    def accuracy(self, predictions, targets) -> float:
        return accuracy(predictions, targets)

    def report(self, predictions, targets) -> ClassificationReport:
        return classification_report(predictions, targets, num_classes=self.num_classes)


__all__ = [
    "ClassificationReport",
    "Evaluator",
    "MetricResult",
    "accuracy",
    "class_indices",
    "classification_report",
    "compute_metrics",
    "confusion_matrix",
    "default_metrics",
]
