"""Loss functions returning a scalar value and ``dL/dprediction``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import numpy as np

from ..core.activations import Activation
from ..core.errors import InvalidConfiguration, ShapeMismatch
from ..core.matrix import Matrix, as_matrix


class LossKind(Enum):
    MSE = "mse"
    CROSS_ENTROPY = "ce"
    BINARY_CROSS_ENTROPY = "bce"


@dataclass(frozen=True)
class Loss:
    """Batch-mean loss; gradients are divided by the row count.

    Cross-entropy expects probabilities (softmax output), binary
    cross-entropy expects per-column probabilities (sigmoid output).
    ``epsilon`` keeps ``log`` and the divisions away from zero.
    """

    kind: LossKind
    epsilon: float = 1e-12

    @property
    def name(self) -> str:
        return self.kind.value

    def __call__(self, predictions, targets) -> tuple[float, Matrix]:
        return self.compute(predictions, targets), self.gradient(predictions, targets)

    def compute(self, predictions, targets) -> float:
        pred, target = _pair(predictions, targets)
        p, t = pred.array, target.array
        eps = self.epsilon
        if self.kind is LossKind.MSE:
            return float(np.mean(np.square(p - t)))
        if self.kind is LossKind.CROSS_ENTROPY:
            return float(-np.mean(np.sum(t * np.log(p + eps), axis=1)))
        if self.kind is LossKind.BINARY_CROSS_ENTROPY:
            per_row = np.sum(t * np.log(p + eps) + (1.0 - t) * np.log(1.0 - p + eps), axis=1)
            return float(-np.mean(per_row))
        raise InvalidConfiguration(f"Unhandled loss: {self.kind!r}")  # pragma: no cover

    def gradient(self, predictions, targets) -> Matrix:
        pred, target = _pair(predictions, targets)
        n = pred.rows
        eps = self.epsilon
        if self.kind is LossKind.MSE:
            # mean over every element, so the divisor is rows * cols
            return 2.0 * (pred - target) / pred.size
        if self.kind is LossKind.CROSS_ENTROPY:
            return -target / (pred + eps) / n
        if self.kind is LossKind.BINARY_CROSS_ENTROPY:
            return (-target / (pred + eps) + (1.0 - target) / (1.0 - pred + eps)) / n
        raise InvalidConfiguration(f"Unhandled loss: {self.kind!r}")  # pragma: no cover

    def fuses_with(self, activation: Activation) -> bool:
        """Whether ``(pred - target) / N`` is this loss's gradient w.r.t. the output pre-activation."""

        return (self.kind is LossKind.CROSS_ENTROPY and activation is Activation.SOFTMAX) or (
            self.kind is LossKind.BINARY_CROSS_ENTROPY and activation is Activation.SIGMOID
        )

    def fused_gradient(self, predictions, targets) -> Matrix:
        pred, target = _pair(predictions, targets)
        return (pred - target) / pred.rows


def _pair(predictions, targets) -> tuple[Matrix, Matrix]:
    pred = as_matrix(predictions)
    target = as_matrix(targets)
    if pred.shape != target.shape:
        raise ShapeMismatch(
            f"Predictions of shape {pred.shape} do not match targets of shape {target.shape}"
        )
    return pred, target


_ALIASES = {
    "mse": LossKind.MSE,
    "mean_squared_error": LossKind.MSE,
    "ce": LossKind.CROSS_ENTROPY,
    "cross_entropy": LossKind.CROSS_ENTROPY,
    "crossentropy": LossKind.CROSS_ENTROPY,
    "bce": LossKind.BINARY_CROSS_ENTROPY,
    "binary_cross_entropy": LossKind.BINARY_CROSS_ENTROPY,
}

_AUTO = {
    "regression": "mse",
    "multiclass": "ce",
    "binary": "bce",
    "multilabel": "bce",
}


def names() -> Iterable[str]:
    return sorted(_ALIASES)


def get_loss(name: str | Loss | LossKind, *, task_type: str | None = None) -> Loss:
    """Resolve ``name`` to a :class:`Loss`; ``"auto"`` picks one from ``task_type``."""

    if isinstance(name, Loss):
        return name
    if isinstance(name, LossKind):
        return Loss(name)
    key = str(name).strip().lower()
    if key == "auto":
        if task_type not in _AUTO:
            raise InvalidConfiguration(
                f"Cannot resolve loss 'auto' for task type {task_type!r}"
            )
        key = _AUTO[task_type]
    if key not in _ALIASES:
        available = ", ".join(names())
        raise InvalidConfiguration(f"Unknown loss {name!r}. Available losses: {available}")
    return Loss(_ALIASES[key])


MSE = Loss(LossKind.MSE)
CROSS_ENTROPY = Loss(LossKind.CROSS_ENTROPY)
BINARY_CROSS_ENTROPY = Loss(LossKind.BINARY_CROSS_ENTROPY)

__all__ = [
    "BINARY_CROSS_ENTROPY",
    "CROSS_ENTROPY",
    "MSE",
    "Loss",
    "LossKind",
    "get_loss",
    "names",
]
