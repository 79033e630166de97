"""Deterministic mini-batch training loop."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from ..core.errors import InvalidConfiguration, InvalidInput
from ..core.matrix import Matrix, as_matrix
from ..core.network import Network
from ..core.types import Batch, EpochRecord, TrainingHistory
from .losses import Loss, get_loss
from .metrics import compute_metrics
from .optimizers import Optimizer, OptimizerConfig, build_optimizer

logger = logging.getLogger(__name__)

StopCondition = Callable[[EpochRecord], bool]


@dataclass(frozen=True)
class TrainerConfig:
    """Loop settings; shuffling draws ``rng.permutation`` from one seeded generator per run."""

    epochs: int = 10
    batch_size: int = 32
    shuffle: bool = True
    seed: int = 0
    metrics: Sequence[str] = field(default_factory=tuple)
    num_classes: Optional[int] = None
    early_stopping_patience: Optional[int] = None
    min_delta: float = 1e-9

    def __post_init__(self) -> None:
        if int(self.batch_size) <= 0:
            raise InvalidConfiguration(f"batch_size must be positive, got {self.batch_size}")
        if int(self.epochs) < 0:
            raise InvalidConfiguration(f"epochs must be non-negative, got {self.epochs}")
        if self.early_stopping_patience is not None and int(self.early_stopping_patience) <= 0:
            raise InvalidConfiguration(
                "early_stopping_patience must be positive when set, got "
                f"{self.early_stopping_patience}"
            )


def iter_batches(
    inputs: Matrix, targets: Matrix, batch_size: int, order: np.ndarray
) -> Iterator[Batch]:
    """Yield consecutive batches along ``order``; the last one may be smaller."""

    for start in range(0, len(order), batch_size):
        idx = order[start : start + batch_size]
        yield Batch(inputs=inputs.take_rows(idx), targets=targets.take_rows(idx))


class Trainer:
    """forward -> loss -> backward -> optimizer step, once per batch."""

    def __init__(
        self,
        loss: Loss | str,
        optimizer: Optimizer | OptimizerConfig | Mapping[str, object] | str,
        config: TrainerConfig | None = None,
        *,
        callbacks: Sequence[object] | None = None,
        stop_condition: StopCondition | None = None,
    ) -> None:
        self.loss = get_loss(loss)
        self.optimizer = (
            optimizer if isinstance(optimizer, Optimizer) else build_optimizer(optimizer)
        )
        self.config = config or TrainerConfig()
        self.callbacks = list(callbacks or [])
        self.stop_condition = stop_condition

    def run(
        self,
        network: Network,
        train_inputs,
        train_targets,
        validation_inputs=None,
        validation_targets=None,
    ) -> TrainingHistory:
        train_x = as_matrix(train_inputs)
        train_y = as_matrix(train_targets)
        _check_pair(train_x, train_y, "training")
        validation = None
        if (validation_inputs is None) != (validation_targets is None):
            raise InvalidInput("validation inputs and targets must be given together")
        if validation_inputs is not None:
            val_x = as_matrix(validation_inputs)
            val_y = as_matrix(validation_targets)
            _check_pair(val_x, val_y, "validation")
            validation = (val_x, val_y)

        cfg = self.config
        rng = np.random.default_rng(cfg.seed)
        history = TrainingHistory()
        epochs_no_improve = 0
        n = train_x.rows

        for epoch in range(1, int(cfg.epochs) + 1):
            order = rng.permutation(n) if cfg.shuffle else np.arange(n)
            train_loss, predictions, targets = self._train_epoch(
                network, train_x, train_y, order
            )
            metrics = {}
            if cfg.metrics:
                metrics.update(
                    compute_metrics(cfg.metrics, predictions, targets, num_classes=cfg.num_classes)
                )

            val_loss = None
            if validation is not None:
                val_loss, val_metrics = self.evaluate(network, *validation)
                metrics.update({f"val_{k}": v for k, v in val_metrics.items()})

            record = EpochRecord(
                epoch=epoch, train_loss=train_loss, validation_loss=val_loss, metrics=metrics
            )
            history.records.append(record)
            self._emit_epoch(record)

            if not math.isfinite(train_loss):
                logger.warning("epoch %d: non-finite training loss %r", epoch, train_loss)
            logger.debug(
                "epoch %d/%d loss=%.6g val_loss=%s", epoch, cfg.epochs, train_loss, val_loss
            )

            current = val_loss if val_loss is not None else train_loss
            if current < history.best_loss - cfg.min_delta:
                history.best_loss = current
                history.best_epoch = epoch
                epochs_no_improve = 0
            else:
                epochs_no_improve += 1
                if (
                    cfg.early_stopping_patience
                    and epochs_no_improve >= cfg.early_stopping_patience
                ):
                    history.stopped_early = True
                    break

            if self.stop_condition is not None and self.stop_condition(record):
                history.stopped_early = True
                break

        return history

    def evaluate(
        self, network: Network, inputs, targets
    ) -> tuple[float, Mapping[str, float]]:
        """Forward-only pass returning the loss and configured metrics."""

        x = as_matrix(inputs)
        y = as_matrix(targets)
        _check_pair(x, y, "evaluation")
        predictions = network.predict(x)
        loss_value = self.loss.compute(predictions, y)
        metrics: Mapping[str, float] = {}
        if self.config.metrics:
            metrics = compute_metrics(
                self.config.metrics, predictions, y, num_classes=self.config.num_classes
            )
        return loss_value, metrics

    # ------------------------------------------------------------------
    # Internal helpers

    def _train_epoch(
        self, network: Network, inputs: Matrix, targets: Matrix, order: np.ndarray
    ) -> tuple[float, Matrix, Matrix]:
        total = 0.0
        seen_preds: List[Matrix] = []
        seen_targets: List[Matrix] = []
        fused = self.loss.fuses_with(network.output_activation)
        for batch in iter_batches(inputs, targets, self.config.batch_size, order):
            predictions = network.forward(batch.inputs)
            total += self.loss.compute(predictions, batch.targets) * batch.size
            if fused:
                grad = self.loss.fused_gradient(predictions, batch.targets)
            else:
                grad = self.loss.gradient(predictions, batch.targets)
            network.backward(grad, pre_activation=fused)
            self.optimizer.step(network.expose_parameters())
            seen_preds.append(predictions)
            seen_targets.append(batch.targets)
        return total / inputs.rows, Matrix.vstack(seen_preds), Matrix.vstack(seen_targets)

    def _emit_epoch(self, record: EpochRecord) -> None:
        payload = record.as_dict()
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(record.epoch, payload)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(record.epoch, payload)


def _check_pair(inputs: Matrix, targets: Matrix, label: str) -> None:
    if inputs.rows != targets.rows:
        raise InvalidInput(
            f"{label} inputs have {inputs.rows} samples but targets have {targets.rows}"
        )
    if inputs.rows == 0:
        raise InvalidInput(f"{label} data is empty")


__all__ = ["StopCondition", "Trainer", "TrainerConfig", "iter_batches"]
