"""Core typing contracts for neuralnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from .matrix import Matrix

Array = np.ndarray

ParameterKey = Tuple[int, str]


@dataclass(frozen=True)
class Batch:
    """A single mini-batch of data."""

    inputs: Matrix
    targets: Matrix

    @property
    def size(self) -> int:
        return self.inputs.rows


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_dims: List[int]
    activations: List[str]


@dataclass(frozen=True)
class EpochRecord:
    """What a training run reports to its logging collaborators once per epoch."""

    epoch: int
    train_loss: float
    validation_loss: Optional[float] = None
    metrics: Mapping[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, float]:
        """Flatten into the ``{"loss": ..., "val_loss": ...}`` mapping sinks consume."""

        payload: Dict[str, float] = {"loss": float(self.train_loss)}
        if self.validation_loss is not None:
            payload["val_loss"] = float(self.validation_loss)
        payload.update({k: float(v) for k, v in self.metrics.items()})
        return payload


@dataclass
class TrainingHistory:
    """Ordered per-epoch record of one call to :meth:`Trainer.run`."""

    records: List[EpochRecord] = field(default_factory=list)
    best_epoch: Optional[int] = None
    best_loss: float = float("inf")
    stopped_early: bool = False

    def __iter__(self) -> Iterator[EpochRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> EpochRecord:
        return self.records[index]

    @property
    def train_loss(self) -> List[float]:
        return [record.train_loss for record in self.records]

    @property
    def validation_loss(self) -> List[Optional[float]]:
        return [record.validation_loss for record in self.records]

    @property
    def last(self) -> Optional[EpochRecord]:
        return self.records[-1] if self.records else None


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`neuralnet.training.pipelines.run_pipeline`."""

    epochs: int
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    checkpoint_path: str = ""
    test_metrics: Mapping[str, float] = field(default_factory=dict)
