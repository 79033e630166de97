"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping, Optional

import numpy as np

from ..core.errors import InvalidConfiguration, InvalidInput
from ..core.types import Array
from .utils import deterministic_split

TASK_TYPES = frozenset({"regression", "multiclass", "binary"})


@dataclass(frozen=True)
class Split:
    """Inputs and targets of one partition; rows are samples."""

    inputs: Array
    targets: Array

    def __post_init__(self) -> None:
        if self.inputs.ndim != 2 or self.targets.ndim != 2:
            raise InvalidInput("Split inputs and targets must be 2-D arrays")
        if self.inputs.shape[0] != self.targets.shape[0]:
            raise InvalidInput(
                f"Split has {self.inputs.shape[0]} inputs but {self.targets.shape[0]} targets"
            )

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Number of input features per sample.
    d_out:
        Number of target columns as consumed by the network.
    task_type:
        One of ``{"regression", "multiclass", "binary"}``.
    num_classes:
        Number of discrete classes for classification tasks.
    normalization:
        Metadata describing normalisation already applied to inputs or
        targets. Preserved so runs remain reproducible.
    """

    d_in: int
    d_out: int
    task_type: str
    num_classes: int | None = None
    normalization: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """A dataset already normalised and split into partitions."""

    name: str
    train: Split
    data_spec: DataSpec
    provenance: Dict[str, Any]
    val: Optional[Split] = None
    test: Optional[Split] = None

    @property
    def splits(self) -> Dict[str, int]:
        return {
            "train": len(self.train),
            "val": len(self.val) if self.val is not None else 0,
            "test": len(self.test) if self.test is not None else 0,
        }


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | None:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` built by the factory registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise InvalidConfiguration(f"Unknown dataset {dataset!r}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.data_spec.task_type not in TASK_TYPES:
        raise InvalidConfiguration(f"Invalid task type: {spec.data_spec.task_type}")
    if spec.data_spec.task_type == "multiclass" and spec.data_spec.num_classes is None:
        raise InvalidConfiguration("Multiclass datasets must define num_classes")
    for split in (spec.train, spec.val, spec.test):
        if split is None:
            continue
        if split.inputs.shape[1] != spec.data_spec.d_in:
            raise InvalidInput(
                f"Dataset {spec.name!r} declares d_in={spec.data_spec.d_in} "
                f"but a split has {split.inputs.shape[1]} features"
            )
        if split.targets.shape[1] != spec.data_spec.d_out:
            raise InvalidInput(
                f"Dataset {spec.name!r} declares d_out={spec.data_spec.d_out} "
                f"but a split has {split.targets.shape[1]} target columns"
            )


def make_splits(
    inputs: Array, targets: Array, *, val_split: float, test_split: float, seed: int
) -> tuple[Split, Optional[Split], Optional[Split]]:
    """Partition ``inputs``/``targets`` with :func:`deterministic_split`."""

    indices = deterministic_split(
        inputs.shape[0], val_split=val_split, test_split=test_split, seed=seed
    )

    def _take(idx: Array) -> Optional[Split]:
        if idx.size == 0:
            return None
        return Split(inputs=np.asarray(inputs[idx]), targets=np.asarray(targets[idx]))

    train = Split(inputs=np.asarray(inputs[indices.train]), targets=np.asarray(targets[indices.train]))
    return train, _take(indices.val), _take(indices.test)


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "Split",
    "available_datasets",
    "get_dataset",
    "make_splits",
    "register_dataset",
]
