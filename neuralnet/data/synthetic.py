"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from .registry import DataSpec, DatasetSpec, Split, make_splits, register_dataset
from .utils import one_hot

XOR_INPUTS = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
XOR_TARGETS = np.array([[0.0], [1.0], [1.0], [0.0]])


@register_dataset("xor")
def load_xor(**_: object) -> DatasetSpec:
    """The four XOR points; every split is the same four samples."""

    split = Split(inputs=XOR_INPUTS.copy(), targets=XOR_TARGETS.copy())
    return DatasetSpec(
        name="xor",
        train=split,
        val=None,
        test=split,
        data_spec=DataSpec(d_in=2, d_out=1, task_type="binary", num_classes=2),
        provenance={"type": "xor"},
    )


@register_dataset("blobs")
def load_blobs(
    *,
    n_samples: int = 300,
    n_features: int = 2,
    n_classes: int = 3,
    spread: float = 0.6,
    seed: int = 0,
    val_split: float = 0.1,
    test_split: float = 0.2,
    **_: object,
) -> DatasetSpec:
    """Isotropic Gaussian clusters with one-hot targets."""

    rng = np.random.default_rng(seed)
    centers = rng.uniform(-3.0, 3.0, size=(n_classes, n_features))
    labels = rng.integers(0, n_classes, size=n_samples)
    x = centers[labels] + spread * rng.standard_normal((n_samples, n_features))
    y = one_hot(labels, n_classes)
    train, val, test = make_splits(x, y, val_split=val_split, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="blobs",
        train=train,
        val=val,
        test=test,
        data_spec=DataSpec(
            d_in=n_features, d_out=n_classes, task_type="multiclass", num_classes=n_classes
        ),
        provenance={
            "type": "blobs",
            "n_samples": n_samples,
            "n_classes": n_classes,
            "spread": spread,
            "seed": seed,
            "val_split": val_split,
            "test_split": test_split,
        },
    )


@register_dataset("sine")
def load_sine(
    *,
    freq: int = 1,
    n_points: int = 256,
    noise: float = 0.05,
    seed: int = 0,
    val_split: float = 0.1,
    test_split: float = 0.2,
    **_: object,
) -> DatasetSpec:
    """Noisy ``sin(freq * pi * x)`` on ``[-1, 1]`` for regression."""

    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    train, val, test = make_splits(x, y, val_split=val_split, test_split=test_split, seed=seed)
    return DatasetSpec(
        name="sine",
        train=train,
        val=val,
        test=test,
        data_spec=DataSpec(d_in=1, d_out=1, task_type="regression"),
        provenance={
            "type": "sine",
            "freq": freq,
            "n_points": n_points,
            "noise": noise,
            "seed": seed,
            "val_split": val_split,
            "test_split": test_split,
        },
    )


__all__ = ["XOR_INPUTS", "XOR_TARGETS", "load_blobs", "load_sine", "load_xor"]
