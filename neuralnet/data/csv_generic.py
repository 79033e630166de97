"""Generic tabular loaders (CSV, JSON records or Excel) for regression and classification."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from ..core.errors import InvalidConfiguration, InvalidInput
from .registry import DataSpec, DatasetSpec, make_splits, register_dataset
from .utils import standardize


def read_table(path: str | Path) -> pd.DataFrame:
    """Read ``path`` as a data frame; ``.json`` files hold a list of records.

    ``.xlsx`` workbooks are read from their first sheet.
    """

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix == ".json":
        return pd.read_json(path, orient="records")
    if suffix == ".xlsx":
        return pd.read_excel(path)
    raise InvalidConfiguration(f"Unsupported table format: {path.suffix}")


def _load_table(path: Path, target_col: str) -> tuple[np.ndarray, np.ndarray]:
    df = read_table(path)
    if target_col not in df.columns:
        raise InvalidInput(f"Target column {target_col!r} not found in {path.name}")
    y = df.pop(target_col).to_numpy()
    X = df.to_numpy(dtype=np.float64)
    return X, y


def _require_path(csv_path: str | Path | None) -> Path:
    if csv_path is None:
        raise InvalidConfiguration("csv_path is required for tabular datasets")
    return Path(csv_path)


@register_dataset("csv_regression")
def load_csv_regression(
    *,
    csv_path: str | Path | None = None,
    target_col: str = "target",
    val_split: float = 0.1,
    test_split: float = 0.2,
    seed: int = 0,
    standardize_inputs: bool = True,
    standardize_targets: bool = True,
    **_: object,
) -> DatasetSpec:
    """Load a regression dataset from a CSV, JSON or Excel file."""

    path = _require_path(csv_path)
    X, y_raw = _load_table(path, target_col)
    y = np.asarray(y_raw, dtype=np.float64).reshape(-1, 1)

    normalization: dict[str, dict[str, list[float]]] = {}
    if standardize_inputs:
        X, mean, std = standardize(X)
        normalization["inputs"] = {
            "mean": mean.flatten().tolist(),
            "std": std.flatten().tolist(),
        }
    if standardize_targets:
        y, t_mean, t_std = standardize(y)
        normalization["targets"] = {
            "mean": t_mean.flatten().tolist(),
            "std": t_std.flatten().tolist(),
        }

    train, val, test = make_splits(X, y, val_split=val_split, test_split=test_split, seed=seed)

    data_spec = DataSpec(
        d_in=int(X.shape[1]),
        d_out=int(y.shape[1]),
        task_type="regression",
        normalization=normalization,
    )

    provenance = {
        "path": str(path),
        "val_split": val_split,
        "test_split": test_split,
        "seed": seed,
        "target_col": target_col,
        "standardize_inputs": standardize_inputs,
        "standardize_targets": standardize_targets,
    }

    return DatasetSpec(
        name="csv_regression",
        train=train,
        val=val,
        test=test,
        data_spec=data_spec,
        provenance=provenance,
    )


@register_dataset("csv_classification")
def load_csv_classification(
    *,
    csv_path: str | Path | None = None,
    target_col: str = "target",
    val_split: float = 0.1,
    test_split: float = 0.2,
    seed: int = 0,
    standardize_inputs: bool = True,
    **_: object,
) -> DatasetSpec:
    """Load a classification dataset; labels are encoded and one-hot expanded.

    Two-class tables keep a single 0/1 target column (task ``binary``) so they
    pair with a sigmoid output; more classes produce one-hot targets.
    """

    path = _require_path(csv_path)
    X, y_raw = _load_table(path, target_col)
    encoder = LabelEncoder()
    y_encoded = encoder.fit_transform(y_raw)
    num_classes = int(len(encoder.classes_))
    if num_classes < 2:
        raise InvalidInput(f"{path.name} has a single class in {target_col!r}")
    if num_classes == 2:
        y = y_encoded.astype(np.float64).reshape(-1, 1)
        task_type = "binary"
    else:
        y = np.eye(num_classes, dtype=np.float64)[y_encoded]
        task_type = "multiclass"

    normalization: dict[str, dict[str, list[float]]] = {}
    if standardize_inputs:
        X, mean, std = standardize(X)
        normalization["inputs"] = {
            "mean": mean.flatten().tolist(),
            "std": std.flatten().tolist(),
        }

    train, val, test = make_splits(X, y, val_split=val_split, test_split=test_split, seed=seed)

    data_spec = DataSpec(
        d_in=int(X.shape[1]),
        d_out=int(y.shape[1]),
        task_type=task_type,
        num_classes=num_classes,
        normalization=normalization,
    )

    provenance = {
        "path": str(path),
        "val_split": val_split,
        "test_split": test_split,
        "seed": seed,
        "target_col": target_col,
        "classes": [str(c) for c in encoder.classes_.tolist()],
    }

    return DatasetSpec(
        name="csv_classification",
        train=train,
        val=val,
        test=test,
        data_spec=data_spec,
        provenance=provenance,
    )


__all__ = ["load_csv_classification", "load_csv_regression", "read_table"]
