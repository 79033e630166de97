"""Config-driven assembly of dataset, network, optimizer and trainer."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ..core.errors import InvalidConfiguration
from ..core.network import Network
from ..core.types import RunResult
from ..data import registry
from ..data.utils import seed_everything
from ..reporting.artifacts import write_checkpoint, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .losses import get_loss
from .metrics import Evaluator, default_metrics
from .optimizers import OptimizerConfig, build_optimizer
from .trainer import Trainer, TrainerConfig

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-sgd": {
        "data": {"name": "xor", "options": {}},
        "model": {"hidden": [4], "activation": "sigmoid", "output_activation": "sigmoid"},
        "train": {
            "epochs": 5000,
            "batch_size": 1,
            "shuffle": True,
            "seed": 0,
            "loss": "mse",
            "optimizer": {"name": "sgd", "learning_rate": 0.5},
            "metrics": ["accuracy"],
            "run_dir": "runs/xor-sgd",
            "enable_plots": False,
        },
    },
    "xor-adam": {
        "data": {"name": "xor", "options": {}},
        "model": {"hidden": [4], "activation": "tanh", "output_activation": "sigmoid"},
        "train": {
            "epochs": 300,
            "batch_size": 4,
            "shuffle": False,
            "seed": 1,
            "loss": "bce",
            "optimizer": {"name": "adam", "learning_rate": 0.05},
            "metrics": ["accuracy"],
            "run_dir": "runs/xor-adam",
            "enable_plots": False,
        },
    },
    "blobs-momentum": {
        "data": {"name": "blobs", "options": {"n_samples": 300, "n_classes": 3, "seed": 0}},
        "model": {"hidden": [16], "activation": "relu", "output_activation": "softmax"},
        "train": {
            "epochs": 40,
            "batch_size": 16,
            "shuffle": True,
            "seed": 0,
            "loss": "ce",
            "optimizer": {"name": "sgd", "learning_rate": 0.05, "momentum": 0.9},
            "metrics": "default",
            "run_dir": "runs/blobs-momentum",
            "enable_plots": False,
        },
    },
    "sine-adam": {
        "data": {"name": "sine", "options": {"freq": 1, "n_points": 256, "seed": 0}},
        "model": {"hidden": [32], "activation": "tanh", "output_activation": "identity"},
        "train": {
            "epochs": 200,
            "batch_size": 32,
            "shuffle": True,
            "seed": 0,
            "loss": "mse",
            "optimizer": {"name": "adam", "learning_rate": 0.01},
            "metrics": "default",
            "run_dir": "runs/sine-adam",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = {"data", "model", "train"}

logger = logging.getLogger(__name__)


def read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise InvalidConfiguration(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise InvalidConfiguration(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        loaded: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise InvalidConfiguration(
                        f"Preset {file.name} is missing required sections: {missing_str}"
                    )
                loaded[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = loaded
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError:
        available = ", ".join(sorted(presets()))
        raise InvalidConfiguration(
            f"Unknown preset {name!r}. Available presets: {available}"
        ) from None


def build_network(model_cfg: Mapping[str, object], d_in: int, d_out: int, seed: int) -> Network:
    hidden = [int(h) for h in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
    dims = [int(d_in), *hidden, int(d_out)]
    hidden_activation = str(model_cfg.get("activation", "sigmoid"))
    output_activation = str(model_cfg.get("output_activation", hidden_activation))
    activations = [hidden_activation] * len(hidden) + [output_activation]
    return Network.from_dims(dims, activations, seed=int(model_cfg.get("seed", seed)))


def build_trainer(
    train_cfg: Mapping[str, object],
    *,
    task_type: str,
    num_classes: int | None,
    callbacks: Sequence[object] = (),
) -> Trainer:
    optimizer_cfg = train_cfg.get("optimizer", {"name": "sgd"})
    if isinstance(optimizer_cfg, str):
        optimizer_cfg = {"name": optimizer_cfg}
    optimizer_cfg = dict(optimizer_cfg)  # type: ignore[arg-type]
    if "lr" in train_cfg and "learning_rate" not in optimizer_cfg and "lr" not in optimizer_cfg:
        optimizer_cfg["learning_rate"] = train_cfg["lr"]

    metrics_cfg = train_cfg.get("metrics", "default")
    if metrics_cfg == "default":
        metric_names: List[str] = default_metrics(task_type)
    elif isinstance(metrics_cfg, str):
        metric_names = [m.strip() for m in metrics_cfg.split(",") if m.strip()]
    else:
        metric_names = [str(m) for m in metrics_cfg]  # type: ignore[union-attr]

    patience = train_cfg.get("early_stopping_patience")
    config = TrainerConfig(
        epochs=int(train_cfg.get("epochs", 1)),
        batch_size=int(train_cfg.get("batch_size", 32)),
        shuffle=bool(train_cfg.get("shuffle", True)),
        seed=int(train_cfg.get("seed", 0)),
        metrics=tuple(metric_names),
        num_classes=num_classes,
        early_stopping_patience=int(patience) if patience is not None else None,
    )
    return Trainer(
        loss=get_loss(str(train_cfg.get("loss", "auto")), task_type=task_type),
        optimizer=build_optimizer(OptimizerConfig.from_mapping(optimizer_cfg)),
        config=config,
        callbacks=callbacks,
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise InvalidConfiguration(f"Config is missing sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    seed = int(train_cfg.get("seed", 0))
    seed_everything(seed)
    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    data_spec = dataset.data_spec

    network = build_network(model_cfg, data_spec.d_in, data_spec.d_out, seed)

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    train_jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics.csv", split="train")
    capture = MetricsCapture()
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = build_trainer(
        train_cfg,
        task_type=data_spec.task_type,
        num_classes=data_spec.num_classes,
        callbacks=[train_jsonl, train_csv, capture, plots],
    )

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=network.describe().layer_dims,
        activations=network.describe().activations,
        loss=trainer.loss.name,
        optimizer=type(trainer.optimizer).__name__,
        metrics=", ".join(trainer.config.metrics),
        param_count=network.parameter_count(),
    )

    val = dataset.val
    history = trainer.run(
        network,
        dataset.train.inputs,
        dataset.train.targets,
        val.inputs if val is not None else None,
        val.targets if val is not None else None,
    )
    plots.close()
    logger.info("finished %d epochs, last record: %s", len(history), capture.last)

    test_metrics: Dict[str, float] = {}
    if dataset.test is not None:
        evaluator = Evaluator(
            data_spec.task_type,
            metrics=trainer.config.metrics or None,
            num_classes=data_spec.num_classes,
        )
        predictions = network.predict(dataset.test.inputs)
        test_metrics = {"loss": trainer.loss.compute(predictions, dataset.test.targets)}
        test_metrics.update(
            {k: float(v) for k, v in evaluator.evaluate(predictions, dataset.test.targets).items()}
        )
        logger.info("test metrics: %s", test_metrics)
    (run_dir / "metrics_test.json").write_text(json.dumps(test_metrics, indent=2, sort_keys=True))

    checkpoint = write_checkpoint(run_dir / "network.npz", network)
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance=dataset.provenance,
        network=network,
    )
    summary_path = write_summary(
        train_jsonl.path,
        run_dir / "summary.json",
        tail=int(train_cfg.get("summary_tail", 32)),
        history=history,
    )
    (run_dir / "config.json").write_text(json.dumps(config, indent=2))

    return RunResult(
        epochs=len(history),
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        checkpoint_path=checkpoint,
        test_metrics=test_metrics,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    activations: Sequence[str],
    loss: str,
    optimizer: str,
    metrics: str,
    param_count: int,
) -> None:
    print("=== neuralnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Activations   : {list(activations)}")
    print(f"Loss          : {loss}")
    print(f"Optimizer     : {optimizer}")
    print(f"Metrics       : {metrics}")
    print(f"Parameters    : {param_count}")
    print("=====================")


__all__ = [
    "build_network",
    "build_trainer",
    "load_preset",
    "presets",
    "read_config_file",
    "run_pipeline",
]
