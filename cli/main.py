"""Command line entry point for neuralnet training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from neuralnet.data import available_datasets
from neuralnet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if result.summary_path:
        payload["summary"] = result.summary_path
    if result.checkpoint_path:
        payload["checkpoint"] = result.checkpoint_path
    if result.test_metrics:
        payload["test"] = dict(result.test_metrics)
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-sgd",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("--seed", type=int, help="Seed used for dataset splits and training")
    parser.add_argument("--epochs", type=int, help="Override the number of training epochs")
    parser.add_argument("--run-dir", type=Path, help="Directory receiving run artifacts")
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a loss curve to loss.png"
    )
    parser.add_argument(
        "--dataset",
        choices=available_datasets(),
        help="Override the dataset used by the run",
    )
    parser.add_argument("--csv-path", help="Path to a CSV file for csv_* datasets")
    parser.add_argument(
        "--target-col",
        help="Target column name for CSV datasets (defaults to 'target')",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    return dict(pipelines.read_config_file(path))


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = _load_override(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train = config.setdefault("train", {})
    if args.enable_plots:
        train["enable_plots"] = True
    if args.epochs is not None:
        train["epochs"] = int(args.epochs)
    if args.run_dir is not None:
        train["run_dir"] = str(args.run_dir)

    if args.dataset:
        opts: dict = {}
        if args.seed is not None:
            opts["seed"] = int(args.seed)
        if args.dataset in {"csv_regression", "csv_classification"}:
            if args.csv_path:
                opts["csv_path"] = args.csv_path
            if args.target_col:
                opts["target_col"] = args.target_col
        config["data"] = {"name": args.dataset, "options": opts}

    if args.seed is not None:
        train["seed"] = int(args.seed)
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
