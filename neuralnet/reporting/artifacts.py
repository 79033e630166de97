"""Experiment artifact helpers."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

import numpy as np

from ..core.network import Network
from ..core.serialization import save_network


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except Exception:  # pragma: no cover - git may be unavailable in tests
        return "unknown"


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    network: Network | None = None,
) -> str:
    """Write a manifest JSON file capturing reproducibility metadata."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": _git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    if network is not None:
        description = network.describe()
        manifest["network"] = {
            "layer_dims": description.layer_dims,
            "activations": description.activations,
            "parameters": network.parameter_count(),
        }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)


def write_checkpoint(path: str | Path, network: Network) -> str:
    return str(save_network(network, path))


__all__ = ["write_checkpoint", "write_manifest"]
