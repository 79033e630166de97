"""Persist and restore network parameters without reaching into layer internals."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np

from .errors import InvalidConfiguration
from .layers import DenseLayer
from .network import Network

FORMAT_VERSION = 1


def network_to_dict(network: Network) -> Dict[str, Any]:
    """Return a JSON-safe description holding shapes, values and activations."""

    layers: List[Dict[str, Any]] = []
    for layer in network:
        params = layer.get_parameters()
        layers.append(
            {
                "input_dim": layer.input_dim,
                "output_dim": layer.output_dim,
                "activation": layer.activation.value,
                "weight": params["weight"].tolist(),
                "bias": params["bias"].tolist(),
            }
        )
    return {"version": FORMAT_VERSION, "layers": layers}


def network_from_dict(payload: Mapping[str, Any]) -> Network:
    version = int(payload.get("version", FORMAT_VERSION))
    if version != FORMAT_VERSION:
        raise InvalidConfiguration(f"Unsupported network format version: {version}")
    layers = [
        DenseLayer(
            int(entry["input_dim"]),
            int(entry["output_dim"]),
            str(entry["activation"]),
            weight=entry["weight"],
            bias=entry["bias"],
        )
        for entry in payload["layers"]
    ]
    return Network(layers)


def save_network(network: Network, path: str | Path) -> Path:
    """Write ``network`` to a compressed ``.npz`` archive at ``path``."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = dict(network.state_dict())
    payload["activations"] = np.array([layer.activation.value for layer in network])
    payload["meta"] = np.array(json.dumps({"version": FORMAT_VERSION}))
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    return path


def load_network(path: str | Path) -> Network:
    with np.load(Path(path), allow_pickle=False) as archive:
        meta = json.loads(str(archive["meta"]))
        if int(meta.get("version", 0)) != FORMAT_VERSION:
            raise InvalidConfiguration(f"Unsupported checkpoint version: {meta!r}")
        activations = [str(name) for name in archive["activations"]]
        layers = []
        for idx, activation in enumerate(activations):
            weight = archive[f"layer{idx}.weight"]
            bias = archive[f"layer{idx}.bias"]
            layers.append(
                DenseLayer(
                    weight.shape[0],
                    weight.shape[1],
                    activation,
                    weight=weight,
                    bias=bias,
                )
            )
    return Network(layers)


__all__ = ["load_network", "network_from_dict", "network_to_dict", "save_network"]
