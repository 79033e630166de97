"""Ordered composition of dense layers."""

from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence

import numpy as np

from .activations import Activation
from .errors import DimensionMismatch, InvalidConfiguration
from .layers import DenseLayer
from .matrix import Matrix
from .types import Array, ModelDescription


class LayerParameters(NamedTuple):
    """Live references to one layer's parameters and their latest gradients."""

    weight: Matrix
    bias: Matrix
    grad_weight: Optional[Matrix]
    grad_bias: Optional[Matrix]


class Network:
    """Feed-forward network; layer ``i`` output width must equal layer ``i+1`` input width."""

    def __init__(self, layers: Sequence[DenseLayer]) -> None:
        layers = list(layers)
        if not layers:
            raise InvalidConfiguration("A network needs at least one layer")
        for idx, (prev, nxt) in enumerate(zip(layers[:-1], layers[1:])):
            if prev.output_dim != nxt.input_dim:
                raise DimensionMismatch(
                    f"Layer {idx} outputs {prev.output_dim} features but layer "
                    f"{idx + 1} expects {nxt.input_dim}"
                )
        self.layers: List[DenseLayer] = layers

    @classmethod
    def from_dims(
        cls,
        dims: Sequence[int],
        activations: str | Activation | Sequence[str | Activation] = "sigmoid",
        *,
        seed: int | None = 0,
    ) -> "Network":
        """Build ``len(dims) - 1`` layers of widths ``dims``.

        ``activations`` is either one name reused for every layer or one name
        per layer.
        """

        dims = [int(d) for d in dims]
        if len(dims) < 2:
            raise InvalidConfiguration(f"Need at least input and output dims, got {dims}")
        n_layers = len(dims) - 1
        if isinstance(activations, (str, Activation)):
            names = [activations] * n_layers
        else:
            names = list(activations)
        if len(names) != n_layers:
            raise InvalidConfiguration(
                f"Expected {n_layers} activations for dims {dims}, got {len(names)}"
            )
        rng = np.random.default_rng(seed)
        layers = [
            DenseLayer(in_dim, out_dim, name, rng=rng)
            for in_dim, out_dim, name in zip(dims[:-1], dims[1:], names)
        ]
        return cls(layers)

    # ------------------------------------------------------------------
    # Sequence protocol

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[DenseLayer]:
        return iter(self.layers)

    def __getitem__(self, index: int) -> DenseLayer:
        return self.layers[index]

    def __repr__(self) -> str:
        return f"Network({self.layers!r})"

    @property
    def input_dim(self) -> int:
        return self.layers[0].input_dim

    @property
    def output_dim(self) -> int:
        return self.layers[-1].output_dim

    @property
    def output_activation(self) -> Activation:
        return self.layers[-1].activation

    def describe(self) -> ModelDescription:
        dims = [self.layers[0].input_dim] + [layer.output_dim for layer in self.layers]
        return ModelDescription(
            layer_dims=dims,
            activations=[layer.activation.value for layer in self.layers],
        )

    def parameter_count(self) -> int:
        return int(sum(layer.parameter_count for layer in self.layers))

    # ------------------------------------------------------------------
    # Passes

    def forward(self, inputs, *, cache: bool = True) -> Matrix:
        x = inputs
        for layer in self.layers:
            x = layer.forward(x, cache=cache)
        return x

    def predict(self, inputs) -> Matrix:
        """Forward pass that leaves every layer's cache untouched."""

        return self.forward(inputs, cache=False)

    def backward(self, loss_gradient, *, pre_activation: bool = False) -> None:
        """Backpropagate ``loss_gradient`` through every layer in reverse.

        ``pre_activation`` applies to the last layer only: its gradient is
        then already taken with respect to the output pre-activation.
        """

        grad = loss_gradient
        for idx, layer in enumerate(reversed(self.layers)):
            grad = layer.backward(grad, pre_activation=pre_activation and idx == 0)

    def expose_parameters(self) -> List[LayerParameters]:
        return [
            LayerParameters(layer.weight, layer.bias, layer.grad_weight, layer.grad_bias)
            for layer in self.layers
        ]

    def zero_grad(self) -> None:
        for layer in self.layers:
            layer.zero_grad()

    def clear_cache(self) -> None:
        for layer in self.layers:
            layer.clear_cache()

    # ------------------------------------------------------------------
    # State

    def state_dict(self) -> Dict[str, Array]:
        state: Dict[str, Array] = {}
        for idx, layer in enumerate(self.layers):
            params = layer.get_parameters()
            state[f"layer{idx}.weight"] = params["weight"]
            state[f"layer{idx}.bias"] = params["bias"]
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self.layers):
            missing = [
                key for key in (f"layer{idx}.weight", f"layer{idx}.bias") if key not in state
            ]
            if missing:
                raise KeyError(f"Missing parameters {missing} in state dict")
            layer.set_parameters(
                weight=state[f"layer{idx}.weight"], bias=state[f"layer{idx}.bias"]
            )


__all__ = ["LayerParameters", "Network"]
