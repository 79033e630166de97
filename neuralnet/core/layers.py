"""Fully connected layer with analytic backpropagation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from .activations import Activation, get_activation
from .errors import InvalidConfiguration, MissingForwardPass, ShapeMismatch
from .matrix import Matrix, as_matrix
from .types import Array


@dataclass(frozen=True)
class ForwardCache:
    """Intermediates captured by the most recent cached forward pass."""

    inputs: Matrix
    pre_activation: Matrix
    output: Matrix


def glorot_limit(input_dim: int, output_dim: int) -> float:
    return float(np.sqrt(6.0 / (input_dim + output_dim)))


class DenseLayer:
    """``y = activation(x @ W + b)`` with ``W`` of shape ``[in, out]``.

    The layer keeps a single-slot :class:`ForwardCache`. ``backward`` consumes
    the cache of the latest ``forward(..., cache=True)`` call and fails with
    :class:`MissingForwardPass` when there is none. Reusing one instance across
    interleaved batches is not supported.
    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        activation: str | Activation = "sigmoid",
        *,
        weight=None,
        bias=None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if int(input_dim) <= 0 or int(output_dim) <= 0:
            raise InvalidConfiguration(
                f"Layer dimensions must be positive, got {input_dim}->{output_dim}"
            )
        self.input_dim = int(input_dim)
        self.output_dim = int(output_dim)
        self.activation = get_activation(activation)

        if weight is None:
            rng = rng if rng is not None else np.random.default_rng()
            limit = glorot_limit(self.input_dim, self.output_dim)
            self.weight = Matrix.random_uniform(self.input_dim, self.output_dim, limit, rng)
        else:
            self.weight = Matrix.zeros(self.input_dim, self.output_dim)
            self._assign("weight", self.weight, weight)
        self.bias = Matrix.zeros(1, self.output_dim)
        if bias is not None:
            self._assign("bias", self.bias, bias)

        self.cache: Optional[ForwardCache] = None
        self.grad_weight: Optional[Matrix] = None
        self.grad_bias: Optional[Matrix] = None

    def __repr__(self) -> str:
        return (
            f"DenseLayer({self.input_dim}->{self.output_dim}, "
            f"activation={self.activation.value!r})"
        )

    @property
    def parameter_count(self) -> int:
        return self.weight.size + self.bias.size

    def forward(self, inputs, *, cache: bool = True) -> Matrix:
        inputs = as_matrix(inputs)
        if inputs.cols != self.input_dim:
            raise ShapeMismatch(
                f"Layer expects {self.input_dim} input features, got {inputs.cols}"
            )
        z = (inputs @ self.weight).add_row(self.bias)
        y = self.activation.apply(z)
        if cache:
            self.cache = ForwardCache(inputs=inputs, pre_activation=z, output=y)
        return y

    def backward(self, grad_output, *, pre_activation: bool = False) -> Matrix:
        """Return ``dL/dinputs`` and store ``grad_weight``/``grad_bias``.

        With ``pre_activation=True`` the incoming gradient is already taken
        with respect to ``z`` (used for fused loss/activation gradients).
        """

        if self.cache is None:
            raise MissingForwardPass(
                f"{self!r}.backward() called without a cached forward pass"
            )
        grad_output = as_matrix(grad_output)
        if grad_output.shape != self.cache.output.shape:
            raise ShapeMismatch(
                f"Gradient shape {grad_output.shape} does not match layer output "
                f"{self.cache.output.shape}"
            )
        if pre_activation:
            delta = grad_output
        else:
            delta = self.activation.backward(
                grad_output, self.cache.pre_activation, self.cache.output
            )
        self.grad_weight = self.cache.inputs.T @ delta
        self.grad_bias = delta.sum(axis=0)
        return delta @ self.weight.T

    def clear_cache(self) -> None:
        self.cache = None

    def zero_grad(self) -> None:
        self.grad_weight = None
        self.grad_bias = None

    def get_parameters(self) -> Dict[str, Array]:
        return {"weight": self.weight.to_numpy(), "bias": self.bias.to_numpy()}

    def set_parameters(self, weight=None, bias=None) -> None:
        if weight is not None:
            self._assign("weight", self.weight, weight)
        if bias is not None:
            self._assign("bias", self.bias, bias)

    @staticmethod
    def _assign(name: str, target: Matrix, values) -> None:
        source = np.asarray(values, dtype=np.float64)
        if source.ndim == 1 and name == "bias":
            source = source.reshape(1, -1)
        if source.shape != target.shape:
            raise ShapeMismatch(
                f"Expected {name} of shape {target.shape}, got {source.shape}"
            )
        target.assign(source)


Layer = DenseLayer

__all__ = ["DenseLayer", "ForwardCache", "Layer", "glorot_limit"]
