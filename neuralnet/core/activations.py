"""Activation functions with their paired derivatives."""

from __future__ import annotations

from enum import Enum

import numpy as np

from .errors import InvalidConfiguration
from .matrix import Matrix
from .types import Array


def identity(x: Array) -> Array:
    return x


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid, computed without overflowing ``exp``."""

    e = np.exp(-np.abs(x))
    return np.where(x >= 0, 1.0 / (1.0 + e), e / (1.0 + e))


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def softmax(x: Array) -> Array:
    shifted = x - np.max(x, axis=1, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=1, keepdims=True)


class Activation(Enum):
    """Closed set of activations a :class:`~neuralnet.core.layers.DenseLayer` may use.

    ``derivative`` takes both the pre-activation ``z`` and the output ``y``
    because each function reads a different one: sigmoid and tanh use the
    cached output, relu uses the sign of the input.
    """

    IDENTITY = "identity"
    SIGMOID = "sigmoid"
    RELU = "relu"
    TANH = "tanh"
    SOFTMAX = "softmax"

    def apply(self, z: Matrix) -> Matrix:
        if self is Activation.IDENTITY:
            return z.apply(identity)
        if self is Activation.SIGMOID:
            return z.apply(sigmoid)
        if self is Activation.RELU:
            return z.apply(relu)
        if self is Activation.TANH:
            return z.apply(tanh)
        if self is Activation.SOFTMAX:
            return z.apply(softmax)
        raise InvalidConfiguration(f"Unhandled activation: {self!r}")  # pragma: no cover

    def derivative(self, z: Matrix, y: Matrix) -> Matrix:
        """Element-wise ``dy/dz`` evaluated at the cached forward values."""

        if self is Activation.IDENTITY:
            return Matrix.ones(*z.shape)
        if self is Activation.SIGMOID:
            return y * (1.0 - y)
        if self is Activation.RELU:
            return z.apply(lambda values: (values > 0).astype(np.float64))
        if self is Activation.TANH:
            return 1.0 - y * y
        if self is Activation.SOFTMAX:
            raise InvalidConfiguration(
                "softmax has no element-wise derivative; use Activation.backward"
            )
        raise InvalidConfiguration(f"Unhandled activation: {self!r}")  # pragma: no cover

    def backward(self, grad_output: Matrix, z: Matrix, y: Matrix) -> Matrix:
        """Map ``dL/dy`` to ``dL/dz``."""

        if self is Activation.SOFTMAX:
            # Jacobian-vector product of the row-wise softmax.
            weighted = (grad_output * y).sum(axis=1)
            return y * grad_output.apply(lambda g: g - weighted.array)
        return grad_output * self.derivative(z, y)

    @property
    def elementwise(self) -> bool:
        return self is not Activation.SOFTMAX


_ALIASES = {
    "identity": Activation.IDENTITY,
    "linear": Activation.IDENTITY,
    "none": Activation.IDENTITY,
    "sigmoid": Activation.SIGMOID,
    "logistic": Activation.SIGMOID,
    "relu": Activation.RELU,
    "tanh": Activation.TANH,
    "softmax": Activation.SOFTMAX,
}


def get_activation(name: str | Activation) -> Activation:
    """Resolve ``name`` (case-insensitive) to an :class:`Activation`."""

    if isinstance(name, Activation):
        return name
    key = str(name).strip().lower()
    try:
        return _ALIASES[key]
    except KeyError:
        available = ", ".join(sorted(_ALIASES))
        raise InvalidConfiguration(
            f"Unknown activation {name!r}. Available activations: {available}"
        ) from None


__all__ = [
    "Activation",
    "get_activation",
    "identity",
    "relu",
    "sigmoid",
    "softmax",
    "tanh",
]
