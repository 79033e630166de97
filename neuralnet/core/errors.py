"""Error taxonomy for the neuralnet core."""

from __future__ import annotations


class NeuralNetError(Exception):
    """Base class for all errors raised by :mod:`neuralnet`."""


class ShapeMismatch(NeuralNetError, ValueError):
    """Raised when two matrices have incompatible dimensions for an operation."""


class DimensionMismatch(NeuralNetError, ValueError):
    """Raised when consecutive layers of a network do not chain."""


class InvalidConfiguration(NeuralNetError, ValueError):
    """Raised for unknown activation/loss/optimizer names or invalid hyperparameters."""


class InvalidInput(NeuralNetError, ValueError):
    """Raised when predictions, targets or inputs disagree on sample count."""


class MissingForwardPass(NeuralNetError, RuntimeError):
    """Raised when ``backward`` is called on a layer without a cached forward pass."""


__all__ = [
    "NeuralNetError",
    "ShapeMismatch",
    "DimensionMismatch",
    "InvalidConfiguration",
    "InvalidInput",
    "MissingForwardPass",
]
