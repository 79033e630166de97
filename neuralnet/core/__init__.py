"""Core numerical primitives for neuralnet."""

from . import activations, errors, layers, matrix, network, serialization, types

__all__ = ["activations", "errors", "layers", "matrix", "network", "serialization", "types"]
