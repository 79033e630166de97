"""neuralnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import Activation, get_activation
from .core.errors import (
    DimensionMismatch,
    InvalidConfiguration,
    InvalidInput,
    MissingForwardPass,
    NeuralNetError,
    ShapeMismatch,
)
from .core.layers import DenseLayer, Layer
from .core.matrix import Matrix
from .core.network import Network
from .core.serialization import load_network, save_network
from .training.losses import get_loss
from .training.metrics import Evaluator
from .training.optimizers import SGD, Adam, Momentum, build_optimizer
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, TrainerConfig

__all__ = [
    "Activation",
    "Adam",
    "DenseLayer",
    "DimensionMismatch",
    "Evaluator",
    "InvalidConfiguration",
    "InvalidInput",
    "Layer",
    "Matrix",
    "MissingForwardPass",
    "Momentum",
    "Network",
    "NeuralNetError",
    "SGD",
    "ShapeMismatch",
    "Trainer",
    "TrainerConfig",
    "activations",
    "build_optimizer",
    "get_activation",
    "get_loss",
    "load_network",
    "load_preset",
    "presets",
    "run_pipeline",
    "save_network",
    "types",
]
