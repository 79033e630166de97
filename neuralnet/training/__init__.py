"""Losses, optimizers, metrics and the training loop."""

from .losses import BINARY_CROSS_ENTROPY, CROSS_ENTROPY, MSE, Loss, LossKind, get_loss
from .metrics import Evaluator, accuracy, classification_report, confusion_matrix
from .optimizers import SGD, Adam, Momentum, Optimizer, OptimizerConfig, build_optimizer
from .trainer import Trainer, TrainerConfig

__all__ = [
    "Adam",
    "BINARY_CROSS_ENTROPY",
    "CROSS_ENTROPY",
    "Evaluator",
    "Loss",
    "LossKind",
    "MSE",
    "Momentum",
    "Optimizer",
    "OptimizerConfig",
    "SGD",
    "Trainer",
    "TrainerConfig",
    "accuracy",
    "build_optimizer",
    "classification_report",
    "confusion_matrix",
    "get_loss",
]
