"""Gradient-based optimizers that update layer parameters in place."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..core.errors import InvalidConfiguration
from ..core.matrix import Matrix
from ..core.network import LayerParameters, Network
from ..core.types import ParameterKey


class OptimizerKind(Enum):
    SGD = "sgd"
    MOMENTUM = "momentum"
    ADAM = "adam"


@dataclass(frozen=True)
class OptimizerConfig:
    """Recognised optimizer options; unused ones are ignored by the variant.

    ``momentum`` left as ``None`` means plain SGD for ``sgd`` and 0.9 for
    ``momentum``; an explicit value is always used as given.
    """

    name: str = "sgd"
    learning_rate: float = 0.01
    momentum: Optional[float] = None
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8

    @classmethod
    def from_mapping(cls, config: Mapping[str, object]) -> "OptimizerConfig":
        options = dict(config)
        if "lr" in options:
            options["learning_rate"] = options.pop("lr")
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidConfiguration(f"Unknown optimizer options: {', '.join(unknown)}")
        kwargs = {
            key: float(value)
            for key, value in options.items()
            if key != "name" and value is not None
        }
        if "name" in options:
            kwargs["name"] = str(options["name"]).lower()
        return cls(**kwargs)  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _iter_parameters(
    parameters: Network | Iterable[LayerParameters],
) -> Iterator[Tuple[ParameterKey, Matrix, Matrix | None]]:
    if isinstance(parameters, Network):
        parameters = parameters.expose_parameters()
    for idx, entry in enumerate(parameters):
        yield (idx, "weight"), entry.weight, entry.grad_weight
        yield (idx, "bias"), entry.bias, entry.grad_bias


@dataclass
class Optimizer:
    """Base class holding per-parameter state keyed by ``(layer_index, field)``.

    State is created lazily on the first step that sees a parameter and lives
    until :meth:`reset`. ``step`` is not safe for concurrent calls on shared
    parameters.
    """

    learning_rate: float
    state: Dict[ParameterKey, Dict[str, Matrix]] = field(default_factory=dict, init=False)
    step_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if not self.learning_rate > 0:
            raise InvalidConfiguration(
                f"learning_rate must be positive, got {self.learning_rate}"
            )

    def step(self, parameters: Network | Iterable[LayerParameters]) -> None:
        """Apply one update to every parameter that has a gradient."""

        self.step_count += 1
        for key, param, grad in _iter_parameters(parameters):
            if grad is None:
                continue
            self._update(key, param, grad)

    def reset(self) -> None:
        self.state.clear()
        self.step_count = 0

    def _slot(self, key: ParameterKey, name: str, like: Matrix) -> Matrix:
        slots = self.state.setdefault(key, {})
        if name not in slots:
            slots[name] = Matrix.zeros(*like.shape)
        return slots[name]

    def _update(self, key: ParameterKey, param: Matrix, grad: Matrix) -> None:
        raise NotImplementedError


@dataclass
class SGD(Optimizer):
    def _update(self, key: ParameterKey, param: Matrix, grad: Matrix) -> None:
        param -= self.learning_rate * grad


@dataclass
class Momentum(Optimizer):
    momentum: float = 0.9

    def __post_init__(self) -> None:
        super().__post_init__()
        if not 0.0 <= self.momentum < 1.0:
            raise InvalidConfiguration(f"momentum must be in [0, 1), got {self.momentum}")

    def _update(self, key: ParameterKey, param: Matrix, grad: Matrix) -> None:
        velocity = self._slot(key, "velocity", param)
        velocity.assign(self.momentum * velocity - self.learning_rate * grad)
        param += velocity


@dataclass
class Adam(Optimizer):
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8

    def __post_init__(self) -> None:
        super().__post_init__()
        for name in ("beta1", "beta2"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise InvalidConfiguration(f"{name} must be in [0, 1), got {value}")
        if not self.epsilon > 0:
            raise InvalidConfiguration(f"epsilon must be positive, got {self.epsilon}")

    def _update(self, key: ParameterKey, param: Matrix, grad: Matrix) -> None:
        m = self._slot(key, "m", param)
        v = self._slot(key, "v", param)
        m.assign(self.beta1 * m + (1.0 - self.beta1) * grad)
        v.assign(self.beta2 * v + (1.0 - self.beta2) * (grad * grad))
        # the step count is shared by every parameter updated in this call
        m_hat = m / (1.0 - self.beta1**self.step_count)
        v_hat = v / (1.0 - self.beta2**self.step_count)
        param -= self.learning_rate * (m_hat / (v_hat ** 0.5 + self.epsilon))


def build_optimizer(config: OptimizerConfig | Mapping[str, object] | str) -> Optimizer:
    if isinstance(config, str):
        config = OptimizerConfig(name=config)
    elif not isinstance(config, OptimizerConfig):
        config = OptimizerConfig.from_mapping(config)
    try:
        kind = OptimizerKind(config.name.lower())
    except ValueError:
        available = ", ".join(k.value for k in OptimizerKind)
        raise InvalidConfiguration(
            f"Unknown optimizer {config.name!r}. Available optimizers: {available}"
        ) from None

    if kind is OptimizerKind.SGD:
        momentum = config.momentum or 0.0
        if momentum > 0:
            return Momentum(learning_rate=config.learning_rate, momentum=momentum)
        if momentum < 0:
            raise InvalidConfiguration(f"momentum must be in [0, 1), got {momentum}")
        return SGD(learning_rate=config.learning_rate)
    if kind is OptimizerKind.MOMENTUM:
        momentum = 0.9 if config.momentum is None else config.momentum
        return Momentum(learning_rate=config.learning_rate, momentum=momentum)
    if kind is OptimizerKind.ADAM:
        return Adam(
            learning_rate=config.learning_rate,
            beta1=config.beta1,
            beta2=config.beta2,
            epsilon=config.epsilon,
        )
    raise InvalidConfiguration(f"Unhandled optimizer: {kind!r}")  # pragma: no cover


__all__ = [
    "Adam",
    "Momentum",
    "Optimizer",
    "OptimizerConfig",
    "OptimizerKind",
    "SGD",
    "build_optimizer",
]
