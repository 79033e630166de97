from __future__ import annotations

import logging
from typing import Mapping

import numpy as np
import pytest

from neuralnet.core.errors import InvalidConfiguration, InvalidInput
from neuralnet.core.network import Network
from neuralnet.data.synthetic import XOR_INPUTS, XOR_TARGETS
from neuralnet.training.optimizers import SGD, Adam
from neuralnet.training.trainer import Trainer, TrainerConfig


class _Capture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((epoch, dict(metrics)))


def _xor_run(seed: int, epochs: int = 5000):
    network = Network.from_dims([2, 4, 1], "sigmoid", seed=seed)
    trainer = Trainer(
        loss="mse",
        optimizer=SGD(learning_rate=0.5),
        config=TrainerConfig(epochs=epochs, batch_size=1, shuffle=True, seed=seed),
    )
    return network, trainer.run(network, XOR_INPUTS, XOR_TARGETS)


def test_xor_converges_with_sgd():
    final = None
    for seed in (0, 1, 2):
        network, history = _xor_run(seed)
        final = history.last.train_loss
        if final < 0.05:
            break
    assert final < 0.05
    predictions = network.predict(XOR_INPUTS).to_numpy()
    np.testing.assert_array_equal((predictions >= 0.5).astype(float), XOR_TARGETS)


def test_loss_decreases_on_blobs_with_softmax_and_adam():
    rng = np.random.default_rng(0)
    labels = rng.integers(0, 3, size=90)
    centers = np.array([[-2.0, 0.0], [2.0, 0.0], [0.0, 2.5]])
    x = centers[labels] + 0.3 * rng.standard_normal((90, 2))
    y = np.eye(3)[labels]
    network = Network.from_dims([2, 8, 3], ["tanh", "softmax"], seed=0)
    trainer = Trainer(
        loss="ce",
        optimizer=Adam(learning_rate=0.05),
        config=TrainerConfig(epochs=30, batch_size=16, seed=0, metrics=("accuracy",)),
    )
    history = trainer.run(network, x, y)
    assert history.train_loss[-1] < history.train_loss[0]
    assert history.last.metrics["accuracy"] > 0.9


def test_same_seed_reproduces_history_and_weights():
    first_net, first = _xor_run(seed=4, epochs=20)
    second_net, second = _xor_run(seed=4, epochs=20)
    assert first.train_loss == second.train_loss
    for key, value in first_net.state_dict().items():
        np.testing.assert_array_equal(value, second_net.state_dict()[key])


def test_partial_final_batch_is_used():
    network = Network.from_dims([2, 3, 1], seed=0)
    optimizer = SGD(learning_rate=0.1)
    trainer = Trainer("mse", optimizer, TrainerConfig(epochs=1, batch_size=2, shuffle=False))
    trainer.run(network, np.zeros((5, 2)), np.zeros((5, 1)))
    assert optimizer.step_count == 3


def test_validation_records_and_callbacks():
    capture = _Capture()
    network = Network.from_dims([2, 4, 1], seed=0)
    trainer = Trainer(
        "bce",
        {"name": "adam", "learning_rate": 0.05},
        TrainerConfig(epochs=3, batch_size=4, metrics=("accuracy",)),
        callbacks=[capture],
    )
    history = trainer.run(network, XOR_INPUTS, XOR_TARGETS, XOR_INPUTS, XOR_TARGETS)
    assert [record.epoch for record in history] == [1, 2, 3]
    assert all(record.validation_loss is not None for record in history)
    epoch, metrics = capture.history[-1]
    assert epoch == 3
    assert {"loss", "val_loss", "accuracy", "val_accuracy"} <= set(metrics)


def test_stop_condition_ends_training():
    network = Network.from_dims([2, 2, 1], seed=0)
    trainer = Trainer(
        "mse",
        "sgd",
        TrainerConfig(epochs=50, batch_size=4),
        stop_condition=lambda record: record.epoch == 3,
    )
    history = trainer.run(network, XOR_INPUTS, XOR_TARGETS)
    assert len(history) == 3
    assert history.stopped_early


def test_early_stopping_uses_patience():
    network = Network.from_dims([2, 2, 1], seed=0)
    trainer = Trainer(
        "mse",
        "sgd",
        TrainerConfig(epochs=50, batch_size=4, early_stopping_patience=2, min_delta=1e9),
    )
    history = trainer.run(network, XOR_INPUTS, XOR_TARGETS)
    assert len(history) == 3
    assert history.best_epoch == 1
    assert history.stopped_early


def test_non_finite_loss_is_reported_not_raised(caplog):
    inputs = XOR_INPUTS.copy()
    inputs[0, 0] = np.nan
    network = Network.from_dims([2, 2, 1], seed=0)
    trainer = Trainer("mse", "sgd", TrainerConfig(epochs=2, batch_size=4))
    with caplog.at_level(logging.WARNING, logger="neuralnet.training.trainer"):
        history = trainer.run(network, inputs, XOR_TARGETS)
    assert len(history) == 2
    assert all(np.isnan(loss) for loss in history.train_loss)
    assert "non-finite" in caplog.text


def test_invalid_inputs_and_configuration():
    network = Network.from_dims([2, 2, 1], seed=0)
    trainer = Trainer("mse", "sgd", TrainerConfig(epochs=1))
    with pytest.raises(InvalidInput):
        trainer.run(network, XOR_INPUTS, XOR_TARGETS[:3])
    with pytest.raises(InvalidInput):
        trainer.run(network, XOR_INPUTS, XOR_TARGETS, validation_inputs=XOR_INPUTS)
    with pytest.raises(InvalidConfiguration):
        TrainerConfig(batch_size=0)


def test_evaluate_does_not_touch_parameters():
    network = Network.from_dims([2, 3, 1], seed=0)
    before = network.state_dict()
    trainer = Trainer("mse", "sgd", TrainerConfig(metrics=("accuracy",)))
    loss, metrics = trainer.evaluate(network, XOR_INPUTS, XOR_TARGETS)
    assert loss > 0
    assert 0.0 <= metrics["accuracy"] <= 1.0
    for key, value in network.state_dict().items():
        np.testing.assert_array_equal(value, before[key])
