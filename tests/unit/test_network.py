import numpy as np
import pytest

from neuralnet.core.errors import DimensionMismatch, InvalidConfiguration
from neuralnet.core.layers import DenseLayer
from neuralnet.core.matrix import Matrix
from neuralnet.core.network import Network
from neuralnet.training.losses import MSE

H = 1e-6


def test_adjacent_layer_dimensions_must_chain():
    with pytest.raises(DimensionMismatch):
        Network([DenseLayer(3, 5), DenseLayer(4, 2)])
    with pytest.raises(InvalidConfiguration):
        Network([])


def test_from_dims_builds_layers_and_describes_them():
    net = Network.from_dims([2, 4, 3], ["relu", "softmax"], seed=7)
    assert len(net) == 2
    assert net.input_dim == 2
    assert net.output_dim == 3
    description = net.describe()
    assert description.layer_dims == [2, 4, 3]
    assert description.activations == ["relu", "softmax"]
    assert net.parameter_count() == 2 * 4 + 4 + 4 * 3 + 3
    with pytest.raises(InvalidConfiguration):
        Network.from_dims([2, 4, 3], ["relu"])


def test_same_seed_gives_same_initial_parameters():
    a = Network.from_dims([2, 3, 1], seed=11).state_dict()
    b = Network.from_dims([2, 3, 1], seed=11).state_dict()
    for key in a:
        np.testing.assert_array_equal(a[key], b[key])


def test_predict_leaves_caches_empty():
    net = Network.from_dims([2, 3, 1])
    net.predict(Matrix.zeros(4, 2))
    assert all(layer.cache is None for layer in net)
    net.forward(Matrix.zeros(4, 2))
    assert all(layer.cache is not None for layer in net)


def test_backward_gradients_match_finite_difference():
    rng = np.random.default_rng(5)
    net = Network.from_dims([3, 4, 2], ["tanh", "sigmoid"], seed=2)
    x = Matrix(rng.standard_normal((5, 3)))
    y = Matrix(rng.uniform(size=(5, 2)))

    predictions = net.forward(x)
    net.backward(MSE.gradient(predictions, y))
    analytic = net[0].grad_weight.to_numpy()

    weight = net[0].get_parameters()["weight"]
    numeric = np.zeros_like(weight)
    for idx in np.ndindex(*weight.shape):
        plus = weight.copy()
        plus[idx] += H
        net[0].set_parameters(weight=plus)
        loss_plus = MSE.compute(net.predict(x), y)
        minus = weight.copy()
        minus[idx] -= H
        net[0].set_parameters(weight=minus)
        loss_minus = MSE.compute(net.predict(x), y)
        numeric[idx] = (loss_plus - loss_minus) / (2 * H)
    net[0].set_parameters(weight=weight)

    np.testing.assert_allclose(analytic, numeric, atol=1e-4)


def test_expose_parameters_returns_live_references():
    net = Network.from_dims([2, 2, 1])
    params = net.expose_parameters()
    assert len(params) == 2
    assert params[0].weight is net[0].weight
    assert params[0].grad_weight is None
    net.forward(Matrix.ones(1, 2))
    net.backward(Matrix.ones(1, 1))
    assert net.expose_parameters()[1].grad_bias is not None
    net.zero_grad()
    assert net.expose_parameters()[1].grad_bias is None


def test_state_dict_round_trip():
    source = Network.from_dims([2, 3, 1], seed=1)
    target = Network.from_dims([2, 3, 1], seed=2)
    target.load_state_dict(source.state_dict())
    x = Matrix([[0.2, -0.4]])
    assert target.predict(x).allclose(source.predict(x))
    with pytest.raises(KeyError):
        target.load_state_dict({})
