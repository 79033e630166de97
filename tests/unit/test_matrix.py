import numpy as np
import pytest

from neuralnet.core.errors import ShapeMismatch
from neuralnet.core.matrix import Matrix, as_matrix


def _random(rows, cols, seed=0):
    return Matrix(np.random.default_rng(seed).standard_normal((rows, cols)))


def test_construction_requires_two_dimensions():
    with pytest.raises(ShapeMismatch):
        Matrix([1.0, 2.0, 3.0])
    m = Matrix([[1, 2], [3, 4]])
    assert m.shape == (2, 2)
    assert m.to_numpy().dtype == np.float64


def test_factories_have_requested_shapes():
    assert Matrix.zeros(2, 3).shape == (2, 3)
    assert Matrix.ones(3, 1).sum() == 3.0
    assert Matrix.full(2, 2, 0.5).mean() == pytest.approx(0.5)
    assert Matrix.row([1, 2, 3]).shape == (1, 3)
    assert Matrix.column([1, 2, 3]).shape == (3, 1)
    rng = np.random.default_rng(0)
    uniform = Matrix.random_uniform(10, 10, 0.25, rng)
    assert np.all(np.abs(uniform.to_numpy()) <= 0.25)


def test_transpose_is_an_involution():
    a = _random(3, 5)
    assert a.T.T.allclose(a)
    assert a.T.shape == (5, 3)


def test_matmul_with_identity_and_transpose_rule():
    a = _random(3, 4, seed=1)
    b = _random(4, 2, seed=2)
    identity = Matrix(np.eye(4))
    assert (a @ identity).allclose(a)
    assert (a @ b).T.allclose(b.T @ a.T)


def test_add_then_subtract_restores_operand():
    a = _random(3, 4, seed=3)
    b = _random(3, 4, seed=4)
    assert ((a + b) - b).allclose(a)


def test_matmul_is_associative():
    x = _random(2, 3, seed=5)
    y = _random(3, 4, seed=6)
    z = _random(4, 5, seed=7)
    assert ((x @ y) @ z).allclose(x @ (y @ z))


def test_matmul_inner_dimension_mismatch():
    with pytest.raises(ShapeMismatch):
        _random(2, 3) @ _random(2, 3)


def test_elementwise_ops_require_matching_shapes():
    a = Matrix([[1.0, 2.0]])
    b = Matrix([[3.0, 5.0]])
    assert (a + b).allclose([[4.0, 7.0]])
    assert (b - a).allclose([[2.0, 3.0]])
    assert (a * b).allclose([[3.0, 10.0]])
    assert (b / a).allclose([[3.0, 2.5]])
    with pytest.raises(ShapeMismatch):
        a + Matrix([[1.0], [2.0]])


def test_scalar_arithmetic_on_both_sides():
    a = Matrix([[1.0, -2.0]])
    assert (2 * a).allclose([[2.0, -4.0]])
    assert (a * 2.0).allclose([[2.0, -4.0]])
    assert (1.0 - a).allclose([[0.0, 3.0]])
    assert (-a).allclose([[-1.0, 2.0]])
    assert (a ** 2).allclose([[1.0, 4.0]])
    assert (np.float64(3.0) * a).allclose([[3.0, -6.0]])


def test_operators_do_not_mutate_operands():
    a = Matrix([[1.0, 2.0]])
    before = a.to_numpy()
    _ = a + 1.0
    _ = a * a
    np.testing.assert_array_equal(a.to_numpy(), before)


def test_inplace_updates_and_assign():
    a = Matrix([[1.0, 2.0]])
    alias = a
    a -= Matrix([[0.5, 0.5]])
    assert alias is a
    assert a.allclose([[0.5, 1.5]])
    a.assign([[9.0, 9.0]])
    assert alias.allclose([[9.0, 9.0]])
    with pytest.raises(ShapeMismatch):
        a.assign([[1.0, 2.0, 3.0]])


def test_add_row_broadcasts_bias():
    a = Matrix.zeros(3, 2)
    out = a.add_row(Matrix.row([1.0, 2.0]))
    assert out.allclose([[1.0, 2.0]] * 3)
    with pytest.raises(ShapeMismatch):
        a.add_row(Matrix.row([1.0, 2.0, 3.0]))


def test_reductions_keep_two_dimensions():
    a = Matrix([[1.0, 2.0], [3.0, 4.0]])
    assert a.sum() == 10.0
    assert a.sum(axis=0).allclose([[4.0, 6.0]])
    assert a.mean(axis=1).allclose([[1.5], [3.5]])


def test_apply_must_preserve_shape():
    a = Matrix([[1.0, 4.0]])
    assert a.apply(np.sqrt).allclose([[1.0, 2.0]])
    with pytest.raises(ShapeMismatch):
        a.apply(lambda values: values.ravel())


def test_array_view_is_read_only_and_rows_can_be_taken():
    a = Matrix([[1.0], [2.0], [3.0]])
    with pytest.raises(ValueError):
        a.array[0, 0] = 5.0
    assert a.take_rows([2, 0]).allclose([[3.0], [1.0]])
    assert Matrix.vstack([a, a]).rows == 6
    assert as_matrix(a) is a
    assert not Matrix([[np.nan]]).is_finite()
