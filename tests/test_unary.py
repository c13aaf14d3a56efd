import numpy as np
import pytest

from gradlite.tensor import Tensor
from gradlite.unary import (
    AbsFunction,
    CosFunction,
    ExpFunction,
    LogFunction,
    SinFunction,
    TanFunction,
)

ALL = [ExpFunction, LogFunction, SinFunction, CosFunction, TanFunction, AbsFunction]
POSITIVE = [0.3, 0.7, 1.1, 1.4]


def _numeric_grad(cls, values, h=1e-2):
    x = np.array(values, dtype=np.float64)
    plus = cls().apply([Tensor(x + h, x.shape)]).data.astype(np.float64)
    minus = cls().apply([Tensor(x - h, x.shape)]).data.astype(np.float64)
    return (plus - minus) / (2 * h)


def _analytic_grad(cls, values):
    x = Tensor(values, (len(values),), requires_grad=True)
    fn = cls()
    out = fn.apply([x])
    (grad,) = fn.backward(Tensor(np.ones(out.shape), out.shape))
    return grad.data


@pytest.mark.parametrize("cls", [ExpFunction, LogFunction, SinFunction, CosFunction, TanFunction])
def test_gradient_matches_finite_difference(cls):
    assert np.allclose(_analytic_grad(cls, POSITIVE), _numeric_grad(cls, POSITIVE), atol=1e-3)


def test_exp_of_zero_is_one():
    out = ExpFunction().apply([Tensor([0.0, 0.0], (2,))])
    assert out.data.tolist() == [1.0, 1.0]


def test_log_inverts_exp():
    x = Tensor([-1.0, 0.0, 2.5], (3,))
    back = LogFunction().apply([ExpFunction().apply([x])])
    assert np.allclose(back.data, x.data, atol=1e-6)


@pytest.mark.parametrize("value", [0.0, -1.0])
def test_log_rejects_non_positive(value):
    with pytest.raises(ValueError, match="must be positive"):
        LogFunction().apply([Tensor([1.0, value], (2,))])


def test_sin_cos_pythagorean_identity():
    x = Tensor([0.1, 1.0, -2.0, 3.0], (2, 2))
    s = SinFunction().apply([x]).data
    c = CosFunction().apply([x]).data
    assert s.shape == (2, 2)
    assert np.allclose(s * s + c * c, 1.0, atol=1e-6)


def test_tan_is_sin_over_cos():
    x = Tensor([0.2, -0.5, 1.0], (3,))
    t = TanFunction().apply([x]).data
    s = SinFunction().apply([x]).data
    c = CosFunction().apply([x]).data
    assert np.allclose(t, s / c, atol=1e-6)


def test_exp_gradient_equals_output():
    x = Tensor([0.5, -1.0], (2,), requires_grad=True)
    fn = ExpFunction()
    out = fn.apply([x])
    (grad,) = fn.backward(Tensor([1.0, 1.0], (2,)))
    assert np.array_equal(grad.data, out.data)


def test_abs_values_and_gradient():
    x = Tensor([-2.0, 0.0, 3.0], (3,), requires_grad=True)
    fn = AbsFunction()
    out = fn.apply([x])
    assert out.data.tolist() == [2.0, 0.0, 3.0]
    (grad,) = fn.backward(Tensor([5.0, 5.0, 5.0], (3,)))
    assert grad.data.tolist() == [-5.0, 0.0, 5.0]


@pytest.mark.parametrize("cls", ALL)
def test_requires_exactly_one_input(cls):
    x = Tensor([1.0], (1,))
    with pytest.raises(ValueError, match="requires exactly one input"):
        cls().apply([x, x])


@pytest.mark.parametrize("cls", ALL)
def test_graph_recorded_only_when_needed(cls):
    plain = cls()
    out = plain.apply([Tensor([0.5], (1,))])
    assert out.grad_fn is None and out.is_leaf
    assert plain.backward(Tensor([1.0], (1,))) == [None]

    tracked = cls()
    x = Tensor([0.5], (1,), requires_grad=True)
    out = tracked.apply([x])
    assert out.grad_fn is tracked
    assert out.children == [x]
    assert out.is_leaf is False