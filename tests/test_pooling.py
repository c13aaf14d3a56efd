import numpy as np
import pytest

from gradlite.pooling import AvgPool2dFunction, MaxPool2dFunction
from gradlite.tensor import Tensor


def _arange(shape, requires_grad=False):
    data = np.arange(np.prod(shape), dtype=np.float32).reshape(shape)
    return Tensor(data, shape, requires_grad)


@pytest.mark.parametrize("cls", [AvgPool2dFunction, MaxPool2dFunction])
@pytest.mark.parametrize("args", [(0, 1, 0), (2, 0, 0), (2, 2, -1)])
def test_invalid_parameters(cls, args):
    with pytest.raises(ValueError, match="Invalid pooling parameters"):
        cls(*args)


@pytest.mark.parametrize("cls", [AvgPool2dFunction, MaxPool2dFunction])
def test_rejects_non_4d_input(cls):
    with pytest.raises(ValueError, match="4D"):
        cls(2, 2, 0).apply([Tensor(np.zeros((4, 4)), (4, 4))])


@pytest.mark.parametrize("cls", [AvgPool2dFunction, MaxPool2dFunction])
def test_output_shape(cls):
    x = _arange((2, 3, 6, 5))
    out = cls(2, 2, 0).apply([x])
    assert out.shape == (2, 3, 3, 2)


@pytest.mark.parametrize("cls", [AvgPool2dFunction, MaxPool2dFunction])
def test_padding_keeps_spatial_size(cls):
    x = _arange((1, 2, 5, 5))
    out = cls(3, 1, 1).apply([x])
    assert out.shape == (1, 2, 5, 5)


def test_avg_pool_of_constant_is_constant_even_with_padding():
    x = Tensor(np.full((1, 1, 4, 4), 3.0), (1, 1, 4, 4))
    out = AvgPool2dFunction(3, 1, 1).apply([x]).data
    np.testing.assert_allclose(out, np.full((1, 1, 4, 4), 3.0))


def test_avg_pool_matches_window_means():
    x = _arange((1, 2, 4, 4))
    out = AvgPool2dFunction(2, 2, 0).apply([x]).data
    blocks = x.data.reshape(1, 2, 2, 2, 2, 2).mean(axis=(3, 5))
    np.testing.assert_allclose(out, blocks)


def test_avg_pool_corner_with_padding_averages_real_cells_only():
    x = _arange((1, 1, 3, 3))
    out = AvgPool2dFunction(2, 2, 1).apply([x]).data
    assert out[0, 0, 0, 0] == pytest.approx(x.data[0, 0, 0, 0])


def test_avg_pool_backward_spreads_gradient_evenly():
    x = _arange((1, 1, 4, 4), requires_grad=True)
    fn = AvgPool2dFunction(2, 2, 0)
    out = fn.apply([x])
    (grad,) = fn.backward(Tensor(np.ones(out.shape), out.shape))
    assert grad.shape == (1, 1, 4, 4)
    np.testing.assert_allclose(grad.data, np.full((1, 1, 4, 4), 0.25))


def test_avg_pool_backward_preserves_total_gradient():
    x = _arange((2, 2, 6, 6), requires_grad=True)
    fn = AvgPool2dFunction(3, 3, 0)
    out = fn.apply([x])
    upstream = np.random.default_rng(0).standard_normal(out.shape)
    (grad,) = fn.backward(Tensor(upstream, out.shape))
    assert grad.data.sum() == pytest.approx(upstream.sum(), rel=1e-5, abs=1e-5)


def test_avg_pool_links_graph():
    x = _arange((1, 1, 2, 2), requires_grad=True)
    fn = AvgPool2dFunction(2, 2, 0)
    out = fn.apply([x])
    assert out.grad_fn is fn
    assert out.requires_grad is True


def test_max_pool_picks_window_maxima():
    x = _arange((1, 2, 4, 4))
    out = MaxPool2dFunction(2, 2, 0).apply([x]).data
    np.testing.assert_array_equal(out, x.data[:, :, 1::2, 1::2])


def test_max_pool_padding_does_not_introduce_zero():
    x = Tensor(np.full((1, 1, 3, 3), -5.0), (1, 1, 3, 3))
    out = MaxPool2dFunction(3, 1, 1).apply([x]).data
    np.testing.assert_array_equal(out, np.full((1, 1, 3, 3), -5.0))


def test_max_pool_backward_routes_to_maxima():
    x = _arange((1, 1, 4, 4), requires_grad=True)
    fn = MaxPool2dFunction(2, 2, 0)
    out = fn.apply([x])
    upstream = np.array([[[[1.0, 2.0], [3.0, 4.0]]]])
    (grad,) = fn.backward(Tensor(upstream, out.shape))
    expected = np.zeros((1, 1, 4, 4))
    expected[:, :, 1::2, 1::2] = upstream
    np.testing.assert_array_equal(grad.data, expected)


def test_max_pool_backward_accumulates_overlapping_windows():
    data = np.zeros((1, 1, 3, 3), dtype=np.float32)
    data[0, 0, 1, 1] = 9.0
    x = Tensor(data, data.shape, requires_grad=True)
    fn = MaxPool2dFunction(2, 1, 0)
    out = fn.apply([x])
    np.testing.assert_array_equal(out.data, np.full((1, 1, 2, 2), 9.0))
    (grad,) = fn.backward(Tensor(np.ones(out.shape), out.shape))
    assert grad.data[0, 0, 1, 1] == pytest.approx(out.size)
    assert grad.data.sum() == pytest.approx(out.size)


def test_max_pool_ties_go_to_first_element():
    x = Tensor(np.ones((1, 1, 2, 2)), (1, 1, 2, 2), requires_grad=True)
    fn = MaxPool2dFunction(2, 2, 0)
    out = fn.apply([x])
    (grad,) = fn.backward(Tensor(np.ones(out.shape), out.shape))
    flat = grad.data.reshape(-1)
    assert flat[0] == pytest.approx(1.0)
    assert flat[1:].sum() == pytest.approx(0.0)


def test_backward_without_grad_returns_none():
    x = _arange((1, 1, 2, 2))
    fn = MaxPool2dFunction(2, 2, 0)
    out = fn.apply([x])
    assert fn.backward(Tensor(np.ones(out.shape), out.shape)) == [None]