import numpy as np
import pytest

from gradlite.shape import ContiguousFunction, ReshapeFunction, TransposeFunction
from gradlite.tensor import Tensor


def _arange(shape, requires_grad=True):
    size = int(np.prod(shape))
    return Tensor(np.arange(size, dtype=np.float32), shape, requires_grad)


def test_reshape_keeps_row_major_order():
    x = _arange((2, 3))
    out = ReshapeFunction((3, 2)).apply([x])
    assert out.shape == (3, 2)
    assert out.data.reshape(-1).tolist() == x.data.reshape(-1).tolist()


def test_reshape_round_trip():
    x = _arange((2, 3, 4))
    flat = ReshapeFunction([24]).apply([x])
    back = ReshapeFunction((2, 3, 4)).apply([flat])
    np.testing.assert_array_equal(back.data, x.data)


def test_reshape_size_mismatch():
    with pytest.raises(ValueError, match="does not match"):
        ReshapeFunction((5,)).apply([_arange((2, 3))])


def test_reshape_wrong_input_count():
    with pytest.raises(ValueError, match="exactly one input"):
        ReshapeFunction((6,)).apply([_arange((6,)), _arange((6,))])


def test_reshape_graph_links():
    x = _arange((4,))
    fn = ReshapeFunction((2, 2))
    out = fn.apply([x])
    assert out.grad_fn is fn
    assert out.children == [x]
    assert out.is_leaf is False


def test_reshape_backward_restores_input_shape():
    x = _arange((2, 3))
    fn = ReshapeFunction((6,))
    fn.apply([x])
    grad = _arange((6,), requires_grad=False)
    (grad_x,) = fn.backward(grad)
    assert grad_x.shape == (2, 3)
    assert grad_x.data.reshape(-1).tolist() == grad.data.tolist()


def test_reshape_backward_none_without_grad():
    x = _arange((2, 2), requires_grad=False)
    fn = ReshapeFunction((4,))
    out = fn.apply([x])
    assert out.requires_grad is False
    assert fn.backward(_arange((4,), requires_grad=False)) == [None]


def test_transpose_matrix():
    x = _arange((2, 3))
    out = TransposeFunction(0, 1).apply([x])
    assert out.shape == (3, 2)
    np.testing.assert_array_equal(out.data, x.data.T)


def test_transpose_twice_is_identity():
    x = _arange((2, 3, 4))
    once = TransposeFunction(0, 2).apply([x])
    twice = TransposeFunction(0, 2).apply([once])
    np.testing.assert_array_equal(twice.data, x.data)


def test_transpose_negative_dims_normalized():
    x = _arange((2, 3, 4))
    fn = TransposeFunction(-1, -2)
    out = fn.apply([x])
    assert (fn.dim0, fn.dim1) == (2, 1)
    assert out.shape == (2, 4, 3)


def test_transpose_invalid_dim():
    with pytest.raises(ValueError, match="Invalid dimensions"):
        TransposeFunction(0, 3).apply([_arange((2, 3))])


def test_transpose_backward_swaps_back():
    x = _arange((2, 3, 4))
    fn = TransposeFunction(1, 2)
    out = fn.apply([x])
    grad = _arange(out.shape, requires_grad=False)
    (grad_x,) = fn.backward(grad)
    assert grad_x.shape == x.shape
    np.testing.assert_array_equal(grad_x.data, np.swapaxes(grad.data, 1, 2))


def test_transpose_output_is_independent_copy():
    x = _arange((2, 2))
    out = TransposeFunction(0, 1).apply([x])
    out.data[0, 0] = 100.0
    assert x.data[0, 0] == 0.0


def test_contiguous_copies_data():
    x = _arange((2, 3))
    out = ContiguousFunction().apply([x])
    np.testing.assert_array_equal(out.data, x.data)
    out.data[0, 0] = -1.0
    assert x.data[0, 0] == 0.0


def test_contiguous_backward_passes_gradient_through():
    x = _arange((3,))
    fn = ContiguousFunction()
    fn.apply([x])
    grad = _arange((3,), requires_grad=False)
    result = fn.backward(grad)
    assert len(result) == 1
    assert result[0] is grad


def test_contiguous_wrong_input_count():
    with pytest.raises(ValueError):
        ContiguousFunction().apply([])