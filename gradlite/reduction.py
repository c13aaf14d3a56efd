"""Reductions over a whole tensor or along one dimension: sum, max, min and mean."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from gradlite.tensor import Function, Shape, Tensor


class _Reduction(Function):
    """Shared handling of the reduced dimension.

    A negative ``dim`` reduces over every element and yields a one-element
    tensor of shape ``(1,)``.
    """

    _operation = "reduction"
    _pad_empty_shape = True

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__()
        self.dim = int(dim)
        self.keepdims = bool(keepdims)

    @property
    def is_global(self) -> bool:
        return self.dim < 0

    def _axis(self, x: Tensor) -> int:
        if not 0 <= self.dim < x.ndim:
            raise ValueError(f"Invalid dimension for {self._operation}")
        return self.dim

    def _output_shape(self, x: Tensor, axis: int) -> Shape:
        if self.keepdims:
            shape = tuple(1 if i == axis else d for i, d in enumerate(x.shape))
        else:
            shape = tuple(d for i, d in enumerate(x.shape) if i != axis)
        if not shape and self._pad_empty_shape:
            shape = (1,)
        return shape

    @staticmethod
    def _kept_grad(grad_output: Tensor, x: Tensor, axis: int) -> np.ndarray:
        kept = tuple(1 if i == axis else d for i, d in enumerate(x.shape))
        return grad_output.data.reshape(kept)

    @staticmethod
    def _first_value(grad_output: Tensor) -> np.float32:
        return grad_output.data.reshape(-1)[0]


class SumFunction(_Reduction):
    """Sum of all elements, or along one dimension."""

    _operation = "summation"
    _pad_empty_shape = False

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__(dim, keepdims)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if self.is_global:
            total = np.sum(x.data, dtype=np.float32)
            return self._finish([total], (1,), (x,))
        axis = self._axis(x)
        result = np.sum(x.data, axis=axis, dtype=np.float32)
        return self._finish(result.reshape(-1), self._output_shape(x, axis), (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        if self.is_global:
            filled = np.full(x.shape, self._first_value(grad_output), dtype=np.float32)
            return [Tensor(filled, x.shape)]
        axis = self.dim
        spread = np.broadcast_to(self._kept_grad(grad_output, x, axis), x.shape)
        return [Tensor(spread, x.shape)]


class _ExtremumFunction(_Reduction):
    """Max or min, remembering where each chosen element came from."""

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__(dim, keepdims)
        self._flat_index = 0
        self._indices: np.ndarray | None = None

    def _select(self, inputs: Sequence[Tensor], pick: Callable[..., np.ndarray]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if x.size == 0:
            raise ValueError(f"Cannot take the {self._operation} of an empty tensor")
        if self.is_global:
            flat = x.data.reshape(-1)
            self._flat_index = int(pick(flat))
            return self._finish([flat[self._flat_index]], (1,), (x,))
        axis = self._axis(x)
        self._indices = pick(x.data, axis=axis, keepdims=True)
        values = np.take_along_axis(x.data, self._indices, axis=axis)
        return self._finish(values.reshape(-1), self._output_shape(x, axis), (x,))

    def _scatter(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        grad = np.zeros(x.shape, dtype=np.float32)
        if self.is_global:
            grad.reshape(-1)[self._flat_index] = self._first_value(grad_output)
            return [Tensor(grad, x.shape)]
        axis = self.dim
        np.put_along_axis(grad, self._indices, self._kept_grad(grad_output, x, axis), axis=axis)
        return [Tensor(grad, x.shape)]


class MaxFunction(_ExtremumFunction):
    """Largest element, or largest along one dimension; ties go to the first."""

    _operation = "max operation"

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__(dim, keepdims)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._select(inputs, np.argmax)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._scatter(grad_output)


class MinFunction(_ExtremumFunction):
    """Smallest element, or smallest along one dimension; ties go to the first."""

    _operation = "min operation"

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__(dim, keepdims)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._select(inputs, np.argmin)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._scatter(grad_output)


class MeanFunction(_Reduction):
    """Arithmetic mean of all elements, or along one dimension."""

    _operation = "mean operation"

    def __init__(self, dim: int = -1, keepdims: bool = False) -> None:
        super().__init__(dim, keepdims)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if self.is_global:
            total = np.sum(x.data, dtype=np.float32)
            return self._finish([total / np.float32(x.size)], (1,), (x,))
        axis = self._axis(x)
        result = np.sum(x.data, axis=axis, dtype=np.float32) / np.float32(x.shape[axis])
        return self._finish(result.reshape(-1), self._output_shape(x, axis), (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        if self.is_global:
            value = self._first_value(grad_output) / np.float32(x.size)
            return [Tensor(np.full(x.shape, value, dtype=np.float32), x.shape)]
        axis = self.dim
        kept = self._kept_grad(grad_output, x, axis) / np.float32(x.shape[axis])
        return [Tensor(np.broadcast_to(kept, x.shape), x.shape)]