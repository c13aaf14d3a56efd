"""Operations that rearrange a tensor's layout: reshape, transpose and copy."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from gradlite.tensor import Function, Tensor


class ReshapeFunction(Function):
    """Give a tensor a new shape holding the same number of elements."""

    def __init__(self, new_shape: Sequence[int]) -> None:
        super().__init__()
        self.new_shape = tuple(int(d) for d in new_shape)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if math.prod(self.new_shape) != x.size:
            raise ValueError("Reshape size does not match the number of elements")
        return self._finish(x.data.reshape(-1), self.new_shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        return [Tensor(grad_output.data.reshape(-1), x.shape)]


class TransposeFunction(Function):
    """Swap two dimensions of a tensor; negative dimensions count from the end."""

    def __init__(self, dim0: int, dim1: int) -> None:
        super().__init__()
        self.dim0 = dim0
        self.dim1 = dim1

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        ndim = x.ndim
        if self.dim0 < 0:
            self.dim0 += ndim
        if self.dim1 < 0:
            self.dim1 += ndim
        if not (0 <= self.dim0 < ndim and 0 <= self.dim1 < ndim):
            raise ValueError("Invalid dimensions for transpose")
        swapped = np.swapaxes(x.data, self.dim0, self.dim1)
        return self._finish(swapped, swapped.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        restored = np.swapaxes(grad_output.data, self.dim0, self.dim1)
        return [Tensor(restored, restored.shape)]


class ContiguousFunction(Function):
    """Return a fresh copy of a tensor's data in row-major order."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        return self._finish(np.array(x.data, copy=True), x.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return [grad_output]