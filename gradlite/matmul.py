"""Batched matrix multiplication with broadcasting over leading dimensions."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from gradlite.tensor import Function, Shape, Tensor, broadcast_shapes


class MatMulFunction(Function):
    """Matrix product over the last two dimensions, broadcasting the rest."""

    def __init__(self) -> None:
        super().__init__()
        self._prefix: Shape = ()

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        a, b = self._expect_inputs(inputs, 2)
        if a.ndim < 2 or b.ndim < 2:
            raise ValueError("Matrices must be at least 2-dimensional")

        m, k = a.shape[-2:]
        b_rows, n = b.shape[-2:]
        if k != b_rows:
            raise ValueError(
                f"Matrix dimensions incompatible: ({m}x{k}) vs ({b_rows}x{n})"
            )

        self._prefix = broadcast_shapes(a.shape[:-2], b.shape[:-2])
        out_shape = self._prefix + (m, n)
        result = np.broadcast_to(np.matmul(a.data, b.data), out_shape)
        return self._finish(result, out_shape, (a, b))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        a, b = self.inputs
        m, k = a.shape[-2:]
        n = b.shape[-1]
        grad = grad_output.data.reshape(self._prefix + (m, n))

        grads: list[Tensor | None] = [None, None]
        if a.requires_grad:
            shape = self._prefix + (m, k)
            product = np.matmul(grad, np.swapaxes(b.data, -1, -2))
            grads[0] = Tensor(np.broadcast_to(product, shape), shape)
        if b.requires_grad:
            shape = self._prefix + (b.shape[-2], n)
            product = np.matmul(np.swapaxes(a.data, -1, -2), grad)
            grads[1] = Tensor(np.broadcast_to(product, shape), shape)
        return grads