"""Element-wise binary operations with broadcasting, and the dot product."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from gradlite.tensor import Function, Tensor, broadcast_shapes, reduce_grad


class _BroadcastFunction(Function):
    """Shared forward pass for element-wise operations that broadcast."""

    def _broadcast(
        self,
        inputs: Sequence[Tensor],
        op: Callable[[np.ndarray, np.ndarray], np.ndarray],
    ) -> Tensor:
        a, b = self._expect_inputs(inputs, 2)
        out_shape = broadcast_shapes(a.shape, b.shape)
        result = np.broadcast_to(op(a.data, b.data), out_shape)
        return self._finish(result, out_shape, (a, b))


class AddFunction(_BroadcastFunction):
    """a + b with broadcasting."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._broadcast(inputs, np.add)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return [grad_output if t.requires_grad else None for t in self.inputs]


class SubFunction(_BroadcastFunction):
    """a - b with broadcasting."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._broadcast(inputs, np.subtract)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        a, b = self.inputs
        grad_a = reduce_grad(grad_output, a.shape) if a.requires_grad else None
        grad_b = None
        if b.requires_grad:
            negated = Tensor(-grad_output.data, grad_output.shape)
            grad_b = reduce_grad(negated, b.shape)
        return [grad_a, grad_b]


class MulFunction(_BroadcastFunction):
    """a * b with broadcasting."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._broadcast(inputs, np.multiply)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        a, b = self.inputs
        grads: list[Tensor | None] = [None, None]
        if a.requires_grad:
            product = grad_output.data * b.data
            grads[0] = reduce_grad(Tensor(product, product.shape), a.shape)
        if b.requires_grad:
            product = grad_output.data * a.data
            grads[1] = reduce_grad(Tensor(product, product.shape), b.shape)
        return grads


class DotFunction(Function):
    """Sum of element-wise products of two tensors of equal size."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        a, b = self._expect_inputs(inputs, 2)
        if a.size != b.size:
            raise ValueError("Tensors must have the same size for dot product")
        value = np.dot(a.data.reshape(-1), b.data.reshape(-1)).astype(np.float32)
        return self._finish([value], (1,), (a, b))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        a, b = self.inputs
        grad_val = grad_output.data.reshape(-1)[0]
        grad_a = Tensor(grad_val * b.data.reshape(-1), a.shape) if a.requires_grad else None
        grad_b = Tensor(grad_val * a.data.reshape(-1), b.shape) if b.requires_grad else None
        return [grad_a, grad_b]