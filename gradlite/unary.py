"""Element-wise unary operations: exp, log, trigonometric functions and abs."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from gradlite.tensor import Function, Tensor

_LocalGrad = Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]


class _ElementwiseFunction(Function):
    """An element-wise map whose derivative is computed from input and output."""

    def _map(self, inputs: Sequence[Tensor], forward: Callable[[np.ndarray], np.ndarray]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        result = np.asarray(forward(x.data), dtype=np.float32)
        return self._finish(result, x.shape, (x,))

    def _map_grad(self, grad_output: Tensor, local_grad: _LocalGrad) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        grad = grad_output.data.reshape(x.shape)
        return [Tensor(local_grad(grad, x.data, self.output.data), x.shape)]


class ExpFunction(_ElementwiseFunction):
    """e raised to each element."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, np.exp)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * out)


class LogFunction(_ElementwiseFunction):
    """Natural logarithm of each element; every element must be positive."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if np.any(x.data <= 0):
            raise ValueError("Logarithm input must be positive")
        return self._map([x], np.log)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad / x)


class SinFunction(_ElementwiseFunction):
    """Sine of each element."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, np.sin)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * np.cos(x))


class CosFunction(_ElementwiseFunction):
    """Cosine of each element."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, np.cos)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: -grad * np.sin(x))


class TanFunction(_ElementwiseFunction):
    """Tangent of each element; inputs where the cosine vanishes are rejected."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        if np.any(np.abs(np.cos(x.data)) < 1e-8):
            raise ValueError("Tangent input causes undefined behavior")
        return self._map([x], np.tan)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * (1 + out * out))


class AbsFunction(_ElementwiseFunction):
    """Absolute value of each element; the gradient at zero is zero."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, np.abs)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * np.sign(x))