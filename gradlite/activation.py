"""Activation functions: ReLU, sigmoid, tanh and softmax."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from gradlite.tensor import Function, Tensor
from gradlite.unary import _ElementwiseFunction


def _relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, np.float32(0.0))


def _sigmoid(x: np.ndarray) -> np.ndarray:
    e = np.exp(-np.abs(x))
    return np.where(x >= 0, 1.0 / (1.0 + e), e / (e + 1.0))


class ReLUFunction(_ElementwiseFunction):
    """max(0, x) for each element; the gradient at zero is zero."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, _relu)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(
            grad_output, lambda grad, x, out: grad * (x > 0).astype(np.float32)
        )


class SigmoidFunction(_ElementwiseFunction):
    """1 / (1 + exp(-x)) for each element, computed without overflow."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, _sigmoid)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * out * (1 - out))


class TanhFunction(_ElementwiseFunction):
    """Hyperbolic tangent of each element."""

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        return self._map(inputs, np.tanh)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        return self._map_grad(grad_output, lambda grad, x, out: grad * (1 - out * out))


class SoftmaxFunction(Function):
    """Normalised exponentials along one dimension; negative dimensions count from the end."""

    def __init__(self, dim: int = -1) -> None:
        super().__init__()
        self.dim = int(dim)
        self._axis = 0

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        axis = self.dim + x.ndim if self.dim < 0 else self.dim
        if not 0 <= axis < x.ndim:
            raise ValueError("Invalid dimension for softmax")
        self._axis = axis
        shifted = x.data - x.data.max(axis=axis, keepdims=True)
        exps = np.exp(shifted)
        result = exps / exps.sum(axis=axis, keepdims=True, dtype=np.float32)
        return self._finish(result.astype(np.float32), x.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        out = self.output.data
        grad = grad_output.data.reshape(x.shape)
        dot = np.sum(grad * out, axis=self._axis, keepdims=True, dtype=np.float32)
        return [Tensor(out * (grad - dot), x.shape)]