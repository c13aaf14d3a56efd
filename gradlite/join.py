"""Operations that join, split and broadcast tensors."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from gradlite.tensor import Function, Shape, Tensor, broadcast_shapes


def _normalize_dim(dim: int, ndim: int, message: str) -> int:
    axis = dim + ndim if dim < 0 else dim
    if not 0 <= axis < ndim:
        raise ValueError(message)
    return axis


class ConcatFunction(Function):
    """Join tensors along one dimension."""

    def __init__(self, dim: int = 0) -> None:
        super().__init__()
        self.dim = int(dim)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        inputs = list(inputs)
        if not inputs:
            raise ValueError("ConcatFunction requires at least one input")
        self.inputs = inputs
        ndim = inputs[0].ndim
        if any(t.ndim != ndim for t in inputs):
            raise ValueError("All tensors must have the same number of dimensions")
        axis = _normalize_dim(self.dim, ndim, "Invalid dimension for concatenation")
        self.dim = axis

        first = inputs[0].shape
        for t in inputs[1:]:
            for i, (have, want) in enumerate(zip(t.shape, first)):
                if i != axis and have != want:
                    raise ValueError(
                        f"Shapes {list(first)} and {list(t.shape)} differ outside "
                        f"dimension {axis}"
                    )

        result = np.concatenate([t.data for t in inputs], axis=axis)
        return self._finish(result, result.shape, inputs)

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        axis = self.dim
        out_shape: Shape = self.output.shape if self.output is not None else grad_output.shape
        grad = grad_output.data.reshape(out_shape)
        bounds = np.cumsum([t.shape[axis] for t in self.inputs])[:-1]
        pieces = np.split(grad, bounds, axis=axis)
        return [
            Tensor(piece, piece.shape) if t.requires_grad else None
            for t, piece in zip(self.inputs, pieces)
        ]


class SplitFunction(Function):
    """Take one of ``sections`` equal parts of a tensor along a dimension."""

    def __init__(self, sections: int, dim: int = 0, index: int = 0) -> None:
        super().__init__()
        self.sections = int(sections)
        self.dim = int(dim)
        self.index = int(index)
        self._region: tuple[slice, ...] = ()

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        axis = _normalize_dim(self.dim, x.ndim, "Invalid dimension for splitting")
        self.dim = axis
        if self.sections <= 0:
            raise ValueError("Number of sections must be positive")
        if x.shape[axis] % self.sections != 0:
            raise ValueError("Dimension size must be divisible by sections")
        if not 0 <= self.index < self.sections:
            raise ValueError("Split index out of range")

        size = x.shape[axis] // self.sections
        region = [slice(None)] * x.ndim
        region[axis] = slice(self.index * size, (self.index + 1) * size)
        self._region = tuple(region)
        piece = x.data[self._region]
        return self._finish(piece, piece.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        grad = np.zeros(x.shape, dtype=np.float32)
        target = grad[self._region]
        target[...] = grad_output.data.reshape(target.shape)
        return [Tensor(grad, x.shape)]


class ExpandFunction(Function):
    """Broadcast a tensor to a larger shape."""

    def __init__(self, new_shape: Sequence[int]) -> None:
        super().__init__()
        self.new_shape = tuple(int(d) for d in new_shape)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        (x,) = self._expect_inputs(inputs, 1)
        try:
            out_shape = broadcast_shapes(x.shape, self.new_shape)
        except ValueError as exc:
            raise ValueError(
                f"Expand failed: from shape {list(x.shape)} to "
                f"{list(self.new_shape)}: {exc}"
            ) from exc
        return self._finish(np.broadcast_to(x.data, out_shape), out_shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        grad = grad_output.data
        extra = grad.ndim - x.ndim
        if extra > 0:
            grad = grad.sum(axis=tuple(range(extra)), dtype=np.float32)
        broadcast_axes = tuple(
            i for i, (have, want) in enumerate(zip(grad.shape, x.shape)) if want == 1 and have > 1
        )
        if broadcast_axes:
            grad = grad.sum(axis=broadcast_axes, keepdims=True, dtype=np.float32)
        return [Tensor(grad.reshape(x.shape), x.shape)]