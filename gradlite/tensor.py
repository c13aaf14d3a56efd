"""Core tensor type, the autograd function base class and broadcasting helpers."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

Shape = tuple[int, ...]

_COUNT_WORDS = {1: "one", 2: "two", 3: "three"}


class Tensor:
    """A dense float32 array that can take part in a computation graph."""

    def __init__(self, data, shape: Sequence[int] | None = None, requires_grad: bool = False):
        array = np.asarray(data, dtype=np.float32)
        if shape is None:
            shape = array.shape if array.ndim else (1,)
        dims = tuple(int(d) for d in shape)
        if any(d < 0 for d in dims):
            raise ValueError(f"Negative dimension in shape {list(dims)}")
        if array.size != math.prod(dims):
            raise ValueError(
                f"Data of {array.size} elements does not fit shape {list(dims)}"
            )
        self.data: np.ndarray = np.array(array.reshape(dims), dtype=np.float32, copy=True)
        self.requires_grad = bool(requires_grad)
        self.grad: Tensor | None = None
        self.grad_fn: Function | None = None
        self.children: list[Tensor] = []
        self.is_leaf = True

    @property
    def shape(self) -> Shape:
        return tuple(self.data.shape)

    @property
    def size(self) -> int:
        return int(self.data.size)

    @property
    def ndim(self) -> int:
        return self.data.ndim

    def item(self) -> float:
        """Return the value of a one-element tensor as a Python float."""
        if self.data.size != 1:
            raise ValueError(
                f"item() needs a tensor with exactly one element, got {self.data.size}"
            )
        return float(self.data.reshape(-1)[0])

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={list(self.shape)}, requires_grad={self.requires_grad}, "
            f"data={self.data.reshape(-1).tolist()})"
        )


def tensor(data, shape: Sequence[int] | None = None, requires_grad: bool = False) -> Tensor:
    """Create a tensor from data laid out in row-major order."""
    return Tensor(data, shape, requires_grad)


class Function(ABC):
    """An operation in the computation graph with a forward and a backward pass."""

    def __init__(self) -> None:
        self.inputs: list[Tensor] = []
        self.output: Tensor | None = None

    @abstractmethod
    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        """Compute the forward result and record the graph edges."""

    @abstractmethod
    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        """Return one gradient per input, or None where no gradient is needed."""

    def _expect_inputs(self, inputs: Sequence[Tensor], count: int) -> list[Tensor]:
        inputs = list(inputs)
        if len(inputs) != count:
            word = _COUNT_WORDS.get(count, str(count))
            plural = "input" if count == 1 else "inputs"
            raise ValueError(f"{type(self).__name__} requires exactly {word} {plural}")
        self.inputs = inputs
        return inputs

    def _finish(self, data, shape: Sequence[int], inputs: Sequence[Tensor]) -> Tensor:
        requires_grad = any(t.requires_grad for t in inputs)
        output = Tensor(data, shape, requires_grad)
        if requires_grad:
            output.grad_fn = self
            output.children = list(inputs)
            output.is_leaf = False
        self.output = output
        return output


def broadcast_shapes(shape_a: Sequence[int], shape_b: Sequence[int]) -> Shape:
    """Return the shape two shapes broadcast to, aligning from the last dimension."""
    ndim = max(len(shape_a), len(shape_b))
    padded_a = (1,) * (ndim - len(shape_a)) + tuple(shape_a)
    padded_b = (1,) * (ndim - len(shape_b)) + tuple(shape_b)
    result = []
    for i, (dim_a, dim_b) in enumerate(zip(padded_a, padded_b)):
        if dim_a != dim_b and dim_a != 1 and dim_b != 1:
            raise ValueError(
                f"Broadcast dimension mismatch: dim[{i}] {dim_a} vs {dim_b}\n"
                f"  Shape A: {list(shape_a)}\n  Shape B: {list(shape_b)}"
            )
        result.append(max(dim_a, dim_b))
    return tuple(result)


def reduce_grad(grad_output: Tensor, target_shape: Sequence[int]) -> Tensor:
    """Bring a broadcast gradient back to the shape of the input it flows to."""
    target = tuple(int(d) for d in target_shape)
    if any(d <= 0 for d in target):
        raise ValueError("Shape dimensions must be positive")
    grad = np.array(grad_output.data, copy=True)
    target_size = math.prod(target)

    if grad.size != target_size:
        reduced = grad
        for axis, (have, want) in enumerate(zip(grad.shape, target)):
            if have != want:
                reduced = reduced.sum(axis=axis, keepdims=True)
                break
        if reduced.size != target_size:
            raise RuntimeError(
                f"Cannot reduce gradient from shape {list(grad.shape)} "
                f"to shape {list(target)}"
            )
        grad = reduced

    return Tensor(grad.reshape(target), target)