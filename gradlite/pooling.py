"""Two-dimensional average and max pooling over NCHW tensors."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import numpy as np

from gradlite.tensor import Function, Shape, Tensor

_FLT_MAX = np.finfo(np.float32).max


def _output_size(size: int, kernel: int, stride: int, padding: int) -> int:
    span = size + 2 * padding - kernel
    # Division truncates toward zero, so a kernel wider than the input still yields one window.
    steps = span // stride if span >= 0 else -((-span) // stride)
    return steps + 1


def _clip(start: int, kernel: int, limit: int) -> slice:
    low = max(0, start)
    high = max(low, min(start + kernel, limit))
    return slice(low, high)


class _Pool2d(Function):
    _name = "Pool2d"

    def __init__(self, kernel_size: int, stride: int, padding: int = 0) -> None:
        super().__init__()
        if kernel_size <= 0 or stride <= 0 or padding < 0:
            raise ValueError("Invalid pooling parameters")
        self.kernel_size = int(kernel_size)
        self.stride = int(stride)
        self.padding = int(padding)
        self._input_shape: Shape = ()

    def _prepare(self, inputs: Sequence[Tensor]) -> tuple[Tensor, int, int]:
        (x,) = self._expect_inputs(inputs, 1)
        if x.ndim != 4:
            raise ValueError(f"{self._name} expects 4D input")
        self._input_shape = x.shape
        _, _, height, width = x.shape
        out_h = _output_size(height, self.kernel_size, self.stride, self.padding)
        out_w = _output_size(width, self.kernel_size, self.stride, self.padding)
        if out_h <= 0 or out_w <= 0:
            raise ValueError("Output dimensions must be positive")
        return x, out_h, out_w

    def _windows(self, out_h: int, out_w: int) -> Iterator[tuple[int, int, slice, slice]]:
        """Yield each output position with the input rows and columns it covers."""
        _, _, height, width = self._input_shape
        for oh in range(out_h):
            rows = _clip(oh * self.stride - self.padding, self.kernel_size, height)
            for ow in range(out_w):
                cols = _clip(ow * self.stride - self.padding, self.kernel_size, width)
                yield oh, ow, rows, cols

    @staticmethod
    def _area(rows: slice, cols: slice) -> int:
        return (rows.stop - rows.start) * (cols.stop - cols.start)


class AvgPool2dFunction(_Pool2d):
    """Average over each window; padded positions are not counted in the average."""

    _name = "AvgPool2d"

    def __init__(self, kernel_size: int, stride: int, padding: int = 0) -> None:
        super().__init__(kernel_size, stride, padding)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        x, out_h, out_w = self._prepare(inputs)
        batch, channels = x.shape[:2]
        out = np.zeros((batch, channels, out_h, out_w), dtype=np.float32)
        for oh, ow, rows, cols in self._windows(out_h, out_w):
            area = self._area(rows, cols)
            if area > 0:
                window = x.data[:, :, rows, cols]
                out[:, :, oh, ow] = window.sum(axis=(2, 3), dtype=np.float32) / np.float32(area)
        return self._finish(out, out.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        out_shape = self.output.shape
        grad = grad_output.data.reshape(out_shape)
        grad_in = np.zeros(self._input_shape, dtype=np.float32)
        for oh, ow, rows, cols in self._windows(out_shape[2], out_shape[3]):
            area = self._area(rows, cols)
            if area > 0:
                share = grad[:, :, oh, ow] / np.float32(area)
                grad_in[:, :, rows, cols] += share[:, :, None, None]
        return [Tensor(grad_in, self._input_shape)]


class MaxPool2dFunction(_Pool2d):
    """Maximum over each window; ties go to the first element in row-major order."""

    _name = "MaxPool2d"

    def __init__(self, kernel_size: int, stride: int, padding: int = 0) -> None:
        super().__init__(kernel_size, stride, padding)
        self._argmax: np.ndarray = np.empty(0, dtype=np.int64)

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        x, out_h, out_w = self._prepare(inputs)
        batch, channels = x.shape[:2]
        out = np.zeros((batch, channels, out_h, out_w), dtype=np.float32)
        argmax = np.full(out.shape, -1, dtype=np.int64)
        batch_idx, channel_idx = np.indices((batch, channels))

        for oh, ow, rows, cols in self._windows(out_h, out_w):
            if self._area(rows, cols) <= 0:
                continue
            window_width = cols.stop - cols.start
            window = x.data[:, :, rows, cols].reshape(batch, channels, -1)
            local = window.argmax(axis=2)
            best = np.take_along_axis(window, local[..., None], axis=2)[..., 0]
            flat = np.ravel_multi_index(
                (
                    batch_idx,
                    channel_idx,
                    rows.start + local // window_width,
                    cols.start + local % window_width,
                ),
                x.shape,
            )
            valid = best > -_FLT_MAX
            out[:, :, oh, ow] = np.where(valid, best, np.float32(0.0))
            argmax[:, :, oh, ow] = np.where(valid, flat, -1)

        self._argmax = argmax
        return self._finish(out, out.shape, (x,))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        (x,) = self.inputs
        if not x.requires_grad:
            return [None]
        grad = grad_output.data.reshape(self._argmax.shape)
        grad_in = np.zeros(int(np.prod(self._input_shape)), dtype=np.float32)
        chosen = self._argmax >= 0
        np.add.at(grad_in, self._argmax[chosen], grad[chosen])
        return [Tensor(grad_in, self._input_shape)]