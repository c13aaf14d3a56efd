"""Two-dimensional convolution over NCHW tensors."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import numpy as np

from gradlite.tensor import Function, Shape, Tensor


class Conv2dFunction(Function):
    """Cross-correlation of an NCHW input with a square OIKK weight, without bias.

    Positions outside the input, introduced by ``padding``, count as zeros.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        kernel_size: int,
        stride: int = 1,
        padding: int = 0,
    ) -> None:
        super().__init__()
        if in_channels <= 0 or out_channels <= 0 or kernel_size <= 0:
            raise ValueError("Invalid convolution parameters")
        if stride <= 0 or padding < 0:
            raise ValueError("Invalid convolution parameters")
        self.in_channels = int(in_channels)
        self.out_channels = int(out_channels)
        self.kernel_size = int(kernel_size)
        self.stride = int(stride)
        self.padding = int(padding)
        self._input_shape: Shape = ()
        self._out_hw: tuple[int, int] = (0, 0)

    def _output_size(self, size: int) -> int:
        span = size + 2 * self.padding - self.kernel_size
        if span < 0:
            raise ValueError("Output dimensions must be positive")
        return span // self.stride + 1

    def _pad(self, data: np.ndarray) -> np.ndarray:
        p = self.padding
        return np.pad(data, ((0, 0), (0, 0), (p, p), (p, p)))

    def _taps(self) -> Iterator[tuple[int, int, tuple[slice, ...]]]:
        """Yield each kernel offset with the padded-input region it reads."""
        out_h, out_w = self._out_hw
        s = self.stride
        for i in range(self.kernel_size):
            for j in range(self.kernel_size):
                region = (
                    slice(None),
                    slice(None),
                    slice(i, i + s * (out_h - 1) + 1, s),
                    slice(j, j + s * (out_w - 1) + 1, s),
                )
                yield i, j, region

    def apply(self, inputs: Sequence[Tensor]) -> Tensor:
        x, weight = self._expect_inputs(inputs, 2)
        if x.ndim != 4:
            raise ValueError("Conv2d expects 4D input")
        expected_weight = (
            self.out_channels,
            self.in_channels,
            self.kernel_size,
            self.kernel_size,
        )
        if weight.shape != expected_weight:
            raise ValueError(
                f"Weight shape {list(weight.shape)} does not match {list(expected_weight)}"
            )
        batch, channels, height, width = x.shape
        if channels != self.in_channels:
            raise ValueError(
                f"Input has {channels} channels, expected {self.in_channels}"
            )

        self._input_shape = x.shape
        self._out_hw = (self._output_size(height), self._output_size(width))
        padded = self._pad(x.data)
        out = np.zeros((batch, self.out_channels) + self._out_hw, dtype=np.float32)
        for i, j, region in self._taps():
            out += np.einsum("oc,nchw->nohw", weight.data[:, :, i, j], padded[region])
        return self._finish(out, out.shape, (x, weight))

    def backward(self, grad_output: Tensor) -> list[Tensor | None]:
        x, weight = self.inputs
        batch = self._input_shape[0]
        grad = grad_output.data.reshape((batch, self.out_channels) + self._out_hw)
        padded = self._pad(x.data)

        grad_x = np.zeros(padded.shape, dtype=np.float32) if x.requires_grad else None
        grad_w = np.zeros(weight.shape, dtype=np.float32) if weight.requires_grad else None
        for i, j, region in self._taps():
            if grad_x is not None:
                grad_x[region] += np.einsum("oc,nohw->nchw", weight.data[:, :, i, j], grad)
            if grad_w is not None:
                grad_w[:, :, i, j] += np.einsum("nohw,nchw->oc", grad, padded[region])

        grads: list[Tensor | None] = [None, None]
        if grad_x is not None:
            p = self.padding
            _, _, height, width = self._input_shape
            cropped = grad_x[:, :, p : p + height, p : p + width]
            grads[0] = Tensor(cropped, self._input_shape)
        if grad_w is not None:
            grads[1] = Tensor(grad_w, weight.shape)
        return grads