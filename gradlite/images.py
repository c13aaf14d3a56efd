"""Loading image files into tensors."""

from __future__ import annotations

import os

import numpy as np
from PIL import Image

from gradlite.tensor import Tensor


def load_image(path: str | os.PathLike, target_size: int = 32) -> Tensor:
    """Load an image as RGB, resize it to a square and scale it to 0.0..1.0.

    The result has shape (1, 3, target_size, target_size), channels first.
    """
    if target_size <= 0:
        raise ValueError("Target size must be positive")
    try:
        with Image.open(path) as image:
            rgb = image.convert("RGB").resize(
                (target_size, target_size), Image.Resampling.BILINEAR
            )
    except OSError as exc:
        raise OSError(f"Failed to load image: {os.fspath(path)} ({exc})") from exc
    pixels = np.asarray(rgb, dtype=np.float32) / np.float32(255.0)
    chw = pixels.transpose(2, 0, 1)[np.newaxis]
    return Tensor(chw, chw.shape)