"""Readers for the MNIST IDX image and label files."""

from __future__ import annotations

import os
import struct
from typing import BinaryIO

import numpy as np

IMAGE_MAGIC = 2051
LABEL_MAGIC = 2049


def _read_header(stream: BinaryIO, count: int, path) -> tuple[int, ...]:
    raw = stream.read(4 * count)
    if len(raw) < 4 * count:
        raise ValueError(f"Truncated header in {os.fspath(path)}")
    return struct.unpack(f">{count}I", raw)


def load_images(path: str | os.PathLike) -> np.ndarray:
    """Read an IDX3 image file into an array of shape (images, rows * cols).

    Pixels are scaled from 0..255 to 0.0..1.0.
    """
    with open(path, "rb") as stream:
        magic, count, rows, cols = _read_header(stream, 4, path)
        if magic != IMAGE_MAGIC:
            raise ValueError("Invalid image file format")
        expected = count * rows * cols
        raw = stream.read(expected)
    if len(raw) < expected:
        raise ValueError(f"Truncated image data in {os.fspath(path)}")
    pixels = np.frombuffer(raw, dtype=np.uint8).reshape(count, rows * cols)
    return pixels.astype(np.float32) / np.float32(255.0)


def load_labels(path: str | os.PathLike) -> list[int]:
    """Read an IDX1 label file into a list of class indices."""
    with open(path, "rb") as stream:
        magic, count = _read_header(stream, 2, path)
        if magic != LABEL_MAGIC:
            raise ValueError("Invalid label file format")
        raw = stream.read(count)
    if len(raw) < count:
        raise ValueError(f"Truncated label data in {os.fspath(path)}")
    return list(raw)