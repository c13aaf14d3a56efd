"""Batches of labelled images from a directory of per-class folders."""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Iterator
from pathlib import Path

from gradlite.images import load_image
from gradlite.tensor import Tensor

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".bmp"})
IMAGE_SIZE = 32
MAX_CACHE_SIZE = 1000

Batch = tuple[list[Tensor], list[int]]


class DataLoader:
    """Loads images from ``data_dir/<class>/<image>``, one label per class folder.

    Class folders are taken in name order; a folder without images gets no label.
    """

    def __init__(self, data_dir: str | os.PathLike, batch_size: int = 32, shuffle: bool = True) -> None:
        if batch_size <= 0:
            raise ValueError("Batch size must be positive")
        self.data_dir = Path(data_dir)
        self.batch_size = int(batch_size)
        self.shuffle = bool(shuffle)
        self._rng = random.Random()
        self._samples: list[tuple[Path, int]] = []
        self._cache: dict[Path, Tensor] = {}
        self._position = 0
        self.num_classes = self._scan()
        self._order = list(range(len(self._samples)))
        if self.shuffle:
            self._rng.shuffle(self._order)

    def _scan(self) -> int:
        if not self.data_dir.is_dir():
            raise FileNotFoundError(
                f"Data directory {self.data_dir} does not exist or is not a directory"
            )
        label = 0
        for category in sorted(p for p in self.data_dir.iterdir() if p.is_dir()):
            images = sorted(
                entry
                for entry in category.iterdir()
                if entry.is_file() and entry.suffix.lower() in IMAGE_EXTENSIONS
            )
            if not images:
                logger.warning("No images found in directory: %s. Skipping.", category)
                continue
            self._samples.extend((path, label) for path in images)
            label += 1
        return label

    @property
    def samples(self) -> list[tuple[Path, int]]:
        """Every image path with its label, in discovery order."""
        return list(self._samples)

    def _remember(self, path: Path, image: Tensor) -> None:
        if len(self._cache) >= MAX_CACHE_SIZE:
            keep = MAX_CACHE_SIZE // 2
            for key in self._rng.sample(list(self._cache), len(self._cache) - keep):
                del self._cache[key]
        self._cache[path] = image

    def next_batch(self) -> Batch:
        """Return up to ``batch_size`` images and their labels; unreadable files are skipped."""
        images: list[Tensor] = []
        labels: list[int] = []
        while len(images) < self.batch_size and self._position < len(self._order):
            path, label = self._samples[self._order[self._position]]
            self._position += 1
            image = self._cache.get(path)
            if image is None:
                try:
                    image = load_image(path, IMAGE_SIZE)
                except (OSError, ValueError) as exc:
                    logger.error("Failed to load image: %s - %s", path, exc)
                    continue
                self._remember(path, image)
            images.append(image)
            labels.append(label)
        return images, labels

    def has_next_batch(self) -> bool:
        return self._position < len(self._order)

    def reset(self) -> None:
        """Start over from the first sample, reshuffling if shuffling is on."""
        self._position = 0
        if self.shuffle:
            self._rng.shuffle(self._order)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Batch]:
        self.reset()
        while self.has_next_batch():
            images, labels = self.next_batch()
            if images:
                yield images, labels