"""Tensors and differentiable operations on NumPy, with MNIST, image and directory dataset loaders."""

__version__ = "0.1.0"