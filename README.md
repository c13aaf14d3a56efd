# gradlite

gradlite is a small tensor library built on NumPy. Each operation is a
`Function` object with two methods:

- `apply(inputs)` runs the forward pass. It returns a new `Tensor` and records
  the graph edges (`grad_fn`, `children`, `is_leaf`) when any input has
  `requires_grad` set.
- `backward(grad_output)` takes the gradient of the output. It returns a list
  with one gradient per input, or `None` for an input that does not require
  a gradient.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Tensors

```python
from gradlite.tensor import tensor

a = tensor([1.0, 2.0, 3.0, 4.0], [2, 2], True)
a.shape      # (2, 2)
a.size       # 4
a.data       # float32 NumPy array holding the values
```

`tensor(data, shape, requires_grad)` builds a `Tensor` from values laid out in
row-major order. If you leave out `shape`, the shape of the data is used, and
a scalar becomes shape `(1,)`. A shape that does not match the number of
elements raises `ValueError`. `Tensor.item()` returns the value of a
one-element tensor as a float.

The `gradlite.tensor` module has two shape helpers:

- `broadcast_shapes(shape_a, shape_b)` returns the shape that two shapes
  broadcast to, aligning them from the last dimension. It raises `ValueError`
  when the shapes are incompatible.
- `reduce_grad(grad_output, target_shape)` sums a broadcast gradient back to
  an input's shape. It sums over the first dimension that differs. It raises
  `RuntimeError` when the gradient cannot be brought to that shape.

## Operations

| Module | Classes |
| --- | --- |
| `gradlite.binary` | `AddFunction`, `SubFunction`, `MulFunction` (element-wise, broadcasting), `DotFunction` (sum of products of two equal-sized tensors) |
| `gradlite.matmul` | `MatMulFunction`: matrix product over the last two dimensions, broadcasting the leading ones |
| `gradlite.shape` | `ReshapeFunction(new_shape)`, `TransposeFunction(dim0, dim1)`, `ContiguousFunction` |
| `gradlite.reduction` | `SumFunction`, `MaxFunction`, `MinFunction`, `MeanFunction`, each taking `(dim=-1, keepdims=False)` |
| `gradlite.join` | `ConcatFunction(dim=0)`, `SplitFunction(sections, dim=0, index=0)`, `ExpandFunction(new_shape)` |
| `gradlite.unary` | `ExpFunction`, `LogFunction`, `SinFunction`, `CosFunction`, `TanFunction`, `AbsFunction` |
| `gradlite.activation` | `ReLUFunction`, `SigmoidFunction`, `TanhFunction`, `SoftmaxFunction(dim=-1)` |
| `gradlite.pooling` | `AvgPool2dFunction`, `MaxPool2dFunction`, each taking `(kernel_size, stride, padding=0)` over NCHW input |
| `gradlite.conv` | `Conv2dFunction(in_channels, out_channels, kernel_size, stride=1, padding=0)`: input NCHW, weight `(out, in, k, k)`, no bias |

Notes on some of these operations:

- **Reductions.** A negative `dim` reduces over every element and gives a
  tensor of shape `(1,)`. For max and min, ties go to the first element, and
  the gradient flows only to the chosen element.
- **`SplitFunction`.** It returns one of `sections` equal parts along `dim`:
  the part at `index`.
- **`AvgPool2dFunction`.** The average leaves out padded positions.
- **`MaxPool2dFunction`.** The gradient goes to the position of each window's
  maximum.
- **`SoftmaxFunction` and `TransposeFunction`.** Negative dimensions count
  from the end.

Example, backpropagating through a matrix product:

```python
from gradlite.tensor import tensor
from gradlite.matmul import MatMulFunction

x = tensor([1.0, 2.0, 3.0, 4.0], [2, 2], True)
w = tensor([0.5, -1.0, 2.0, 0.0], [2, 2], True)

fn = MatMulFunction()
out = fn.apply([x, w])
grad_x, grad_w = fn.backward(tensor([1.0] * 4, [2, 2], False))
```

Invalid input raises `ValueError`. Examples are:

- a wrong number of inputs
- incompatible shapes
- a dimension out of range
- a logarithm of a value that is not positive
- a tangent where the cosine vanishes
- pooling parameters that are not valid

## Data

`gradlite.mnist` reads MNIST files in the IDX format:

```python
from gradlite.mnist import load_images, load_labels

images = load_images("train-images.idx3-ubyte")   # float32 array, shape (count, rows * cols), values in [0, 1]
labels = load_labels("train-labels.idx1-ubyte")   # list of ints
```

A wrong magic number raises `ValueError`, and so does a truncated file.

`load_image(path, target_size=32)` from `gradlite.images` reads one picture as
RGB. It resizes the picture to `target_size` × `target_size` with bilinear
sampling and returns a tensor of shape `(1, 3, target_size, target_size)` with
values in `[0, 1]`. A file that cannot be read raises `OSError`.

`DataLoader(data_dir, batch_size=32, shuffle=True)` from `gradlite.loader`
reads a directory with one subdirectory per class:

- It visits the subdirectories in name order.
- Each subdirectory that holds `.jpg`, `.jpeg`, `.png` or `.bmp` files gets the
  next class label. Subdirectories without images are skipped with a warning.
- A missing directory raises `FileNotFoundError`.

```python
from gradlite.loader import DataLoader

loader = DataLoader("images/", 32, True)
print(len(loader), loader.num_classes)
for batch_images, batch_labels in loader:
    ...
```

Images are loaded at 32 × 32 and cached. The loader has these methods and
attributes:

- `next_batch()` returns a list of up to `batch_size` image tensors and a list
  of their labels. Files that fail to load are logged and skipped.
- `has_next_batch()` says whether any samples remain.
- `reset()` starts a new pass, and reshuffles when shuffling is on.
- Iterating over the loader resets it first.
- `samples` lists every image path with its label.

## What gradlite does not do

- **No graph traversal.** Tensors record their graph, but there is no method
  that walks it. You call each `Function.backward` yourself and pass the
  gradients along.
- **No training parts.** gradlite has no layer classes with their own
  parameters, no loss functions, no optimizers and no training command.