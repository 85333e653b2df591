"""Batched matrix multiplication on flat row-major storages.

Leading dimensions are batch dimensions. They are walked recursively until
only the trailing row/column pair is left, the flat offset of that 2-D slice
is derived from the batch indices and the slice pair is multiplied.
"""

import math
from collections.abc import Iterator

import numpy as np

from autotensor.errors import ShapeMismatchError
from autotensor.storage import Storage

OPERATION = "matmul"


def result_shape(left: tuple[int, ...], right: tuple[int, ...]) -> tuple[int, ...]:
    """Shape of `left @ right`.

    Raises:
        ShapeMismatchError: for differing ranks, batch dimensions or inner sizes.

    Returns:
        (1,) for vectors, otherwise batch + (rows of left, columns of right).

    """
    if len(left) != len(right):
        raise ShapeMismatchError(OPERATION, left, right)

    if len(left) == 1:
        if left != right:
            raise ShapeMismatchError(OPERATION, left, right)
        return (1,)

    if left[:-2] != right[:-2] or left[-1] != right[-2]:
        raise ShapeMismatchError(OPERATION, left, right)

    return (*left[:-2], left[-2], right[-1])


def memory_offset(indexes: tuple[int, ...], shape: tuple[int, ...]) -> int:
    """Flat offset of the slice addressed by the batch `indexes` within `shape`.

    Every index is weighted by the product of all dimensions to its right.
    """
    return sum(
        index * math.prod(shape[dim + 1 :]) for dim, index in enumerate(indexes)
    )


def batch_indexes(
    batch_shape: tuple[int, ...],
    prefix: tuple[int, ...] = (),
) -> Iterator[tuple[int, ...]]:
    """Yield every batch index tuple in row-major order.

    Yields:
        Tuples of length len(batch_shape), the empty tuple for plain matrices.

    """
    dim = len(prefix)
    if dim == len(batch_shape):
        yield prefix
        return

    for index in range(batch_shape[dim]):
        yield from batch_indexes(batch_shape, (*prefix, index))


def _matrix(storage: Storage, indexes: tuple[int, ...]) -> np.ndarray:
    """Writable 2-D view of the slice at batch `indexes`."""
    rows, cols = storage.shape[-2:]
    start = memory_offset(indexes, storage.shape)
    return storage.buffer[start : start + rows * cols].reshape(rows, cols)


def forward(left: Storage, right: Storage) -> Storage:
    """Compute `left @ right`.

    Returns:
        A new storage holding the product.

    """
    shape = result_shape(left.shape, right.shape)
    result = Storage.zeros(shape)

    if len(left.shape) == 1:
        result[0] = float(np.dot(left.buffer, right.buffer))
        return result

    for indexes in batch_indexes(shape[:-2]):
        np.matmul(
            _matrix(left, indexes),
            _matrix(right, indexes),
            out=_matrix(result, indexes),
        )
    return result


def backward(
    grad: Storage,
    left: Storage,
    right: Storage,
    left_grad: Storage | None,
    right_grad: Storage | None,
) -> None:
    """Accumulate dL/dleft = dR @ right^T and dL/dright = left^T @ dR per slice.

    Args:
        grad: upstream gradient with the shape of the product.
        left: left operand of the forward pass.
        right: right operand of the forward pass.
        left_grad: gradient buffer of left, None if left is not tracked.
        right_grad: gradient buffer of right, None if right is not tracked.

    """
    if len(left.shape) == 1:
        upstream = grad[0]
        if left_grad is not None:
            left_grad.buffer[:] += upstream * right.buffer
        if right_grad is not None:
            right_grad.buffer[:] += upstream * left.buffer
        return

    for indexes in batch_indexes(grad.shape[:-2]):
        d_result = _matrix(grad, indexes)
        a = _matrix(left, indexes)
        b = _matrix(right, indexes)
        if left_grad is not None:
            _matrix(left_grad, indexes)[...] += d_result @ b.T
        if right_grad is not None:
            _matrix(right_grad, indexes)[...] += a.T @ d_result
