"""Flat row-major buffers together with the shape interpreting them."""

import math
import operator

import numpy as np
from pydantic import BaseModel, field_validator


class ShapeSpec(BaseModel):
    """Validates that a shape has rank >= 1 and only positive dimensions."""

    dims: tuple[int, ...]

    @field_validator("dims")
    def dims_checker(cls, v: tuple[int, ...]) -> tuple[int, ...]:  # noqa: N805, needs to cls
        """Check that the dimensions describe a non-empty tensor.

        Raises:
            ValueError: for an empty shape or non-positive dimensions.

        Returns:
            Same tuple as at input.

        """
        if len(v) == 0:
            msg = "A shape needs at least one dimension."
            raise ValueError(msg)

        if any(dim <= 0 for dim in v):
            msg = f"Dimensions need to be positive, got {v}."
            raise ValueError(msg)

        return v


def validate_shape(shape: tuple[int, ...] | list[int]) -> tuple[int, ...]:
    """Return `shape` as validated tuple of ints."""
    return ShapeSpec(dims=tuple(operator.index(dim) for dim in shape)).dims


class Storage:
    """Owns a contiguous float64 buffer and the dimensions laid over it."""

    def __init__(self, shape: tuple[int, ...] | list[int], buffer: np.ndarray) -> None:
        """C'tor of Storage.

        Args:
            shape: dimension sizes, rank >= 1.
            buffer: values in row-major order, flattened if necessary.

        Raises:
            ValueError: when the buffer does not hold exactly prod(shape) values.

        """
        self._shape = validate_shape(shape)
        self._total_size = math.prod(self._shape)
        buffer = np.ascontiguousarray(buffer, dtype=np.float64).reshape(-1)
        if buffer.size != self._total_size:
            msg = f"Shape {self._shape} needs {self._total_size} values, got {buffer.size}."
            raise ValueError(msg)
        self._buffer = buffer

    @classmethod
    def full(cls, shape: tuple[int, ...] | list[int], value: float) -> "Storage":
        """Storage with every element set to `value`."""
        shape = validate_shape(shape)
        return cls(shape, np.full(math.prod(shape), value, dtype=np.float64))

    @classmethod
    def zeros(cls, shape: tuple[int, ...] | list[int]) -> "Storage":
        """Storage filled with zeros."""
        return cls.full(shape, 0.0)

    @classmethod
    def from_array(cls, values: np.ndarray | list | float) -> "Storage":
        """Storage copying `values`, scalars become shape (1,)."""
        array = np.array(values, dtype=np.float64)
        shape = array.shape if array.ndim > 0 else (1,)
        return cls(shape, array)

    @property
    def shape(self) -> tuple[int, ...]:
        """Dimension sizes."""
        return self._shape

    @property
    def total_size(self) -> int:
        """Product of all dimension sizes."""
        return self._total_size

    @property
    def buffer(self) -> np.ndarray:
        """The flat buffer itself, not a copy."""
        return self._buffer

    def as_array(self) -> np.ndarray:
        """View of the buffer reshaped to the shape."""
        return self._buffer.reshape(self._shape)

    def _check_index(self, index: int) -> int:
        if not 0 <= index < self._total_size:
            msg = f"Index {index} is out of range for {self._total_size} elements."
            raise IndexError(msg)
        return index

    def __getitem__(self, index: int) -> float:
        return float(self._buffer[self._check_index(index)])

    def __setitem__(self, index: int, value: float) -> None:
        self._buffer[self._check_index(index)] = value

    def same_shape(self, other: "Storage") -> bool:
        """Whether rank and every dimension match exactly."""
        return self._shape == other.shape

    def copy(self) -> "Storage":
        """Independent storage with the same contents."""
        return Storage(self._shape, self._buffer.copy())

    def fill(self, value: float) -> None:
        """Overwrite every element with `value`."""
        self._buffer.fill(value)

    def render(self) -> str:
        """Render shape and values in nested brackets.

        Returns:
            A header line like `2-D Tensor: [2 3]` followed by the values.

        """
        header = f"{len(self._shape)}-D Tensor: [{' '.join(map(str, self._shape))}]"
        body, _ = self._render_dim(0, 0)
        return f"{header}\n[{body}]"

    def _render_dim(self, dim: int, offset: int) -> tuple[str, int]:
        """Render dimension `dim` starting at flat `offset`.

        Returns:
            The rendered text and the offset after the consumed values.

        """
        if dim == len(self._shape) - 1:
            stop = offset + self._shape[dim]
            values = " ".join(f"{v:g}" for v in self._buffer[offset:stop])
            return values, stop

        parts = []
        for _ in range(self._shape[dim]):
            part, offset = self._render_dim(dim + 1, offset)
            parts.append(f"[{part}]")
        return ",\n".join(parts), offset
