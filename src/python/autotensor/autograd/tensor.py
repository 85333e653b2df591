"""Tensor object to use for computations like forward/backward pass."""

import math
from numbers import Real

import numpy as np

from autotensor.autograd import matmul as matmul_kernels
from autotensor.autograd.backward import (
    BackwardStep,
    OpKind,
    propagate,
    topological_order,
)
from autotensor.console import report
from autotensor.context import Context, get_context
from autotensor.errors import (
    InvalidBackwardRootError,
    ShapeMismatchError,
    UninitializedGradientError,
)
from autotensor.storage import Storage, validate_shape

SCALAR_SHAPE = (1,)


class Tensor:
    """Resembles a data structure to carry the data, gradients and topology.

    Tensors are graph nodes by identity: two tensors holding equal values are
    still distinct nodes. Use `equal` to compare contents.
    """

    def __init__(
        self,
        shape: tuple[int, ...] | list[int],
        fill: float | None = None,
        *,
        requires_grad: bool = False,
        context: Context | None = None,
    ) -> None:
        """C'tor of Tensor.

        Args:
            shape: dimension sizes, rank >= 1 and positive.
            fill: value of every element. Without it the elements are drawn
                from U[0, 1) of the context.
            requires_grad: whether we want to store gradients infomation.
            context: source of random fills, the default context if omitted.

        """
        if fill is None:
            context = context if context is not None else get_context()
            shape = validate_shape(shape)
            storage = Storage(shape, context.uniform(math.prod(shape)))
        else:
            storage = Storage.full(shape, fill)

        self._setup(storage, requires_grad=requires_grad)

    def _setup(self, storage: Storage, *, requires_grad: bool) -> None:
        self._storage = storage
        self._requires_grad = requires_grad
        self._grad: Tensor | None = (
            Tensor._wrap(Storage.zeros(storage.shape)) if requires_grad else None
        )
        self._is_grad_init = False
        self._operation = ""
        self._prev: tuple[Tensor, ...] = ()
        self._backward_step: BackwardStep | None = None

    @classmethod
    def _wrap(cls, storage: Storage, *, requires_grad: bool = False) -> "Tensor":
        """Tensor around an existing storage, no copy involved."""
        tensor = cls.__new__(cls)
        tensor._setup(storage, requires_grad=requires_grad)
        return tensor

    @classmethod
    def from_array(
        cls,
        values: np.ndarray | list | float,
        *,
        requires_grad: bool = False,
    ) -> "Tensor":
        """Create a tensor holding a copy of known values.

        Args:
            values: nested sequence or array, a plain number becomes shape (1,).
            requires_grad: whether we want to store gradients infomation.

        Returns:
            The new leaf tensor.

        """
        return cls._wrap(Storage.from_array(values), requires_grad=requires_grad)

    @property
    def data(self) -> np.ndarray:
        """Exposure of internal data, reshaped view of the flat buffer."""
        return self._storage.as_array()

    @property
    def storage(self) -> Storage:
        """The flat buffer and its shape."""
        return self._storage

    @property
    def shape(self) -> tuple[int, ...]:
        """Shape of the underlying buffer."""
        return self._storage.shape

    @property
    def total_size(self) -> int:
        """Number of elements."""
        return self._storage.total_size

    @property
    def requires_grad(self) -> bool:
        """Read only property of whether the Tensor requires a grad."""
        return self._requires_grad

    @property
    def is_grad_init(self) -> bool:
        """Whether a backward pass wrote into the gradient since the last reset."""
        return self._is_grad_init

    @property
    def grad(self) -> "Tensor | None":
        """Return the gradients.

        Raises:
            UninitializedGradientError: if no backward pass reached this tensor
                since construction or the last reset.

        """
        if self._grad is None:
            return None

        if not self._is_grad_init:
            msg = "Gradient was not written by any backward pass yet."
            raise UninitializedGradientError(msg)

        return self._grad

    @property
    def grad_storage(self) -> Storage | None:
        """Raw gradient buffer, regardless of whether it was written."""
        return None if self._grad is None else self._grad.storage

    @property
    def operation(self) -> str:
        """Tag of the operation which produced this tensor, empty for leaves."""
        return self._operation

    @property
    def prev(self) -> tuple["Tensor", ...]:
        """Return the previous nodes."""
        return self._prev

    @property
    def backward_step(self) -> BackwardStep | None:
        """How gradients flow to the previous nodes."""
        return self._backward_step

    def register_backward(self, step: BackwardStep) -> None:
        """Register the step record to compute backward pass."""
        self._operation = step.kind.tag
        self._prev = tuple({id(t): t for t in step.operands}.values())
        self._backward_step = step

    def accumulate_grad(self, contribution: np.ndarray) -> None:
        """Add `contribution` to the gradient buffer and mark it as written."""
        self._grad.storage.buffer[:] += contribution
        self._is_grad_init = True

    def reset_grad(self) -> None:
        """Zero the gradient buffer between optimisation steps."""
        if self._grad is None:
            return
        self._grad.storage.fill(0.0)
        self._is_grad_init = False

    def backward(self) -> None:
        """Compute the backward pass using topological sort.

        Raises:
            InvalidBackwardRootError: for untracked or non-scalar tensors.

        """
        if not self._requires_grad or self.shape != SCALAR_SHAPE:
            raise InvalidBackwardRootError(
                self.shape,
                requires_grad=self._requires_grad,
            )

        # d loss / d loss
        self._grad.storage.fill(1.0)
        self._is_grad_init = True

        topo = topological_order(self)
        report(
            f"Backward pass through {len(topo)} nodes.",
            verbose=get_context().verbose,
            color="yellow",
        )

        for node in reversed(topo):
            propagate(node)

    def _produce(
        self,
        storage: Storage,
        kind: OpKind,
        operands: tuple["Tensor", ...],
        constant: float = 0.0,
    ) -> "Tensor":
        """Wrap a forward result and attach graph bookkeeping if needed."""
        result = Tensor._wrap(
            storage,
            requires_grad=any(t.requires_grad for t in operands),
        )
        if result.requires_grad:
            result.register_backward(BackwardStep(kind, operands, constant))
        return result

    def _elementwise(self, other: "Tensor", kind: OpKind) -> "Tensor":
        """Combine two tensors of equal shape, a (1,) tensor acts as scalar.

        Raises:
            ShapeMismatchError: for any other pair of shapes.

        """
        if self.shape == other.shape or other.shape == SCALAR_SHAPE:
            shape = self.shape
        elif self.shape == SCALAR_SHAPE:
            shape = other.shape
        else:
            raise ShapeMismatchError(kind.tag, self.shape, other.shape)

        a, b = self._storage.buffer, other.storage.buffer
        values = a + b if kind is OpKind.ADD else a * b
        return self._produce(Storage(shape, values), kind, (self, other))

    def _scalar(self, values: np.ndarray, kind: OpKind, number: float) -> "Tensor":
        return self._produce(Storage(self.shape, values), kind, (self,), number)

    def __add__(self, other: "Tensor | float") -> "Tensor":
        """Overloading for addition operation.

        Returns:
            A newly created Tensor after addition.

        """
        if isinstance(other, Tensor):
            return self._elementwise(other, OpKind.ADD)
        if isinstance(other, Real):
            return self._scalar(self._storage.buffer + other, OpKind.SCALAR_ADD, other)
        return NotImplemented

    def __radd__(self, other: float) -> "Tensor":
        return self.__add__(other)

    def __sub__(self, other: "Tensor | float") -> "Tensor":
        """Subtraction, for tensors expressed as self + (-1 * other)."""
        if isinstance(other, Tensor):
            return self + (-1.0 * other)
        if isinstance(other, Real):
            return self._scalar(self._storage.buffer - other, OpKind.SCALAR_SUB, other)
        return NotImplemented

    def __rsub__(self, other: float) -> "Tensor":
        if isinstance(other, Real):
            return self._scalar(other - self._storage.buffer, OpKind.SCALAR_RSUB, other)
        return NotImplemented

    def __mul__(self, other: "Tensor | float") -> "Tensor":
        """Overloading for element-wise multiplication.

        Returns:
            A newly created Tensor after multiplication.

        """
        if isinstance(other, Tensor):
            return self._elementwise(other, OpKind.MUL)
        if isinstance(other, Real):
            return self._scalar(self._storage.buffer * other, OpKind.SCALAR_MUL, other)
        return NotImplemented

    def __rmul__(self, other: float) -> "Tensor":
        return self.__mul__(other)

    def __truediv__(self, other: "Tensor | float") -> "Tensor":
        """Division, for tensors expressed as self * (1 / other)."""
        if isinstance(other, Tensor):
            return self * (1.0 / other)
        if isinstance(other, Real):
            return self._scalar(self._storage.buffer / other, OpKind.SCALAR_DIV, other)
        return NotImplemented

    def __rtruediv__(self, other: float) -> "Tensor":
        if isinstance(other, Real):
            return self._scalar(other / self._storage.buffer, OpKind.SCALAR_RDIV, other)
        return NotImplemented

    def __neg__(self) -> "Tensor":
        return -1.0 * self

    def pow(self, exponent: float) -> "Tensor":
        """Raise every element to `exponent`."""
        return self._scalar(self._storage.buffer**exponent, OpKind.POW, exponent)

    def __pow__(self, exponent: float) -> "Tensor":
        if isinstance(exponent, Real):
            return self.pow(exponent)
        return NotImplemented

    def matmul(self, other: "Tensor") -> "Tensor":
        """Batched matrix multiplication, see `matmul`."""
        return matmul(self, other)

    def __matmul__(self, other: "Tensor") -> "Tensor":
        if isinstance(other, Tensor):
            return matmul(self, other)
        return NotImplemented

    def _reduce(self, value: float, kind: OpKind, index: int = 0) -> "Tensor":
        return self._produce(Storage(SCALAR_SHAPE, [value]), kind, (self,), index)

    def sum(self) -> "Tensor":
        """Sum of all elements as (1,) tensor."""
        return self._reduce(float(self._storage.buffer.sum()), OpKind.SUM)

    def mean(self) -> "Tensor":
        """Mean of all elements as (1,) tensor."""
        return self._reduce(float(self._storage.buffer.mean()), OpKind.MEAN)

    def min(self) -> "Tensor":
        """Smallest element, gradients flow to its first occurrence."""
        index = int(np.argmin(self._storage.buffer))
        return self._reduce(self._storage[index], OpKind.MIN, index)

    def max(self) -> "Tensor":
        """Largest element, gradients flow to its first occurrence."""
        index = int(np.argmax(self._storage.buffer))
        return self._reduce(self._storage[index], OpKind.MAX, index)

    def item(self) -> float:
        """Value of a (1,) tensor as Python float."""
        if self.shape != SCALAR_SHAPE:
            msg = f"Only tensors of shape (1,) convert to float, got {self.shape}."
            raise ValueError(msg)
        return self._storage[0]

    def equal(self, other: "Tensor") -> bool:
        """Whether shapes and all values coincide."""
        return self._storage.same_shape(other.storage) and bool(
            np.array_equal(self._storage.buffer, other.storage.buffer),
        )

    def __getitem__(self, index: int) -> float:
        return self._storage[index]

    def __setitem__(self, index: int, value: float) -> None:
        self._storage[index] = value

    def __str__(self) -> str:
        return self._storage.render()

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self.shape}, requires_grad={self._requires_grad}, "
            f"operation='{self._operation}')"
        )


def matmul(left: Tensor, right: Tensor) -> Tensor:
    """Multiply matching 2-D slices of two tensors of equal rank.

    Rank 1 operands yield their dot product, for higher ranks the leading
    dimensions are batch dimensions which have to match.

    Args:
        left: tensor of shape (..., m, n) or (n,).
        right: tensor of shape (..., n, k) or (n,).

    Returns:
        Tensor of shape (..., m, k), (1,) for vectors.

    """
    storage = matmul_kernels.forward(left.storage, right.storage)
    return left._produce(storage, OpKind.MATMUL, (left, right))  # noqa: SLF001
