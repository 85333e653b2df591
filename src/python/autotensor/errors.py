"""Errors raised by the tensor engine.

Shape problems and misuse of the backward pass fail loudly instead of
producing zero filled results, so nobody keeps training on garbage.
"""


class ShapeMismatchError(ValueError):
    """Raised when operands need identical shapes but do not have them."""

    def __init__(
        self,
        operation: str,
        left: tuple[int, ...],
        right: tuple[int, ...],
    ) -> None:
        """C'tor of ShapeMismatchError.

        Args:
            operation: name of the operation which was attempted.
            left: shape of the left operand.
            right: shape of the right operand.

        """
        msg = f"Shapes {left} and {right} are incompatible for '{operation}'."
        super().__init__(msg)
        self.operation = operation
        self.left = left
        self.right = right


class InvalidBackwardRootError(RuntimeError):
    """Raised when backward() is called on a tensor that cannot seed it."""

    def __init__(self, shape: tuple[int, ...], *, requires_grad: bool) -> None:
        """C'tor of InvalidBackwardRootError.

        Args:
            shape: shape of the tensor backward() was called on.
            requires_grad: whether that tensor tracks gradients.

        """
        if requires_grad:
            msg = f"backward() needs a scalar tensor of shape (1,), got {shape}."
        else:
            msg = "backward() was called on a tensor that does not require grad."
        super().__init__(msg)
        self.shape = shape


class UninitializedGradientError(RuntimeError):
    """Raised when a gradient is read before any backward pass wrote to it."""
