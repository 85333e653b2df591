"""Contains units which are used for optimising the networks."""

from autotensor.autograd.tensor import Tensor
from autotensor.console import report
from autotensor.context import get_context


class SGD:
    """Implements the Stochastic Gradient Descent."""

    def __init__(self, parameters: list[Tensor], lr: float = 0.01) -> None:
        """Initialize SGD optimizer.

        Raises:
            ValueError: for parameters which do not track gradients.

        """
        for param in parameters:
            if not param.requires_grad:
                msg = f"SGD can only update tensors requiring grad, got {param!r}."
                raise ValueError(msg)

        self.parameters = parameters
        self.lr = lr

    def step(self) -> None:
        """Execute an optimisation step on every parameter with a written gradient."""
        skipped = 0
        for param in self.parameters:
            if not param.is_grad_init:
                skipped += 1
                continue

            # In place, so the parameter stays the same graph leaf.
            param.data[...] -= self.lr * param.grad.data

        if skipped:
            report(
                f"SGD skipped {skipped} parameters without gradient.",
                verbose=get_context().verbose,
                color="red",
            )

    def zero_grad(self) -> None:
        """Reset gradients to zero."""
        for param in self.parameters:
            param.reset_grad()
