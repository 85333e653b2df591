"""Implements loss functions."""

from autotensor.autograd.tensor import Tensor


def mse_loss(predictions: Tensor, targets: Tensor) -> Tensor:
    """Mean squared error between predictions and targets.

    Args:
        predictions: model outputs.
        targets: expected values of the same shape.

    Returns:
        Loss value as (1,) Tensor with gradient connections preserved.

    """
    return ((targets - predictions) ** 2).mean()
