"""Functionality used to initialise parameters with specific statistical properties."""

import math

from autotensor.autograd.tensor import Tensor
from autotensor.context import Context, get_context


def uniform(
    shape: tuple[int, ...],
    low: float = 0.0,
    high: float = 1.0,
    *,
    requires_grad: bool = True,
    context: Context | None = None,
) -> Tensor:
    """Tensor with elements drawn from U[low, high).

    The draws come from the context stream, so seeding the context makes
    the result reproducible.

    Returns:
        The new leaf tensor.

    """
    tensor = Tensor(shape, requires_grad=requires_grad, context=context)
    tensor.data[...] = low + (high - low) * tensor.data
    return tensor


def xavier_uniform(
    fan_in: int,
    fan_out: int,
    gain: float = 1,
    *,
    context: Context | None = None,
) -> tuple[Tensor, Tensor]:
    """Initialize the weights using the Xavier Uniform.

    Details can be found in  https://proceedings.mlr.press/v9/glorot10a/glorot10a.pdf.

    Args:
        fan_in: the amount of input neurons.
        fan_out: the amout of output neurons.
        gain: optional factor which can also be applied in PyTorch.
        context: source of the random stream, the default context if omitted.

    Returns:
        A tuple containing the tracked weights of shape (fan_in, fan_out) and
        a tracked zero bias of shape (1,).

    """
    context = context if context is not None else get_context()
    limit = gain * math.sqrt(6 / (fan_in + fan_out))
    weights = uniform((fan_in, fan_out), -limit, limit, context=context)
    bias = Tensor((1,), 0.0, requires_grad=True)

    return weights, bias
