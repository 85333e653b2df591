"""Main init organising the repo."""

from .autograd.tensor import Tensor, matmul
from .configuration import ContextConfig, configurable, parse_gin_config
from .context import Context, get_context, seed, use_context
from .errors import (
    InvalidBackwardRootError,
    ShapeMismatchError,
    UninitializedGradientError,
)

__all__ = [
    "Context",
    "ContextConfig",
    "InvalidBackwardRootError",
    "ShapeMismatchError",
    "Tensor",
    "UninitializedGradientError",
    "configurable",
    "get_context",
    "matmul",
    "parse_gin_config",
    "seed",
    "use_context",
]
