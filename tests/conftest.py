import numpy as np
import pytest

from autotensor import Context, ContextConfig, Tensor, use_context


@pytest.fixture
def context():
    """A seeded context installed as default for the test."""
    ctx = Context(ContextConfig(seed=1234))
    with use_context(ctx):
        yield ctx


@pytest.fixture
def leaf():
    """Factory for tracked leaves holding known values."""

    def _make(values, requires_grad=True):
        return Tensor.from_array(np.asarray(values, dtype=np.float64), requires_grad=requires_grad)

    return _make
