"""Owner of the random generator used to fill tensors without explicit values."""

from collections.abc import Iterator
from contextlib import contextmanager

import numpy as np

from autotensor.configuration import ContextConfig
from autotensor.console import report


class Context:
    """Holds the generator behind random fills together with its settings.

    Values are drawn from a uniform distribution over [0, 1). Without a seed
    numpy picks fresh entropy, i.e. an unspecified stream.
    """

    def __init__(self, config: ContextConfig | None = None) -> None:
        """C'tor of Context.

        Args:
            config: settings to use, gin bound defaults if omitted.

        """
        self._config = config if config is not None else ContextConfig()
        self._rng: np.random.Generator = np.random.default_rng(self._config.seed)

    @property
    def verbose(self) -> bool:
        """Whether engine events are reported to the console."""
        return self._config.verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self._config.verbose = value

    @property
    def rng(self) -> np.random.Generator:
        """Exposure of the underlying generator."""
        return self._rng

    def seed(self, value: int) -> None:
        """Restart the generator so subsequent fills are reproducible.

        Args:
            value: the seed of the new stream.

        """
        self._config.seed = value
        self._rng = np.random.default_rng(value)
        report(f"Context reseeded with {value}.", verbose=self.verbose, color="cyan")

    def uniform(self, size: int) -> np.ndarray:
        """Draw `size` values from U[0, 1)."""
        return self._rng.random(size, dtype=np.float64)


_default_context = Context()


def get_context() -> Context:
    """Return the process wide default context."""
    return _default_context


def seed(value: int) -> None:
    """Reseed the default context, see Context.seed."""
    _default_context.seed(value)


@contextmanager
def use_context(context: Context) -> Iterator[Context]:
    """Make `context` the default for the duration of a with block.

    Yields:
        The activated context.

    """
    global _default_context  # noqa: PLW0603
    previous = _default_context
    _default_context = context
    try:
        yield context
    finally:
        _default_context = previous
