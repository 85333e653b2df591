"""Fit a linear regression with the autograd engine."""  # noqa: INP001

import argparse
from pathlib import Path

import numpy as np
from termcolor import colored
from tqdm.auto import tqdm

import autotensor
from autotensor import Context, ContextConfig, Tensor
from autotensor.autograd.initialisation import xavier_uniform
from autotensor.autograd.loss import mse_loss
from autotensor.autograd.optimizer import SGD


@autotensor.configurable
class LinearRegressionConfig:
    """Configurable training unit for the linear regression."""

    samples: int = 128
    features: int = 3
    noise: float = 0.01
    learning_rate: float = 0.05
    epochs: int = 2000
    log_frequency: int = 250


def synthetic_data(
    config: LinearRegressionConfig,
    context: Context,
) -> tuple[Tensor, Tensor, np.ndarray]:
    """Draw X and y = X @ w + 0.5 + noise from the context stream.

    Returns:
        Inputs, targets and the true weights.

    """
    inputs = Tensor((config.samples, config.features), context=context)
    true_weights = context.uniform(config.features) * 2 - 1
    noise = (context.uniform(config.samples) - 0.5) * config.noise
    targets = inputs.data @ true_weights + 0.5 + noise
    return inputs, Tensor.from_array(targets.reshape(-1, 1)), true_weights


def train(config: LinearRegressionConfig, context: Context) -> list[float]:
    """Run gradient descent and return the loss history."""
    inputs, targets, true_weights = synthetic_data(config, context)
    weights, bias = xavier_uniform(config.features, 1, context=context)
    optimizer = SGD([weights, bias], lr=config.learning_rate)

    history = []
    progress = tqdm(range(config.epochs), desc="Training linear regression")
    for epoch in progress:
        loss = mse_loss(inputs @ weights + bias, targets)
        loss.backward()
        optimizer.step()
        optimizer.zero_grad()

        history.append(loss.item())
        if epoch % config.log_frequency == 0 or epoch == config.epochs - 1:
            progress.set_postfix(loss=f"{loss.item():.6f}")

    print(colored(f"True weights: {np.round(true_weights, 4)}", "green"))
    print(colored(f"Fitted weights: {np.round(weights.data.ravel(), 4)}", "cyan"))
    print(colored(f"Fitted bias: {bias.item():.4f}", "cyan"))
    return history


def main() -> None:
    """Parse arguments and the gin config, then train."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(__file__).parent / "linear_regression.gin",
        help="gin file binding LinearRegressionConfig and ContextConfig.",
    )
    args = parser.parse_args()

    autotensor.parse_gin_config(args.config)
    train(LinearRegressionConfig(), Context(ContextConfig()))


if __name__ == "__main__":
    main()
