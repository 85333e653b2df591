"""Logic to make the engine configurable through gin."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import gin
import gin.config
from termcolor import colored

T = TypeVar("T")

_BINDING_PATTERN = re.compile(
    r"([A-Za-z0-9_./]+(?:\.[A-Za-z0-9_]+)?)\s*=\s*(.+?)(?:\s*#.*)?$",
    re.MULTILINE,
)


def configurable(cls: T) -> T:
    """Combine gin.configurable and dataclass for configuration.

    Returns:
        A gin configurable dataclass.

    """
    decorated_cls = dataclass(cls)
    return gin.configurable(decorated_cls)


@configurable
class ContextConfig:
    """Settings of a Context, i.e. how random fills behave and how chatty we are."""

    seed: int | None = None
    verbose: bool = False


def _bindings(text: str) -> dict[str, str]:
    """Extract `name = value` pairs from gin formatted text."""
    found = {}
    for match in _BINDING_PATTERN.finditer(text):
        param_path, value = match.groups()
        found[param_path.strip()] = value.strip().rstrip(";").strip()
    return found


def parse_gin_config(config_path: str | Path) -> dict[str, str]:
    """Parse a gin config file and display all parameters in scope with color coding.

    Args:
        config_path: Path to the gin config file

    Returns:
        The explicitly set bindings of the file, empty if the file is missing.

    """
    if isinstance(config_path, str):
        config_path = Path(config_path)

    if not config_path.exists():
        print(colored(f"Error: Config file not found: {config_path}", "red"))
        return {}

    gin.parse_config_file(config_path)

    with config_path.open("r") as f:
        explicit = _bindings(f.read())

    print(colored("╔═══════════════════════════════════════════════", "white"))
    print(colored("║ Gin configuration", "white", attrs=["bold"]))
    print(colored("╠═══════════════════════════════════════════════", "white"))

    print(colored("║ Explicitly Set Parameters:", "yellow", attrs=["bold"]))
    for param_path, value in explicit.items():
        print(f"{colored(f'║ {param_path}', 'green')} = {colored(value, 'cyan')}")

    print(colored("║", "white"))
    print(colored("║ Default/Inherited Parameters:", "yellow", attrs=["bold"]))
    for param_path, value in _bindings(gin.config_str()).items():
        if param_path in explicit:
            continue
        print(f"{colored(f'║ {param_path}', 'blue')} = {colored(value, 'magenta')}")

    print(colored("╚═══════════════════════════════════════════════", "white"))

    return explicit
