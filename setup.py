"""Installation script with dependencies."""

from setuptools import find_packages, setup

setup(
    name="autotensor",
    version="0.1",
    python_requires=">=3.11",
    packages=find_packages(where="src/python"),
    package_dir={"": "src/python"},
    install_requires=[
        "numpy>=1.26.4",
        "ruff>=0.9.7",
        "tqdm>=4.67.1",
        "pydantic>=2.10.6",
        "gin_config==0.5.0",
        "termcolor>=2.5.0",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
)
