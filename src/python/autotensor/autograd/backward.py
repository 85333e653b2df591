"""Backward pass machinery: step records, derivative rules and graph ordering.

Every tracked result of a forward operation carries a BackwardStep, i.e. the
kind of operation, its operands and the scalar constants it captured. A single
dispatcher looks up the derivative rule for the kind and accumulates the
contributions into the operands' gradient buffers, using the current gradient
of the result as upstream signal.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

import numpy as np

from autotensor.autograd import matmul
from autotensor.storage import Storage


class GraphNode(Protocol):
    """What the backward machinery needs to know about a tensor."""

    @property
    def requires_grad(self) -> bool: ...

    @property
    def storage(self) -> Storage: ...

    @property
    def grad_storage(self) -> Storage | None: ...

    @property
    def prev(self) -> tuple["GraphNode", ...]: ...

    @property
    def backward_step(self) -> "BackwardStep | None": ...

    def accumulate_grad(self, contribution: np.ndarray) -> None: ...


class OpKind(Enum):
    """Forward operations which know how to propagate gradients."""

    ADD = auto()
    MUL = auto()
    SCALAR_ADD = auto()
    SCALAR_SUB = auto()
    SCALAR_RSUB = auto()
    SCALAR_MUL = auto()
    SCALAR_DIV = auto()
    SCALAR_RDIV = auto()
    POW = auto()
    SUM = auto()
    MEAN = auto()
    MIN = auto()
    MAX = auto()
    MATMUL = auto()

    @property
    def tag(self) -> str:
        """Short label stored on the produced tensor."""
        return _TAGS[self]


_TAGS = {
    OpKind.ADD: "+",
    OpKind.MUL: "*",
    OpKind.SCALAR_ADD: "+",
    OpKind.SCALAR_SUB: "-",
    OpKind.SCALAR_RSUB: "-",
    OpKind.SCALAR_MUL: "*",
    OpKind.SCALAR_DIV: "/",
    OpKind.SCALAR_RDIV: "/",
    OpKind.POW: "pow",
    OpKind.SUM: "sum",
    OpKind.MEAN: "mean",
    OpKind.MIN: "min",
    OpKind.MAX: "max",
    OpKind.MATMUL: matmul.OPERATION,
}


@dataclass(frozen=True)
class BackwardStep:
    """Record of how a tensor was produced.

    Attributes:
        kind: the forward operation.
        operands: tensors the operation consumed, in operand order.
        constant: scalar operand, exponent or extremum index, if any.

    """

    kind: OpKind
    operands: tuple[GraphNode, ...]
    constant: float = 0.0


Rule = Callable[[BackwardStep, np.ndarray], None]

_RULES: dict[OpKind, Rule] = {}


def _rule(*kinds: OpKind) -> Callable[[Rule], Rule]:
    def _register(func: Rule) -> Rule:
        for kind in kinds:
            _RULES[kind] = func
        return func

    return _register


def _accumulate(operand: GraphNode, contribution: np.ndarray) -> None:
    """Add `contribution` to the gradient of `operand` if it is tracked.

    A (1,) operand paired with a larger tensor acted as scalar, so it
    receives the sum of the element-wise contributions.
    """
    if not operand.requires_grad:
        return

    if contribution.size != operand.storage.total_size:
        contribution = np.array([contribution.sum()])

    operand.accumulate_grad(contribution)


@_rule(OpKind.ADD)
def _add(step: BackwardStep, upstream: np.ndarray) -> None:
    for operand in step.operands:
        _accumulate(operand, upstream)


@_rule(OpKind.MUL)
def _mul(step: BackwardStep, upstream: np.ndarray) -> None:
    left, right = step.operands
    _accumulate(left, upstream * right.storage.buffer)
    _accumulate(right, upstream * left.storage.buffer)


@_rule(OpKind.SCALAR_ADD, OpKind.SCALAR_SUB)
def _shift(step: BackwardStep, upstream: np.ndarray) -> None:
    _accumulate(step.operands[0], upstream)


@_rule(OpKind.SCALAR_RSUB)
def _reversed_sub(step: BackwardStep, upstream: np.ndarray) -> None:
    # d/dx (c - x) = -1
    _accumulate(step.operands[0], -upstream)


@_rule(OpKind.SCALAR_MUL)
def _scale(step: BackwardStep, upstream: np.ndarray) -> None:
    _accumulate(step.operands[0], upstream * step.constant)


@_rule(OpKind.SCALAR_DIV)
def _div(step: BackwardStep, upstream: np.ndarray) -> None:
    _accumulate(step.operands[0], upstream / step.constant)


@_rule(OpKind.SCALAR_RDIV)
def _reversed_div(step: BackwardStep, upstream: np.ndarray) -> None:
    # d/dx (c / x) = -c / x^2
    x = step.operands[0].storage.buffer
    _accumulate(step.operands[0], upstream * (-step.constant / x**2))


@_rule(OpKind.POW)
def _pow(step: BackwardStep, upstream: np.ndarray) -> None:
    x = step.operands[0].storage.buffer
    exponent = step.constant
    _accumulate(step.operands[0], upstream * exponent * x ** (exponent - 1))


@_rule(OpKind.SUM)
def _sum(step: BackwardStep, upstream: np.ndarray) -> None:
    operand = step.operands[0]
    _accumulate(operand, np.full(operand.storage.total_size, upstream[0]))


@_rule(OpKind.MEAN)
def _mean(step: BackwardStep, upstream: np.ndarray) -> None:
    operand = step.operands[0]
    size = operand.storage.total_size
    _accumulate(operand, np.full(size, upstream[0] / size))


@_rule(OpKind.MIN, OpKind.MAX)
def _extremum(step: BackwardStep, upstream: np.ndarray) -> None:
    operand = step.operands[0]
    contribution = np.zeros(operand.storage.total_size)
    contribution[int(step.constant)] = upstream[0]
    _accumulate(operand, contribution)


@_rule(OpKind.MATMUL)
def _matmul(step: BackwardStep, upstream: np.ndarray) -> None:
    left, right = step.operands
    grad = Storage(_result_shape(step), upstream)
    left_grad = _track(left, left.storage.shape)
    right_grad = _track(right, right.storage.shape)

    matmul.backward(grad, left.storage, right.storage, left_grad, right_grad)

    if left_grad is not None:
        left.accumulate_grad(left_grad.buffer)
    if right_grad is not None:
        right.accumulate_grad(right_grad.buffer)


def _result_shape(step: BackwardStep) -> tuple[int, ...]:
    left, right = step.operands
    return matmul.result_shape(left.storage.shape, right.storage.shape)


def _track(operand: GraphNode, shape: tuple[int, ...]) -> Storage | None:
    """Scratch buffer collecting the matmul contribution of a tracked operand."""
    return Storage.zeros(shape) if operand.requires_grad else None


def propagate(node: GraphNode) -> None:
    """Run the derivative rule recorded on `node`, if there is one."""
    step = node.backward_step
    if step is None:
        return

    _RULES[step.kind](step, node.grad_storage.buffer)


def topological_order(root: GraphNode) -> list[GraphNode]:
    """Order the graph below `root` so every node follows its operands.

    The traversal is an iterative depth first search, nodes are identified by
    object identity and appended once all their operands are.

    Returns:
        The nodes in post-order, `root` being the last entry.

    """
    order: list[GraphNode] = []
    visited: set[int] = set()
    stack: list[tuple[GraphNode, bool]] = [(root, False)]

    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue

        if id(node) in visited:
            continue

        visited.add(id(node))
        stack.append((node, True))
        stack.extend(
            (operand, False)
            for operand in reversed(node.prev)
            if id(operand) not in visited
        )

    return order
