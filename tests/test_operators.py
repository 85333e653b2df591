import numpy as np
import pytest

from autotensor import ShapeMismatchError, Tensor


def test_untracked_operands_produce_plain_values():
    a = Tensor.from_array([1.0, 2.0])
    b = Tensor.from_array([3.0, 4.0])
    c = a * b

    np.testing.assert_array_equal(c.data, [3.0, 8.0])
    assert not c.requires_grad
    assert c.grad is None
    assert c.prev == ()
    assert c.backward_step is None
    assert c.operation == ""


def test_requires_grad_is_or_of_operands(leaf):
    a = leaf([1.0, 2.0])
    b = leaf([3.0, 4.0], requires_grad=False)

    c = a + b
    assert c.requires_grad
    assert c.operation == "+"
    assert c.prev == (a, b)


def test_shape_mismatch_is_raised(leaf):
    a = leaf([1.0, 2.0])
    b = leaf([1.0, 2.0, 3.0])

    with pytest.raises(ShapeMismatchError) as info:
        _ = a + b
    assert info.value.left == (2,)
    assert info.value.right == (3,)

    with pytest.raises(ShapeMismatchError):
        _ = a * Tensor.from_array([[1.0, 2.0]])


def test_add_and_multiply_gradients(leaf):
    a = leaf([1.0, 2.0, 3.0])
    b = leaf([4.0, 5.0, 6.0])

    (a * b + a).sum().backward()

    np.testing.assert_allclose(a.grad.data, [5.0, 6.0, 7.0])
    np.testing.assert_allclose(b.grad.data, [1.0, 2.0, 3.0])


def test_subtraction_is_composed_from_negation(leaf):
    a = leaf([5.0, 7.0])
    b = leaf([2.0, 3.0])
    c = a - b

    np.testing.assert_allclose(c.data, [3.0, 4.0])
    assert c.operation == "+"
    negated = c.prev[1]
    assert negated.operation == "*"
    assert negated.prev == (b,)

    c.sum().backward()
    np.testing.assert_allclose(a.grad.data, [1.0, 1.0])
    np.testing.assert_allclose(b.grad.data, [-1.0, -1.0])


def test_division_is_composed_from_inversion(leaf):
    a = leaf([1.0, 4.0])
    b = leaf([2.0, 8.0])
    c = a / b

    np.testing.assert_allclose(c.data, [0.5, 0.5])
    assert c.operation == "*"
    assert c.prev[1].operation == "/"

    c.sum().backward()
    np.testing.assert_allclose(a.grad.data, [0.5, 0.125])
    np.testing.assert_allclose(b.grad.data, [-0.25, -1.0 / 16.0])


def test_add_then_subtract_reproduces_input(context):
    a = Tensor((3, 4))
    b = Tensor((3, 4))
    np.testing.assert_allclose((a + b - b).data, a.data, atol=1e-12)


def test_divide_then_multiply_reproduces_input(context):
    a = Tensor((3, 4))
    b = Tensor((3, 4)) + 0.5
    np.testing.assert_allclose((a / b * b).data, a.data, rtol=1e-12)


@pytest.mark.parametrize(
    ("func", "values", "gradient"),
    [
        (lambda x: x + 2.0, [4.0, 6.0], [1.0, 1.0]),
        (lambda x: 2.0 + x, [4.0, 6.0], [1.0, 1.0]),
        (lambda x: x - 2.0, [0.0, 2.0], [1.0, 1.0]),
        (lambda x: 2.0 - x, [0.0, -2.0], [-1.0, -1.0]),
        (lambda x: x * 3.0, [6.0, 12.0], [3.0, 3.0]),
        (lambda x: 3.0 * x, [6.0, 12.0], [3.0, 3.0]),
        (lambda x: x / 2.0, [1.0, 2.0], [0.5, 0.5]),
        (lambda x: 8.0 / x, [4.0, 2.0], [-2.0, -0.5]),
        (lambda x: x**3, [8.0, 64.0], [12.0, 48.0]),
        (lambda x: -x, [-2.0, -4.0], [-1.0, -1.0]),
    ],
)
def test_scalar_operations(leaf, func, values, gradient):
    x = leaf([2.0, 4.0])
    y = func(x)

    np.testing.assert_allclose(y.data, values)
    y.sum().backward()
    np.testing.assert_allclose(x.grad.data, gradient)


def test_scalar_first_operations_keep_operand_order():
    x = Tensor.from_array([4.0])
    assert (10.0 - x).item() == 6.0
    assert (10.0 / x).item() == 2.5


def test_shape_one_tensor_acts_as_scalar(leaf):
    x = leaf([1.0, 2.0, 3.0])
    s = leaf([2.0])

    y = x * s + s
    np.testing.assert_allclose(y.data, [4.0, 6.0, 8.0])
    assert y.shape == (3,)

    y.sum().backward()
    np.testing.assert_allclose(x.grad.data, [2.0, 2.0, 2.0])
    # d/ds sum(x * s + s) = sum(x) + 3
    np.testing.assert_allclose(s.grad.data, [9.0])


def test_scalar_tensor_on_the_left(leaf):
    s = leaf([3.0])
    x = leaf([[1.0, 2.0], [3.0, 4.0]])

    y = s - x
    assert y.shape == (2, 2)
    y.sum().backward()
    np.testing.assert_allclose(s.grad.data, [4.0])
    np.testing.assert_allclose(x.grad.data, -np.ones((2, 2)))


def test_unsupported_operand_type():
    with pytest.raises(TypeError):
        _ = Tensor.from_array([1.0]) + "a"


def test_finite_difference_gradient_check(context):
    x = Tensor((4, 3), requires_grad=True)
    target = Tensor((4, 3))

    def f(values: np.ndarray) -> float:
        probe = Tensor.from_array(values)
        return ((probe - target) ** 2).mean().item()

    ((x - target) ** 2).mean().backward()

    eps = 1e-6
    numeric = np.zeros(x.shape)
    for index in np.ndindex(x.shape):
        up, down = x.data.copy(), x.data.copy()
        up[index] += eps
        down[index] -= eps
        numeric[index] = (f(up) - f(down)) / (2 * eps)

    np.testing.assert_allclose(x.grad.data, numeric, atol=1e-4)
