import numpy as np
import pytest

from autotensor import Tensor
from autotensor.storage import Storage, validate_shape


def test_total_size_is_product_of_shape():
    storage = Storage.full((2, 3, 4), 1.5)
    assert storage.shape == (2, 3, 4)
    assert storage.total_size == 24
    assert storage.buffer.shape == (24,)
    assert np.all(storage.buffer == 1.5)


@pytest.mark.parametrize("shape", [(), (0,), (3, 0), (-1, 2)])
def test_invalid_shapes_are_rejected(shape):
    with pytest.raises(ValueError):
        validate_shape(shape)


def test_non_integer_dimension_is_rejected():
    with pytest.raises(TypeError):
        validate_shape((2.5, 1))


def test_numpy_integer_dimensions_are_accepted():
    assert validate_shape((np.int64(2), np.int32(3))) == (2, 3)


def test_buffer_size_must_match_shape():
    with pytest.raises(ValueError, match="needs 6 values"):
        Storage((2, 3), np.zeros(5))


def test_flat_index_access():
    tensor = Tensor((2, 2), 0.0)
    tensor[3] = 7.0
    assert tensor[3] == 7.0
    assert tensor.data[1, 1] == 7.0

    with pytest.raises(IndexError):
        _ = tensor[4]
    with pytest.raises(IndexError):
        _ = tensor[-1]


def test_same_shape_needs_rank_and_dims():
    assert Storage.zeros((2, 3)).same_shape(Storage.zeros((2, 3)))
    assert not Storage.zeros((2, 3)).same_shape(Storage.zeros((3, 2)))
    assert not Storage.zeros((6,)).same_shape(Storage.zeros((6, 1)))


def test_copy_is_independent():
    storage = Storage.from_array([1.0, 2.0])
    duplicate = storage.copy()
    duplicate[0] = 9.0
    assert storage[0] == 1.0


def test_scalar_values_become_shape_one():
    assert Storage.from_array(3.0).shape == (1,)


def test_render_vector():
    assert str(Tensor.from_array([1, 2, 3])) == "1-D Tensor: [3]\n[1 2 3]"


def test_render_matrix():
    text = str(Tensor.from_array([[1, 2], [3, 4.5]]))
    assert text == "2-D Tensor: [2 2]\n[[1 2],\n[3 4.5]]"


def test_render_three_dimensions():
    text = str(Tensor.from_array([[[1, 2]], [[3, 4]]]))
    assert text == "3-D Tensor: [2 1 2]\n[[[1 2]],\n[[3 4]]]"


def test_equal_compares_values_and_shape():
    a = Tensor.from_array([1.0, 2.0])
    assert a.equal(Tensor.from_array([1.0, 2.0]))
    assert not a.equal(Tensor.from_array([1.0, 3.0]))
    assert not a.equal(Tensor.from_array([[1.0, 2.0]]))
