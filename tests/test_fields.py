from stable_fluids.grid import BORDER, ScalarField, VectorField, padded_shape

import numpy as np
import pytest


def test_padded_shape_adds_one_border_cell_per_side():
    assert padded_shape((32, 16)) == (34, 18)
    assert padded_shape((4, 5, 6)) == (6, 7, 8)


@pytest.mark.parametrize("dimensions", [(8,), (2, 2, 2, 2), (0, 8), (8, -1), (8.5, 8)])
def test_padded_shape_rejects_invalid_grids(dimensions):
    with pytest.raises(ValueError):
        padded_shape(dimensions)


def test_storage_matches_padded_extents():
    field = ScalarField((7, 5))
    assert field.to_numpy().shape == (9, 7)
    assert field.to_numpy().size == 9 * 7


def test_contains_uses_interior_coordinates():
    field = ScalarField((4, 3))
    assert field.contains((0, 0))
    assert field.contains((3, 2))
    assert not field.contains((4, 2))
    assert not field.contains((0, 3))
    assert not field.contains((-1, 0))
    assert not field.contains((0, 0, 0))


def test_write_load_and_add_are_offset_by_the_border():
    field = ScalarField((4, 4))
    field.write((1, 2), 3.0)
    field.add((1, 2), 0.5)

    assert field.load((1, 2)) == 3.5
    assert field.to_numpy()[1 + BORDER, 2 + BORDER] == 3.5
    assert field.interior()[1, 2] == 3.5
    assert field.interior().shape == (4, 4)


def test_invalid_coordinates_raise_index_error():
    field = ScalarField((4, 4))
    with pytest.raises(IndexError):
        field.load((4, 0))
    with pytest.raises(IndexError):
        field.write((-1, 0), 1.0)


def test_fill_copy_and_from_numpy():
    a = ScalarField((3, 3, 3))
    b = ScalarField((3, 3, 3))
    values = np.arange(125, dtype=np.float32).reshape(5, 5, 5)
    a.from_numpy(values)
    b.copy_from(a)
    np.testing.assert_array_equal(b.to_numpy(), values)

    b.fill(2.0)
    assert np.all(b.to_numpy() == 2.0)


def test_vector_field_components():
    velocity = VectorField((6, 4), name="velocity")
    assert len(velocity) == 2
    assert [c.name for c in velocity] == ["velocity.u", "velocity.v"]

    velocity.write((2, 3), (1.0, -2.0))
    velocity.add((2, 3), (0.5, 0.5))
    assert velocity.load((2, 3)) == (1.5, -1.5)
    assert velocity[1].load((2, 3)) == -1.5

    with pytest.raises(ValueError):
        velocity.add((2, 3), (1.0, 2.0, 3.0))


def test_vector_field_in_3d_has_three_components():
    velocity = VectorField((3, 3, 3), name="velocity")
    assert [c.name for c in velocity] == ["velocity.u", "velocity.v", "velocity.w"]
    assert len(velocity.to_numpy()) == 3


@pytest.mark.parametrize("coord", [(3.7, 2), (1, 0.5), (float("inf"), 1)])
def test_fractional_coordinates_are_rejected(coord):
    field = ScalarField((8, 8))
    with pytest.raises((ValueError, OverflowError)):
        field.contains(coord)
    with pytest.raises((ValueError, OverflowError)):
        field.add(coord, 1.0)
    assert field.to_numpy().sum() == 0.0


def test_integral_coordinates_of_any_type_are_accepted():
    field = ScalarField((8, 8))
    field.add((np.int64(3), 2.0), 1.0)
    assert field.load((3, 2)) == 1.0
