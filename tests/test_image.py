import numpy as np
import pytest

from CloudFillPy import as_image_cube, as_mask_grid, from_image_cube, ShapeMismatchError


def test_flat_buffer_is_column_major():
    rows, cols, bands = 2, 3, 2
    flat = np.arange(rows * cols * bands, dtype=np.float64)

    cube = as_image_cube(flat, (rows, cols, bands))

    for r in range(rows):
        for c in range(cols):
            for b in range(bands):
                assert cube[r, c, b] == flat[r + c * rows + b * rows * cols]


def test_pixel_matrix_holds_one_band_per_column():
    matrix = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0], [4.0, 40.0]])

    cube = as_image_cube(matrix, (2, 2, 2))

    assert cube[1, 0, 0] == 2.0
    assert cube[0, 1, 1] == 30.0


def test_cube_passes_through_as_float64():
    cube = np.ones((2, 3, 4), dtype=np.int16)

    result = as_image_cube(cube, [2, 3, 4])

    assert result.dtype == np.float64
    assert result.shape == (2, 3, 4)


@pytest.mark.parametrize("buffer, dims", [
    (np.zeros(11), (2, 3, 2)),
    (np.zeros((6, 3)), (2, 3, 2)),
    (np.zeros((2, 3, 1)), (3, 2, 1)),
])
def test_image_buffer_must_match_dims(buffer, dims):
    with pytest.raises(ShapeMismatchError):
        as_image_cube(buffer, dims)


@pytest.mark.parametrize("dims", [(2, 3), (2, 0, 1)])
def test_bad_dims(dims):
    with pytest.raises(ShapeMismatchError):
        as_image_cube(np.zeros(6), dims)


def test_mask_grid_from_vector():
    grid = as_mask_grid(np.array([0, 1, -1, 2, 0, 0]), (2, 3, 5))

    assert grid.shape == (2, 3)
    assert grid[1, 0] == 1
    assert grid[1, 1] == 2


def test_mask_grid_shape_checked():
    with pytest.raises(ShapeMismatchError):
        as_mask_grid(np.zeros((3, 2)), (2, 3, 1))


def test_from_image_cube_follows_source_layout():
    cube = np.arange(12, dtype=np.float64).reshape(2, 3, 2)

    assert from_image_cube(cube, np.zeros((2, 3, 2))) is cube
    matrix = from_image_cube(cube, np.zeros((6, 2)))
    assert np.array_equal(as_image_cube(matrix, (2, 3, 2)), cube)
    vector = from_image_cube(cube, np.zeros(12))
    assert np.array_equal(as_image_cube(vector, (2, 3, 2)), cube)
