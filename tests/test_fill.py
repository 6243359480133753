"""Tests for the NSPI fill entry points."""
import numpy as np
import pytest

from CloudFillPy import (
    fill_clouds,
    cloud_fill,
    nspi_fill,
    ShapeMismatchError,
    InvalidParameterError,
    CloudFillError,
)


FILL_ARGS = dict(num_class=2, min_pixel=8, cloud_nbh=3, dn_min=0.0, dn_max=255.0)


def test_flat_scene_fills_from_identical_neighbours(flat_scene):
    cloudy, clear, mask = flat_scene

    filled = fill_clouds(cloudy, clear, mask, num_class=1, min_pixel=2, cloud_nbh=2,
                         dn_min=0, dn_max=255)

    np.testing.assert_allclose(filled[2, 2, 0], 100.0)
    np.testing.assert_allclose(filled[2, 3, 0], 100.0)
    untouched = mask == 0
    assert np.array_equal(filled[untouched], cloudy[untouched])


def test_clear_and_invalid_pixels_are_untouched(random_scene):
    cloudy, clear, mask = random_scene

    filled = fill_clouds(cloudy, clear, mask, **FILL_ARGS)

    keep = mask <= 0
    assert np.array_equal(filled[keep], cloudy[keep])
    assert not np.array_equal(filled[mask >= 1], cloudy[mask >= 1])


def test_empty_mask_returns_input(rng):
    cloudy = rng.uniform(0, 100, size=(8, 9, 2))
    clear = rng.uniform(0, 100, size=(8, 9, 2))
    mask = np.zeros((8, 9), dtype=np.int64)
    mask[0, :] = -1

    filled, counters = nspi_fill(cloudy, clear, mask, **FILL_ARGS)

    assert np.array_equal(filled, cloudy)
    assert counters['code'] == []


def test_inputs_are_not_modified(random_scene):
    cloudy, clear, mask = random_scene
    originals = cloudy.copy(), clear.copy(), mask.copy()

    fill_clouds(cloudy, clear, mask, **FILL_ARGS)

    for before, after in zip(originals, (cloudy, clear, mask)):
        assert np.array_equal(before, after)


def test_single_similar_pixel_uses_linear_adjustment():
    # threshold = std([10, 20, 30]) * 2 = 20; the left neighbour is skipped
    # as nearest, leaving only the right one as similar pixel
    clear = np.array([[[10.0], [20.0], [30.0]]])
    cloudy = np.array([[[14.0], [999.0], [38.0]]])
    mask = np.array([[0, 1, 0]])

    filled, counters = nspi_fill(cloudy, clear, mask, num_class=1, min_pixel=5, cloud_nbh=1)

    # clear + mean(cloudy - clear) over both clear pixels
    assert filled[0, 1, 0] == 26.0
    assert counters['fallback_pixels'] == [1]
    assert counters['weighted_pixels'] == [0]


def test_region_without_clear_pixels_copies_clear_image(rng):
    clear = rng.uniform(0, 100, size=(3, 3, 2))
    cloudy = rng.uniform(0, 100, size=(3, 3, 2))
    mask = np.ones((3, 3), dtype=np.int64)

    filled = fill_clouds(cloudy, clear, mask, **FILL_ARGS)

    assert np.array_equal(filled, clear)


def test_invalid_pixels_are_never_donors():
    clear = np.array([[[10.0], [20.0], [30.0]]])
    cloudy = np.array([[[500.0], [999.0], [700.0]]])
    mask = np.array([[-1, 1, -1]])

    filled = fill_clouds(cloudy, clear, mask, **FILL_ARGS)

    assert filled[0, 1, 0] == 20.0
    assert filled[0, 0, 0] == 500.0
    assert filled[0, 2, 0] == 700.0


def test_regions_are_independent(rng):
    clear = rng.uniform(20.0, 200.0, size=(20, 20, 2))
    cloudy = clear + rng.normal(3.0, 1.0, size=clear.shape)
    mask = np.zeros((20, 20), dtype=np.int64)
    mask[3, 3] = mask[3, 4] = mask[4, 3] = 1
    mask[15, 15] = mask[16, 16] = 2

    both = fill_clouds(cloudy, clear, mask, num_class=2, min_pixel=6, cloud_nbh=2)

    only_a = mask.copy()
    only_a[only_a == 2] = 0
    alone = fill_clouds(cloudy, clear, only_a, num_class=2, min_pixel=6, cloud_nbh=2)

    region_a = mask == 1
    assert np.array_equal(both[region_a], alone[region_a])


def test_region_order_does_not_matter(random_scene):
    cloudy, clear, mask = random_scene

    # same regions under different codes, so they are visited in another order
    relabelled = mask.copy()
    for old, new in ((1, 40), (4, 30), (9, 20), (12, 10)):
        relabelled[mask == old] = new

    assert np.array_equal(
        fill_clouds(cloudy, clear, mask, **FILL_ARGS),
        fill_clouds(cloudy, clear, relabelled, **FILL_ARGS),
    )


def test_parallel_matches_serial(random_scene):
    cloudy, clear, mask = random_scene

    serial, serial_counters = nspi_fill(cloudy, clear, mask, **FILL_ARGS)
    parallel, parallel_counters = nspi_fill(cloudy, clear, mask, parallel=True, **FILL_ARGS)

    assert np.array_equal(serial, parallel)
    assert serial_counters == parallel_counters


def test_counters_cover_every_cloud_pixel(random_scene):
    cloudy, clear, mask = random_scene

    _, counters = nspi_fill(cloudy, clear, mask, **FILL_ARGS)

    assert counters['code'] == [1, 4, 9, 12]
    for i, code in enumerate(counters['code']):
        n_cloud = int(np.count_nonzero(mask == code))
        assert counters['cloud_pixels'][i] == n_cloud
        assert counters['weighted_pixels'][i] + counters['fallback_pixels'][i] == n_cloud


def test_corner_region_with_large_neighbourhood(rng):
    clear = rng.uniform(0, 100, size=(6, 7, 2))
    cloudy = clear + 1.0
    mask = np.zeros((6, 7), dtype=np.int64)
    mask[0, 0] = mask[0, 1] = 3

    filled, counters = nspi_fill(cloudy, clear, mask, num_class=1, min_pixel=4, cloud_nbh=50)

    assert np.all(np.isfinite(filled))
    assert (counters['up_row'][0], counters['down_row'][0]) == (0, 5)
    assert (counters['left_col'][0], counters['right_col'][0]) == (0, 6)


def test_temporal_difference_is_carried_over():
    # cloudy = clear + 10 everywhere, so both predictions agree on clear + 10
    clear = np.tile(np.arange(9, dtype=np.float64), (9, 1))[:, :, np.newaxis] * 5.0 + 20.0
    cloudy = clear + 10.0
    mask = np.zeros((9, 9), dtype=np.int64)
    mask[4, 4] = 1

    filled = fill_clouds(cloudy, clear, mask, num_class=1, min_pixel=6, cloud_nbh=3)

    assert filled[4, 4, 0] > clear[4, 4, 0]


def test_cloud_fill_accepts_column_major_pixel_matrix(random_scene):
    cloudy, clear, mask = random_scene
    rows, cols, bands = cloudy.shape
    cloudy_mat = cloudy.reshape(rows * cols, bands, order='F')
    clear_mat = clear.reshape(rows * cols, bands, order='F')
    mask_vec = mask.ravel(order='F')

    result = cloud_fill(cloudy_mat, clear_mat, mask_vec, (rows, cols, bands),
                        2, 8, 3, 0.0, 255.0)

    expected = fill_clouds(cloudy, clear, mask, **FILL_ARGS)
    assert result.shape == (rows * cols, bands)
    assert np.array_equal(result, expected.reshape(rows * cols, bands, order='F'))


def test_cloud_fill_returns_cube_for_cube_input(flat_scene):
    cloudy, clear, mask = flat_scene

    result = cloud_fill(cloudy, clear, mask, (5, 5, 1), 1, 2, 2, 0, 255)

    assert result.shape == (5, 5, 1)
    np.testing.assert_allclose(result[2, 2:4, 0], [100.0, 100.0])


def test_cloud_fill_rejects_inconsistent_dims(flat_scene):
    cloudy, clear, mask = flat_scene

    with pytest.raises(ShapeMismatchError):
        cloud_fill(cloudy, clear, mask, (5, 4, 1), 1, 2, 2, 0, 255)
    with pytest.raises(ShapeMismatchError):
        cloud_fill(cloudy.ravel(), clear.ravel(), mask.ravel(), (5, 5, 2), 1, 2, 2, 0, 255)


def test_shape_mismatch_between_images(flat_scene):
    cloudy, clear, mask = flat_scene

    with pytest.raises(ShapeMismatchError):
        fill_clouds(cloudy, clear[:4], mask)
    with pytest.raises(ShapeMismatchError):
        fill_clouds(cloudy, clear, mask[:, :4])
    with pytest.raises(ShapeMismatchError):
        fill_clouds(cloudy[:, :, 0], clear[:, :, 0], mask)


@pytest.mark.parametrize("overrides", [
    {'min_pixel': 0},
    {'cloud_nbh': -1},
    {'num_class': 0},
    {'dn_min': 255.0, 'dn_max': 255.0},
    {'dn_min': 300.0, 'dn_max': 0.0},
    {'min_pixel': 2.5},
])
def test_invalid_parameters_fail_fast(flat_scene, overrides):
    cloudy, clear, mask = flat_scene
    args = dict(num_class=1, min_pixel=2, cloud_nbh=2, dn_min=0.0, dn_max=255.0)
    args.update(overrides)

    with pytest.raises(InvalidParameterError):
        fill_clouds(cloudy, clear, mask, **args)


def test_invalid_mask_codes(flat_scene):
    cloudy, clear, mask = flat_scene

    bad = mask.copy()
    bad[0, 0] = -2
    with pytest.raises(InvalidParameterError):
        fill_clouds(cloudy, clear, bad)

    fractional = mask.astype(np.float64)
    fractional[0, 0] = 0.5
    with pytest.raises(InvalidParameterError):
        fill_clouds(cloudy, clear, fractional)


def test_errors_are_value_errors():
    assert issubclass(ShapeMismatchError, CloudFillError)
    assert issubclass(InvalidParameterError, ValueError)


def _reference_fill(cloudy, clear, mask, num_class, min_pixel, cloud_nbh, dn_min, dn_max):
    """Plain numpy NSPI, one pixel at a time."""
    rows, cols, bands = cloudy.shape
    out = cloudy.copy()

    for code in np.unique(mask[mask >= 1]):
        rr, cc = np.nonzero(mask == code)
        up, down = max(rr.min() - cloud_nbh, 0), min(rr.max() + cloud_nbh, rows - 1)
        left, right = max(cc.min() - cloud_nbh, 0), min(cc.max() + cloud_nbh, cols - 1)

        win_clear = clear[up:down + 1, left:right + 1]
        win_cloudy = cloudy[up:down + 1, left:right + 1]
        win_mask = mask[up:down + 1, left:right + 1]
        n_rows, n_cols = win_mask.shape

        pixels = win_clear.reshape(-1, bands)
        th = pixels.std(axis=0, ddof=1) * 2.0 / num_class

        # column-major enumeration: nonzero over the transpose yields (col, row)
        cand_c, cand_r = np.nonzero(win_mask.T == 0)
        cand_clear = win_clear[cand_r, cand_c]
        cand_cloudy = win_cloudy[cand_r, cand_c]
        mean_diff = (cand_cloudy - cand_clear).mean(axis=0)

        tgt_c, tgt_r = np.nonzero(win_mask.T == code)
        for r, c in zip(tgt_r, tgt_c):
            target = win_clear[r, c]
            d = np.sqrt((cand_r - r) ** 2 + (cand_c - c) ** 2.0)
            order = np.argsort(d, kind='stable')[1:]
            sel = [k for k in order if np.all(cand_clear[k] - target <= th)][:min_pixel]

            if len(sel) > 1:
                rmse = np.sqrt(np.mean((cand_clear[sel] - target) ** 2, axis=1))
                dist = d[sel]
                rn = (rmse - rmse.min()) / (rmse.max() - rmse.min() + 1e-6) + 1.0
                dn = (dist - dist.min()) / (dist.max() - dist.min() + 1e-6) + 1.0
                inv = 1.0 / (rn * dn + 1e-7)
                w = inv / inv.sum()

                p1 = w @ cand_cloudy[sel]
                p2 = target + w @ (cand_cloudy[sel] - cand_clear[sel])
                r2 = np.sqrt((r - n_rows / 2.0) ** 2 + (c - n_cols / 2.0) ** 2)
                dm = dist.mean()
                blended = r2 / (r2 + dm) * p1 + dm / (r2 + dm) * p2
                pred = np.where((p2 > dn_min) & (p2 < dn_max), blended, p1)
            else:
                pred = target + mean_diff

            out[up + r, left + c] = pred

    return out


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
@pytest.mark.parametrize("dn_max", [255.0, 150.0])
def test_weighted_fill_matches_pixelwise_reference(seed, dn_max):
    rng = np.random.default_rng(seed)
    clear = rng.uniform(20.0, 200.0, size=(12, 9, 3))
    cloudy = clear + rng.normal(5.0, 8.0, size=clear.shape)

    mask = np.zeros((12, 9), dtype=np.int64)
    mask[:, 4] = -1
    mask[1:3, 6:8] = 2
    mask[8:11, 2] = 5
    mask[9, 1] = 5
    cloudy[mask >= 1] = 255.0

    params = dict(num_class=3, min_pixel=6, cloud_nbh=3, dn_min=0.0, dn_max=dn_max)

    filled = fill_clouds(cloudy, clear, mask, **params)
    expected = _reference_fill(cloudy, clear, mask, **params)

    np.testing.assert_allclose(filled, expected, rtol=1e-10, atol=1e-9)


def test_window_center_pairs_row_with_row():
    # tall, narrow window: a swapped centre would give different blend weights
    clear = np.tile(np.arange(12, dtype=np.float64)[:, np.newaxis], (1, 3))[:, :, np.newaxis] * 10.0
    cloudy = clear * 0.5 + 40.0
    mask = np.zeros((12, 3), dtype=np.int64)
    mask[2, 1] = 1
    params = dict(num_class=1, min_pixel=4, cloud_nbh=12, dn_min=0.0, dn_max=255.0)

    filled = fill_clouds(cloudy, clear, mask, **params)

    np.testing.assert_allclose(filled, _reference_fill(cloudy, clear, mask, **params), rtol=1e-10)
