"""
Numba-Accelerated Kernels for NSPI Cloud Filling
=================================================

This module contains JIT-compiled functions implementing the Neighborhood
Similar Pixel Interpolator (NSPI) used to fill clouds in a multi-band image
from a second, clear acquisition of the same scene.

The kernels handle:
    - Cloud region discovery and neighborhood windows
    - Per-band similarity thresholds
    - Similar pixel search around each cloudy pixel
    - Spectral/spatial donor weighting and temporal blending
    - Region write-back (serial and parallel over regions)

All image cubes are indexed (row, col, band) and the cloud mask (row, col).
Mask codes: 0 = clear in both images, -1 = unusable, k >= 1 = cloud region k.

Reference: Zhu, X., Gao, F., Liu, D., Chen, J., 2012. A modified
neighborhood similar pixel interpolator approach for removing thick clouds
in Landsat images. IEEE Geoscience and Remote Sensing Letters 9, 521-525.
"""

import numpy as np
from numba import njit, prange


# Epsilons used by the donor weighting
NORM_EPSILON = 1e-6
COST_EPSILON = 1e-7

# Columns of the per-region counter array returned by fill_region
COUNT_WEIGHTED = 0
COUNT_FALLBACK = 1
COUNT_RANGE_GATED = 2
N_COUNTS = 3


# =============================================================================
# REGION LOCATOR
# =============================================================================

@njit(cache=True)
def find_cloud_codes(mask):
    """Return the sorted distinct cloud codes (values >= 1) in the mask."""
    codes = np.unique(mask)
    return codes[codes >= 1]


@njit(cache=True)
def locate_cloud_windows(mask, cloud_nbh):
    """
    Find every cloud region and its neighborhood window.

    The window is the tight bounding box of the region, expanded by
    cloud_nbh pixels on each side and clamped to the image bounds.

    Args:
        mask: 2D int64 cloud mask (row, col)
        cloud_nbh: Neighborhood margin in pixels (>= 0)

    Returns:
        Tuple of (codes, windows) where codes is a 1D array of region codes
        and windows is an (n, 4) array of [up_row, down_row, left_col, right_col]
    """
    rows, cols = mask.shape
    codes = find_cloud_codes(mask)
    n = codes.size

    up = np.full(n, rows, dtype=np.int64)
    down = np.full(n, -1, dtype=np.int64)
    left = np.full(n, cols, dtype=np.int64)
    right = np.full(n, -1, dtype=np.int64)

    for i in range(rows):
        for j in range(cols):
            value = mask[i, j]
            if value < 1:
                continue
            k = np.searchsorted(codes, value)
            if i < up[k]:
                up[k] = i
            if i > down[k]:
                down[k] = i
            if j < left[k]:
                left[k] = j
            if j > right[k]:
                right[k] = j

    windows = np.empty((n, 4), dtype=np.int64)
    for k in range(n):
        windows[k, 0] = max(up[k] - cloud_nbh, 0)
        windows[k, 1] = min(down[k] + cloud_nbh, rows - 1)
        windows[k, 2] = max(left[k] - cloud_nbh, 0)
        windows[k, 3] = min(right[k] + cloud_nbh, cols - 1)

    return codes, windows


# =============================================================================
# SIMILARITY ESTIMATOR
# =============================================================================

@njit(cache=True)
def similarity_thresholds(clear_window, num_class):
    """
    Per-band threshold deciding whether two pixels are spectrally similar.

    Uses the sample standard deviation of every window pixel (clear or not)
    in the clear image: threshold = stddev * 2 / num_class. A band with no
    variance gets a threshold of zero.
    """
    rows, cols, bands = clear_window.shape
    n = rows * cols
    thresholds = np.zeros(bands, dtype=np.float64)
    if n < 2:
        return thresholds

    for b in range(bands):
        total = 0.0
        for i in range(rows):
            for j in range(cols):
                total += clear_window[i, j, b]
        mean = total / n

        sq = 0.0
        for i in range(rows):
            for j in range(cols):
                d = clear_window[i, j, b] - mean
                sq += d * d
        thresholds[b] = np.sqrt(sq / (n - 1)) * 2.0 / num_class

    return thresholds


# =============================================================================
# CANDIDATES AND SIMILAR PIXEL SEARCH
# =============================================================================

@njit(cache=True)
def collect_candidates(mask_window):
    """
    Window-local positions of clear (mask == 0) pixels.

    Pixels are enumerated column by column, top to bottom, which fixes the
    order in which equidistant candidates are visited.
    """
    rows, cols = mask_window.shape
    count = 0
    for j in range(cols):
        for i in range(rows):
            if mask_window[i, j] == 0:
                count += 1

    cand_rows = np.empty(count, dtype=np.int64)
    cand_cols = np.empty(count, dtype=np.int64)
    k = 0
    for j in range(cols):
        for i in range(rows):
            if mask_window[i, j] == 0:
                cand_rows[k] = i
                cand_cols[k] = j
                k += 1

    return cand_rows, cand_cols


@njit(cache=True)
def search_similar_pixels(target_clear, ri, ci, cand_rows, cand_cols,
                          cand_clear, similar_th, min_pixel):
    """
    Select up to min_pixel similar candidates, nearest first.

    Candidates are ranked by Euclidean distance to (ri, ci). The nearest
    candidate is always skipped. A candidate is similar when, in every band,
    its clear value minus the target's clear value is <= the threshold
    (signed comparison). A NaN difference never counts as similar.

    Args:
        target_clear: 1D clear spectrum of the target pixel
        ri, ci: Window-local row and column of the target
        cand_rows, cand_cols: Window-local candidate positions
        cand_clear: 2D (n_candidates, bands) clear spectra of candidates
        similar_th: 1D per-band similarity thresholds
        min_pixel: Maximum number of similar pixels to accept

    Returns:
        Tuple of (indices, rmse, dist, num_similar). Only the first
        num_similar entries of each array are meaningful; indices refer
        to the candidate arrays.
    """
    n_cand = cand_rows.size
    bands = target_clear.size

    dists = np.empty(n_cand, dtype=np.float64)
    for k in range(n_cand):
        dr = cand_rows[k] - ri
        dc = cand_cols[k] - ci
        dists[k] = np.sqrt(dr * dr + dc * dc)

    order = np.argsort(dists, kind='mergesort')

    indices = np.empty(min_pixel, dtype=np.int64)
    rmse = np.empty(min_pixel, dtype=np.float64)
    dist = np.empty(min_pixel, dtype=np.float64)
    num_similar = 0

    # Sorted position 0 is skipped
    pos = 1
    while num_similar < min_pixel and pos < n_cand:
        k = order[pos]
        similar = True
        for b in range(bands):
            if not (cand_clear[k, b] - target_clear[b] <= similar_th[b]):
                similar = False
                break

        if similar:
            sq = 0.0
            for b in range(bands):
                d = cand_clear[k, b] - target_clear[b]
                sq += d * d
            indices[num_similar] = k
            rmse[num_similar] = np.sqrt(sq / bands)
            dist[num_similar] = dists[k]
            num_similar += 1
        pos += 1

    return indices, rmse, dist, num_similar


# =============================================================================
# WEIGHTED PREDICTOR
# =============================================================================

@njit(cache=True)
def _normalize_unit_range(values):
    """Min-max scale values to [1, 2]."""
    lo = values.min()
    hi = values.max()
    return (values - lo) / (hi - lo + NORM_EPSILON) + 1.0


@njit(cache=True)
def donor_weights(rmse, dist):
    """
    Weights of the similar pixels; closer and more similar donors weigh more.

    The combined cost is the product of the normalized spectral and spatial
    distances. Weights are inverse costs scaled to sum to one.
    """
    cost = _normalize_unit_range(rmse) * _normalize_unit_range(dist) + COST_EPSILON
    inverse = 1.0 / cost
    return inverse / inverse.sum()


@njit(cache=True)
def predict_pixel(target_clear, donor_cloudy, donor_clear, rmse, dist, r2,
                  dn_min, dn_max):
    """
    Blend the spatial and temporal-difference predictions for one pixel.

    Requires at least two donors. predict_1 is the weighted mean of the
    donors' cloudy values; predict_2 adds the weighted cloudy-minus-clear
    difference of the donors to the target's clear value. Bands where
    predict_2 falls outside (dn_min, dn_max) use predict_1 alone.

    Args:
        target_clear: 1D clear spectrum of the target
        donor_cloudy: 2D (n_donors, bands) cloudy spectra of the donors
        donor_clear: 2D (n_donors, bands) clear spectra of the donors
        rmse: 1D spectral dissimilarity of each donor
        dist: 1D spatial distance of each donor
        r2: Distance from the target to the window center
        dn_min, dn_max: Valid DN range

    Returns:
        Tuple of (predicted spectrum, number of range-gated bands)
    """
    n_donors, bands = donor_cloudy.shape
    weight = donor_weights(rmse, dist)

    mean_dist = dist.mean()
    w_t1 = r2 / (r2 + mean_dist)
    w_t2 = mean_dist / (r2 + mean_dist)

    result = np.empty(bands, dtype=np.float64)
    gated = 0
    for b in range(bands):
        predict_1 = 0.0
        diff = 0.0
        for k in range(n_donors):
            predict_1 += weight[k] * donor_cloudy[k, b]
            diff += weight[k] * (donor_cloudy[k, b] - donor_clear[k, b])
        predict_2 = target_clear[b] + diff

        if predict_2 > dn_min and predict_2 < dn_max:
            result[b] = w_t1 * predict_1 + w_t2 * predict_2
        else:
            result[b] = predict_1
            gated += 1

    return result, gated


# =============================================================================
# REGION FILL AND WRITE-BACK
# =============================================================================

@njit(cache=True)
def fill_region(cloudy, clear, mask, out, code, up, down, left, right,
                num_class, min_pixel, dn_min, dn_max):
    """
    Reconstruct every pixel of one cloud region and write it to out.

    Reads only cloudy, clear and mask; writes only the cells of out whose
    mask value equals code. Predictions are buffered and committed once the
    whole region has been resolved.

    Returns:
        1D int64 array of counts [weighted, fallback, range_gated_bands]
    """
    bands = cloudy.shape[2]
    counts = np.zeros(N_COUNTS, dtype=np.int64)

    mask_window = mask[up:down + 1, left:right + 1]
    n_rows, n_cols = mask_window.shape
    row_center = n_rows / 2.0
    col_center = n_cols / 2.0

    similar_th = similarity_thresholds(clear[up:down + 1, left:right + 1, :], num_class)

    cand_rows, cand_cols = collect_candidates(mask_window)
    n_cand = cand_rows.size
    cand_cloudy = np.empty((n_cand, bands), dtype=np.float64)
    cand_clear = np.empty((n_cand, bands), dtype=np.float64)
    for k in range(n_cand):
        gi = up + cand_rows[k]
        gj = left + cand_cols[k]
        for b in range(bands):
            cand_cloudy[k, b] = cloudy[gi, gj, b]
            cand_clear[k, b] = clear[gi, gj, b]

    # Simple linear adjustment for pixels without enough similar pixels.
    # Stays zero when the window has no clear pixel at all.
    mean_diff = np.zeros(bands, dtype=np.float64)
    if n_cand > 0:
        for b in range(bands):
            total = 0.0
            for k in range(n_cand):
                total += cand_cloudy[k, b] - cand_clear[k, b]
            mean_diff[b] = total / n_cand

    # Region pixels in the same column-major order as the candidates
    n_targets = 0
    for j in range(n_cols):
        for i in range(n_rows):
            if mask_window[i, j] == code:
                n_targets += 1
    target_rows = np.empty(n_targets, dtype=np.int64)
    target_cols = np.empty(n_targets, dtype=np.int64)
    t = 0
    for j in range(n_cols):
        for i in range(n_rows):
            if mask_window[i, j] == code:
                target_rows[t] = i
                target_cols[t] = j
                t += 1

    filled = np.empty((n_targets, bands), dtype=np.float64)
    for t in range(n_targets):
        ri = target_rows[t]
        ci = target_cols[t]
        target_clear = clear[up + ri, left + ci, :].copy()

        indices, rmse, dist, num_similar = search_similar_pixels(
            target_clear, ri, ci, cand_rows, cand_cols, cand_clear,
            similar_th, min_pixel
        )

        if num_similar > 1:
            donor_cloudy = np.empty((num_similar, bands), dtype=np.float64)
            donor_clear = np.empty((num_similar, bands), dtype=np.float64)
            for k in range(num_similar):
                donor_cloudy[k, :] = cand_cloudy[indices[k], :]
                donor_clear[k, :] = cand_clear[indices[k], :]

            dr = ri - row_center
            dc = ci - col_center
            r2 = np.sqrt(dr * dr + dc * dc)

            prediction, gated = predict_pixel(
                target_clear, donor_cloudy, donor_clear,
                rmse[:num_similar], dist[:num_similar], r2, dn_min, dn_max
            )
            filled[t, :] = prediction
            counts[COUNT_WEIGHTED] += 1
            counts[COUNT_RANGE_GATED] += gated
        else:
            for b in range(bands):
                filled[t, b] = target_clear[b] + mean_diff[b]
            counts[COUNT_FALLBACK] += 1

    for t in range(n_targets):
        gi = up + target_rows[t]
        gj = left + target_cols[t]
        for b in range(bands):
            out[gi, gj, b] = filled[t, b]

    return counts


@njit(parallel=True, cache=True)
def fill_all_regions(cloudy, clear, mask, out, codes, windows, num_class,
                     min_pixel, dn_min, dn_max):
    """
    Fill every cloud region concurrently.

    Regions write disjoint cells of out and never read it, so no
    synchronization is needed.

    Returns:
        2D int64 array (n_regions, 3) of per-region counts
    """
    n = codes.size
    counts = np.zeros((n, N_COUNTS), dtype=np.int64)

    for k in prange(n):
        counts[k, :] = fill_region(
            cloudy, clear, mask, out, codes[k],
            windows[k, 0], windows[k, 1], windows[k, 2], windows[k, 3],
            num_class, min_pixel, dn_min, dn_max
        )

    return counts
