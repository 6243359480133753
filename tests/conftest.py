import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def flat_scene():
    """5x5 single-band scene with a two-pixel cloud in the middle row."""
    clear = np.full((5, 5, 1), 100.0)
    cloudy = clear.copy()
    cloudy[2, 2, 0] = -9999.0
    cloudy[2, 3, 0] = -9999.0
    mask = np.zeros((5, 5), dtype=np.int64)
    mask[2, 2] = 1
    mask[2, 3] = 1
    return cloudy, clear, mask


@pytest.fixture
def random_scene(rng):
    """30x30x3 scene with four cloud regions and a strip of unusable pixels."""
    clear = rng.uniform(20.0, 200.0, size=(30, 30, 3))
    cloudy = clear + rng.normal(5.0, 2.0, size=clear.shape)

    mask = np.zeros((30, 30), dtype=np.int64)
    mask[2:5, 3:7] = 1
    mask[10:13, 10:12] = 4
    mask[20:26, 2:4] = 9
    mask[27:30, 25:30] = 12
    mask[15, :] = -1

    cloudy[mask >= 1] = 255.0
    return cloudy, clear, mask
