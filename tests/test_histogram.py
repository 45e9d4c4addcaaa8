import numpy as np
import pytest

from histogram import compute_histogram


def test_counts_per_level():
    channel = np.array([[0, 0, 5], [255, 5, 5]], dtype=np.float32)
    hist = compute_histogram(channel)

    assert hist.shape == (256,)
    assert hist[0] == 2
    assert hist[5] == 3
    assert hist[255] == 1
    assert hist.sum() == channel.size


def test_samples_are_truncated():
    hist = compute_histogram(np.array([12.7, 12.0, 13.2], dtype=np.float32))

    assert hist[12] == 2
    assert hist[13] == 1


def test_custom_levels():
    hist = compute_histogram(np.array([0, 3, 3], dtype=np.float32), levels=4)

    assert hist.tolist() == [1, 0, 0, 2]


@pytest.mark.parametrize("value", [-1.0, 256.0, 1000.0])
def test_out_of_range_samples(value):
    with pytest.raises(ValueError):
        compute_histogram(np.array([[0.0, value]], dtype=np.float32))


def test_rejects_multi_channel():
    with pytest.raises(ValueError):
        compute_histogram(np.zeros((4, 4, 3), dtype=np.float32))


def test_accepts_plain_lists():
    hist = compute_histogram([[0, 1], [1, 255]])

    assert hist[1] == 2
    assert hist.sum() == 4


def test_rejects_scalar():
    with pytest.raises(ValueError):
        compute_histogram(7)
