import numpy as np
import pytest

from histogram import compute_histogram
from threshold import otsu_segment, otsu_threshold, segment


def _two_cluster_image(low=10, high=200, shape=(10, 10)):
    image = np.full(shape, float(low), dtype=np.float32)
    image[shape[0] // 2:, :] = float(high)
    return image


def _between_variance(hist):
    total = hist.sum()
    sum_all = float(np.dot(np.arange(hist.size), hist))
    q1 = 0.0
    sum_b = 0.0
    scores = []
    for t in range(hist.size):
        q1 += hist[t]
        sum_b += t * hist[t]
        q2 = total - q1
        if q1 == 0 or q2 == 0:
            scores.append(0.0)
            continue
        m1 = sum_b / q1
        m2 = (sum_all - sum_b) / q2
        scores.append(q1 * q2 * (m1 - m2) ** 2)
    return np.array(scores)


def test_two_clusters_threshold_between_them():
    image = _two_cluster_image()
    threshold = otsu_threshold(compute_histogram(image))

    assert 10 < threshold < 200
    assert threshold == 104


def test_threshold_maximizes_between_class_variance():
    rng = np.random.default_rng(0)
    hist = rng.integers(1, 100, size=256).astype(np.float64)
    scores = _between_variance(hist)

    threshold = otsu_threshold(hist)

    assert scores[threshold] == pytest.approx(scores.max(), rel=1e-9)


def test_single_level_histogram():
    hist = np.zeros(256)
    hist[50] = 30

    assert otsu_threshold(hist) == 50


def test_empty_histogram():
    with pytest.raises(ValueError):
        otsu_threshold(np.zeros(256))


def test_segment_is_strictly_above_threshold():
    channel = np.array([[9, 10, 11]], dtype=np.float32)

    assert segment(channel, 10).tolist() == [[0, 0, 255]]
    assert segment(channel, 10, max_intensity=1).tolist() == [[0, 0, 1]]


def test_otsu_segment_matches_clusters():
    image = _two_cluster_image()
    segmented, threshold = otsu_segment(image)

    assert threshold == 104
    assert segmented.shape == image.shape
    assert set(np.unique(segmented).tolist()) == {0.0, 255.0}
    np.testing.assert_array_equal(segmented == 255, image == 200)


def test_otsu_segment_override_skips_search():
    image = _two_cluster_image()
    segmented, threshold = otsu_segment(image, threshold=250)

    assert threshold == 250
    assert not segmented.any()


@pytest.mark.parametrize("bad", [-1, 256])
def test_otsu_segment_override_out_of_range(bad):
    with pytest.raises(ValueError):
        otsu_segment(_two_cluster_image(), threshold=bad)


def test_otsu_segment_rejects_multi_channel():
    with pytest.raises(ValueError):
        otsu_segment(np.zeros((4, 4, 3), dtype=np.float32))
