"""
Tests for sub-pixel keypoint refinement.
"""

import numpy as np
import pytest

from puresift.keypoint import KeyPoint
from puresift.params import SiftParameters
from puresift.refinement import (KeypointRefiner, _step, gradient, hessian,
                                 max_curvature_ratio)
from puresift.scale_space import DogScaleSpace, GaussianScaleSpace
from puresift.sift import SiftDetector


def quadratic_neighborhood():
    # f(x, y, s) = 5 - (x - 0.2)^2 - 2 (y + 0.1)^2 - 3 s^2, sampled as nh[s, x, y]
    nh = np.zeros((3, 3, 3))
    for s in range(3):
        for x in range(3):
            for y in range(3):
                nh[s, x, y] = (5 - (x - 1 - 0.2) ** 2 - 2 * (y - 1 + 0.1) ** 2
                               - 3 * (s - 1) ** 2)
    return nh


def blob_image(size=64, blobs=((32, 32, 3.0),)):
    yy, xx = np.mgrid[0:size, 0:size]
    image = np.zeros((size, size))
    for cx, cy, sigma in blobs:
        image += np.exp(-((xx - cx) ** 2 + (yy - cy) ** 2) / (2 * sigma * sigma))
    return image


def test_gradient_and_hessian_of_quadratic():
    nh = quadratic_neighborhood()
    np.testing.assert_allclose(gradient(nh), [0.4, -0.4, 0.0], atol=1e-12)
    np.testing.assert_allclose(hessian(nh), np.diag([-2.0, -4.0, -6.0]), atol=1e-12)

    d = -np.linalg.solve(hessian(nh), gradient(nh))
    np.testing.assert_allclose(d, [0.2, -0.1, 0.0], atol=1e-12)


def test_hessian_mixed_terms():
    # f(x, y, s) = x * y + 2 * x * s - y * s
    nh = np.zeros((3, 3, 3))
    for s in range(3):
        for x in range(3):
            for y in range(3):
                xs, ys, ss = x - 1, y - 1, s - 1
                nh[s, x, y] = xs * ys + 2 * xs * ss - ys * ss
    H = hessian(nh)
    np.testing.assert_allclose(H, [[0, 1, 2], [1, 0, -1], [2, -1, 0]], atol=1e-12)


@pytest.mark.parametrize('d, expected', [
    (0.49, 0), (0.5, 1), (-0.5, 0), (-0.51, -1), (2.7, 1), (-3.0, -1),
])
def test_step(d, expected):
    assert _step(d) == expected


def test_max_curvature_ratio():
    assert max_curvature_ratio(10.0) == pytest.approx(12.1)
    assert max_curvature_ratio(3.0) == pytest.approx(16.0 / 3.0)


def test_refined_offsets_stay_within_half_pixel():
    """Test the accepted-keypoint invariants on a multi-blob image."""
    image = blob_image(96, ((30, 30, 3.0), (66, 40, 5.0), (45, 70, 2.0)))
    detector = SiftDetector(image)
    keypoints = detector.get_keypoints()
    assert keypoints
    for kp in keypoints:
        assert abs(kp.x - kp.u) < 0.5
        assert abs(kp.y - kp.v) < 0.5
        assert kp.x_real == pytest.approx(2 ** kp.p * kp.x)
        assert kp.y_real == pytest.approx(2 ** kp.p * kp.y)
        assert kp.scale == pytest.approx(detector.dog.absolute_scale(kp.p, kp.q))


def test_refine_does_not_modify_candidate():
    image = blob_image()
    dog = DogScaleSpace(GaussianScaleSpace(image, P=2, Q=3))
    refiner = KeypointRefiner(dog, SiftParameters())
    candidate = KeyPoint(1, 1, 16, 16, 16.0, 16.0, 32.0, 32.0, 4.03, 0.1)
    before = candidate.replace()
    refiner.refine(candidate)
    assert candidate == before


def test_flat_region_is_rejected():
    """Test that a singular Hessian rejects the candidate."""
    image = np.zeros((64, 64))
    image[:4, :4] = 1.0
    dog = DogScaleSpace(GaussianScaleSpace(image, P=1, Q=3))
    refiner = KeypointRefiner(dog, SiftParameters())
    candidate = KeyPoint(0, 1, 45, 45, 45.0, 45.0, 45.0, 45.0, 2.0, 0.0)
    assert refiner.refine(candidate) is None


def test_weak_peak_is_rejected():
    image = blob_image()
    dog = DogScaleSpace(GaussianScaleSpace(image, P=2, Q=3))
    strong = KeypointRefiner(dog, SiftParameters()).refine(
        KeyPoint(1, 1, 16, 16, 16.0, 16.0, 32.0, 32.0, 4.03, 0.1))
    assert strong is not None

    strict = SiftParameters(t_peak=10.0)
    weak = KeypointRefiner(dog, strict).refine(
        KeyPoint(1, 1, 16, 16, 16.0, 16.0, 32.0, 32.0, 4.03, 0.1))
    assert weak is None


def test_edge_is_rejected():
    """Test that a straight ridge fails the curvature ratio test."""
    yy, xx = np.mgrid[0:64, 0:64]
    image = np.exp(-((xx - 32) ** 2) / (2 * 3.0 ** 2)) * (1 + 0.05 * np.exp(-((yy - 32) ** 2) / 800.0))
    dog = DogScaleSpace(GaussianScaleSpace(image, P=1, Q=3))
    refiner = KeypointRefiner(dog, SiftParameters())
    assert refiner.refine(KeyPoint(0, 2, 32, 32, 32.0, 32.0, 32.0, 32.0, 2.5, 0.1)) is None
