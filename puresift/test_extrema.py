"""
Tests for 3D extremum detection.
"""

import numpy as np
import pytest
from scipy.ndimage import gaussian_filter

from puresift.extrema import ExtremaDetector, is_extremum, is_local_max, is_local_min
from puresift.params import NeighborhoodType, SiftParameters
from puresift.scale_space import DogScaleSpace, GaussianScaleSpace

ALL_TYPES = list(NeighborhoodType)


def peak_neighborhood(center=10.0, others=1.0):
    nh = np.full((3, 3, 3), others)
    nh[1, 1, 1] = center
    return nh


@pytest.mark.parametrize('nh_type', ALL_TYPES)
def test_clear_maximum(nh_type):
    """Test that an isolated peak is a maximum for every neighborhood type."""
    nh = peak_neighborhood()
    assert is_local_max(nh, nh_type)
    assert not is_local_min(nh, nh_type)
    assert is_extremum(nh, nh_type)


@pytest.mark.parametrize('nh_type', ALL_TYPES)
def test_clear_minimum(nh_type):
    nh = -peak_neighborhood()
    assert is_local_min(nh, nh_type)
    assert not is_local_max(nh, nh_type)


@pytest.mark.parametrize('nh_type', ALL_TYPES)
def test_threshold_above_margin_rejects(nh_type):
    """Test that t_extrm larger than (center - max neighbor) rejects the peak."""
    nh = peak_neighborhood()
    assert is_local_max(nh, nh_type, t_extrm=8.5)
    assert not is_extremum(nh, nh_type, t_extrm=9.5)
    assert not is_extremum(-nh, nh_type, t_extrm=9.5)


def test_sign_requirement():
    # a maximum must be positive, a minimum negative
    assert not is_local_max(peak_neighborhood(center=-1.0, others=-2.0))
    assert not is_local_min(peak_neighborhood(center=1.0, others=2.0))


def test_ties_are_not_extrema():
    nh = peak_neighborhood()
    nh[1, 0, 1] = 10.0
    for nh_type in ALL_TYPES:
        assert not is_extremum(nh, nh_type)


def test_neighborhood_types_differ():
    """Test that each type only looks at its own neighbors."""
    nh = peak_neighborhood()
    nh[0, 1, 1] = 20.0          # axial neighbor in plane q-1
    assert is_local_max(nh, NeighborhoodType.NH8)
    assert not is_local_max(nh, NeighborhoodType.NH10)

    nh = peak_neighborhood()
    nh[2, 0, 1] = 20.0          # 4-neighbor in plane q+1
    assert is_local_max(nh, NeighborhoodType.NH10)
    assert not is_local_max(nh, NeighborhoodType.NH18)

    nh = peak_neighborhood()
    nh[2, 2, 2] = 20.0          # cube corner
    assert is_local_max(nh, NeighborhoodType.NH18)
    assert not is_local_max(nh, NeighborhoodType.NH26)


def make_dog(seed=3, size=64):
    rng = np.random.default_rng(seed)
    image = gaussian_filter(rng.random((size, size)), 2.0)
    return DogScaleSpace(GaussianScaleSpace(image, P=2, Q=3))


@pytest.mark.parametrize('nh_type', ALL_TYPES)
def test_detector_agrees_with_single_cell_test(nh_type):
    dog = make_dog()
    params = SiftParameters(nh_type=nh_type, t_mag=0.0)
    detector = ExtremaDetector(dog, params)

    found = 0
    for p in range(2):
        for q in range(3):
            extrema = detector.find_extrema(p, q)
            found += len(extrema)
            positions = [(kp.u, kp.v) for kp in extrema]
            assert positions == sorted(positions)
            for kp in extrema:
                nh = dog.neighborhood(p, q, kp.u, kp.v)
                assert is_extremum(nh, nh_type)
                assert kp.magnitude == abs(nh[1, 1, 1])
                assert (kp.x, kp.y) == (kp.u, kp.v)
                assert kp.x_real == 2 ** p * kp.u
                assert kp.scale == pytest.approx(dog.absolute_scale(p, q))
    assert found > 0


def test_detector_finds_all_extrema():
    """Compare against an exhaustive scan of one level."""
    dog = make_dog(seed=5)
    params = SiftParameters(t_mag=0.0)
    extrema = ExtremaDetector(dog, params).find_extrema(0, 1)

    octave = dog.octave(0)
    expected = []
    for u in range(1, octave.width - 1):
        for v in range(1, octave.height - 1):
            if is_extremum(octave.neighborhood(1, u, v), params.nh_type):
                expected.append((u, v))
    assert [(kp.u, kp.v) for kp in extrema] == expected


def test_magnitude_threshold():
    dog = make_dog()
    all_extrema = ExtremaDetector(dog, SiftParameters(t_mag=0.0)).find_extrema(0, 1)
    t_mag = float(np.median([kp.magnitude for kp in all_extrema]))
    strong = ExtremaDetector(dog, SiftParameters(t_mag=t_mag)).find_extrema(0, 1)
    assert 0 < len(strong) < len(all_extrema)
    assert all(kp.magnitude > t_mag for kp in strong)
