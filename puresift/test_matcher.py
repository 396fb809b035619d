"""
Tests for the brute-force SIFT matcher.
"""

import numpy as np
import pytest

from puresift.descriptor import NormType, SiftDescriptor
from puresift.matcher import SiftMatch, SiftMatcher


def descriptor(features, x=0.0):
    return SiftDescriptor(x, 0.0, 1.0, 0, 1.0, 0.0, features)


def random_descriptors(n, seed, length=32):
    rng = np.random.default_rng(seed)
    return [descriptor(rng.integers(0, 100, length), x=float(i)) for i in range(n)]


def test_simple_matches():
    a = [descriptor([10, 0, 0]), descriptor([0, 10, 0])]
    b = [descriptor([50, 50, 50]), descriptor([0, 10, 1]), descriptor([10, 1, 0])]
    matches = SiftMatcher().match(a, b)
    assert len(matches) == 2
    assert matches[0].descriptor1 is a[0]
    assert matches[0].descriptor2 is b[2]
    assert matches[1].descriptor1 is a[1]
    assert matches[1].descriptor2 is b[1]
    assert [m.distance for m in matches] == [1.0, 1.0]


def test_matches_sorted_by_distance():
    a = random_descriptors(40, seed=1)
    b = [descriptor(d.features + 3) for d in a] + random_descriptors(20, seed=2)
    matches = SiftMatcher(r_max=0.9).match(a, b)
    assert matches
    distances = [m.distance for m in matches]
    assert distances == sorted(distances)


def test_ambiguous_match_is_rejected():
    a = [descriptor([10, 0, 0])]
    b = [descriptor([12, 0, 0]), descriptor([8, 0, 0]), descriptor([90, 0, 0])]
    assert SiftMatcher().match(a, b) == []


def test_single_candidate_is_rejected():
    a = [descriptor([10, 0, 0])]
    b = [descriptor([10, 0, 0])]
    assert SiftMatcher().match(a, b) == []


def test_zero_second_distance_is_rejected():
    a = [descriptor([10, 0, 0])]
    b = [descriptor([10, 0, 0]), descriptor([10, 0, 0])]
    assert SiftMatcher().match(a, b) == []


def test_empty_sets():
    d = [descriptor([1, 2, 3])]
    assert SiftMatcher().match([], d) == []
    assert SiftMatcher().match(d, []) == []


@pytest.mark.parametrize('norm_type', list(NormType))
def test_ratio_test_monotonicity(norm_type):
    """Test that lowering r_max never adds matches."""
    a = random_descriptors(60, seed=3)
    rng = np.random.default_rng(4)
    b = [descriptor(d.features + rng.integers(-20, 20, 32)) for d in a[:30]]
    b += random_descriptors(30, seed=5)

    previous = None
    for r_max in (0.95, 0.8, 0.6, 0.4, 0.2):
        pairs = {(id(m.descriptor1), id(m.descriptor2))
                 for m in SiftMatcher(norm_type, r_max).match(a, b)}
        if previous is not None:
            assert pairs <= previous
        previous = pairs


def test_cross_check():
    a = [descriptor([10, 0, 0]), descriptor([12, 0, 0])]
    b = [descriptor([10, 0, 0]), descriptor([100, 100, 100])]

    plain = SiftMatcher().match(a, b)
    assert len(plain) == 2

    checked = SiftMatcher(cross_check=True).match(a, b)
    assert len(checked) == 1
    assert checked[0].descriptor1 is a[0]
    assert checked[0].distance == 0.0


def test_workers_give_same_result():
    a = random_descriptors(50, seed=6)
    b = [descriptor(d.features + 1) for d in a[::2]] + random_descriptors(10, seed=7)
    sequential = SiftMatcher(r_max=0.9).match(a, b)
    threaded = SiftMatcher(r_max=0.9, workers=4).match(a, b)
    assert [(m.descriptor1, m.descriptor2, m.distance) for m in sequential] == \
        [(m.descriptor1, m.descriptor2, m.distance) for m in threaded]


def test_invalid_ratio():
    with pytest.raises(ValueError):
        SiftMatcher(r_max=0.0)
    with pytest.raises(ValueError):
        SiftMatcher(norm_type='L7')


def test_match_ordering():
    d = descriptor([0])
    assert SiftMatch(d, d, 1.0) < SiftMatch(d, d, 2.0)
    assert 'distance=1.00' in repr(SiftMatch(d, d, 1.0))
