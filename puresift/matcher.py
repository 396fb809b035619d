"""
Feature matching between two sets of SIFT descriptors.
Brute-force nearest-neighbor search with Lowe's ratio test.
"""

import logging
import math

import numpy as np

from .descriptor import NormType
from .parallel import fan_out

logger = logging.getLogger(__name__)

# second-best distances at or below this are not a reliable reference
MIN_SECOND_DISTANCE = 0.001


class SiftMatch:
    """Pair of matched descriptors and their feature distance."""

    __slots__ = ('_descriptor1', '_descriptor2', '_distance')

    def __init__(self, descriptor1, descriptor2, distance):
        self._descriptor1 = descriptor1
        self._descriptor2 = descriptor2
        self._distance = float(distance)

    @property
    def descriptor1(self):
        return self._descriptor1

    @property
    def descriptor2(self):
        return self._descriptor2

    @property
    def distance(self):
        return self._distance

    def __lt__(self, other):
        return self._distance < other._distance

    def __repr__(self):
        return (f"SiftMatch(distance={self._distance:.2f}, "
                f"a=({self._descriptor1}), b=({self._descriptor2}))")


class SiftMatcher:
    """
    Feature matcher for SIFT descriptors.
    Implements brute-force matching with ratio test and optional cross-check.
    """

    def __init__(self, norm_type=NormType.L2, r_max=0.8, cross_check=False,
                 workers=None):
        """
        Initialize feature matcher.

        Args:
            norm_type: Distance norm (NormType or 'L1', 'L2', 'LINF')
            r_max: Maximum ratio between best and second-best distance
            cross_check: Keep only mutual nearest neighbors
            workers: Thread count for per-descriptor fan-out (None = sequential)
        """
        if r_max <= 0:
            raise ValueError(f"r_max must be > 0, got {r_max}")
        self.norm_type = NormType.parse(norm_type)
        self.r_max = r_max
        self.cross_check = cross_check
        self.workers = workers

    def match(self, descriptors_a, descriptors_b):
        """
        Match every descriptor in set A against set B.

        Args:
            descriptors_a: Sequence of SiftDescriptor (first image)
            descriptors_b: Sequence of SiftDescriptor (second image)

        Returns:
            List of SiftMatch, sorted by ascending distance
        """
        descriptors_a = list(descriptors_a)
        descriptors_b = list(descriptors_b)
        if not descriptors_a or not descriptors_b:
            return []

        features_b = _feature_matrix(descriptors_b)
        candidates = fan_out(lambda a: self._find_best_match(a.features, features_b),
                             descriptors_a, self.workers)

        if self.cross_check:
            features_a = _feature_matrix(descriptors_a)
        matches = []
        for i, candidate in enumerate(candidates):
            if candidate is None:
                continue
            j, d1 = candidate
            # Cross-check: keep only mutual best matches
            if self.cross_check:
                (i_back, _), _ = self._nearest_two(descriptors_b[j].features, features_a)
                if i_back != i:
                    continue
            matches.append(SiftMatch(descriptors_a[i], descriptors_b[j], d1))

        # Sort by distance (ascending)
        matches.sort(key=lambda m: m.distance)
        logger.debug('%d matches from %d x %d descriptors',
                     len(matches), len(descriptors_a), len(descriptors_b))
        return matches

    def _nearest_two(self, f, features):
        """Indices and distances of the nearest and second-nearest rows."""
        dists = self.norm_type.distances(f, features)
        if len(dists) == 1:
            return (0, float(dists[0])), (None, math.inf)
        i1, i2 = np.argsort(dists, kind='stable')[:2]
        return (int(i1), float(dists[i1])), (int(i2), float(dists[i2]))

    def _find_best_match(self, f, features):
        """
        Lowe's ratio test for one query vector.

        Returns:
            (index, distance) of the accepted nearest neighbor, or None
        """
        (j, d1), (_, d2) = self._nearest_two(f, features)
        if math.isfinite(d2) and d2 > MIN_SECOND_DISTANCE and d1 / d2 < self.r_max:
            return j, d1
        return None


def _feature_matrix(descriptors):
    return np.stack([d.features for d in descriptors]).astype(np.int64)
