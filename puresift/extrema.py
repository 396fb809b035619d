"""
Detection of local extrema in the DoG scale space.
"""

import logging

import numpy as np

from .keypoint import KeyPoint
from .params import NeighborhoodType

logger = logging.getLogger(__name__)


def is_local_min(nh, nh_type=NeighborhoodType.NH18, t_extrm=0.0):
    """
    Check if the center of a 3x3x3 neighborhood nh[s, x, y] is a local minimum.

    The center (plus t_extrm) must be negative and smaller than every
    neighbor included in nh_type.
    """
    c = nh[1, 1, 1] + t_extrm
    if c >= 0:
        return False
    return all(c < nh[1 + ds, 1 + dx, 1 + dy] for ds, dx, dy in nh_type.offsets)


def is_local_max(nh, nh_type=NeighborhoodType.NH18, t_extrm=0.0):
    """
    Check if the center of a 3x3x3 neighborhood nh[s, x, y] is a local maximum.

    The center (minus t_extrm) must be positive and larger than every
    neighbor included in nh_type.
    """
    c = nh[1, 1, 1] - t_extrm
    if c <= 0:
        return False
    return all(c > nh[1 + ds, 1 + dx, 1 + dy] for ds, dx, dy in nh_type.offsets)


def is_extremum(nh, nh_type=NeighborhoodType.NH18, t_extrm=0.0):
    nh = np.asarray(nh)
    return is_local_min(nh, nh_type, t_extrm) or is_local_max(nh, nh_type, t_extrm)


class ExtremaDetector:
    """
    Finds DoG lattice cells that are local minima or maxima over a
    configurable 3D neighborhood.
    """

    def __init__(self, dog, params):
        """
        Args:
            dog: DogScaleSpace to search
            params: SiftParameters (uses nh_type, t_mag, t_extrm)
        """
        self.dog = dog
        self.nh_type = params.nh_type
        self.t_mag = params.t_mag
        self.t_extrm = params.t_extrm

    def find_extrema(self, p, q):
        """
        Scan the interior of DoG level (p, q) for extrema.

        Args:
            p: Octave index
            q: Level index (needs levels q-1 and q+1)

        Returns:
            List of KeyPoint candidates at integer lattice positions,
            ordered by u, then v
        """
        octave = self.dog.octave(p)
        stack = octave.stack(q)             # [s, v, u]
        _, h, w = stack.shape
        if h < 3 or w < 3:
            return []

        center = stack[1, 1:-1, 1:-1]
        is_min = center + self.t_extrm < 0
        is_max = center - self.t_extrm > 0
        for ds, dx, dy in self.nh_type.offsets:
            neighbor = stack[1 + ds, 1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
            is_min &= center + self.t_extrm < neighbor
            is_max &= center - self.t_extrm > neighbor
        mask = (is_min | is_max) & (np.abs(center) > self.t_mag)

        scale = self.dog.absolute_scale(p, q)
        extrema = []
        for u0, v0 in np.argwhere(mask.T):
            u, v = int(u0) + 1, int(v0) + 1
            extrema.append(KeyPoint(
                p, q, u, v, float(u), float(v),
                float(self.dog.real_x(p, u)), float(self.dog.real_y(p, v)),
                scale, float(abs(stack[1, v, u]))))
        logger.debug('  (p=%d, q=%d): %d extrema', p, q, len(extrema))
        return extrema
