"""
Hierarchical Gaussian and Difference-of-Gaussians (DoG) scale spaces.

A scale space consists of P octaves, each holding a stack of equally sized
scale levels indexed by q in [bottom, top]. Octave p+1 is sampled at half
the resolution of octave p. Level (p, q) has the absolute scale
sigma_0 * 2^(p + q/Q).

Sample arrays are stored as (height, width) numpy arrays and addressed with
lattice coordinates (u, v), i.e. data[v, u].
"""

import logging

import numpy as np
from scipy.ndimage import gaussian_filter

from .errors import DegenerateImageError

logger = logging.getLogger(__name__)


class ScaleLevel:
    """
    A single smoothed sample grid together with its absolute scale.
    """

    def __init__(self, data, absolute_scale):
        self.data = np.array(data, dtype=np.float64)
        self.data.setflags(write=False)
        self.absolute_scale = float(absolute_scale)

    @property
    def width(self):
        return self.data.shape[1]

    @property
    def height(self):
        return self.data.shape[0]

    def value(self, u, v):
        return self.data[v, u]

    def neighborhood_3x3(self, u, v):
        """Return the 3x3 values around (u, v), indexed [x, y]."""
        return self.data[v - 1:v + 2, u - 1:u + 2].T

    def gradient_polar(self, u, v):
        """
        Gradient at lattice position (u, v) in polar form.

        Returns:
            (magnitude, orientation) with orientation in [-pi, pi]
        """
        gx = self.data[v, u + 1] - self.data[v, u - 1]
        gy = self.data[v + 1, u] - self.data[v - 1, u]
        return np.hypot(gx, gy), np.arctan2(gy, gx)

    def gradients_polar(self, u_min, u_max, v_min, v_max):
        """
        Gradient magnitudes and orientations for the inclusive window
        [u_min, u_max] x [v_min, v_max], which must not touch the border.

        Returns:
            (magnitude, orientation) arrays indexed [v - v_min, u - u_min]
        """
        d = self.data
        gx = d[v_min:v_max + 1, u_min + 1:u_max + 2] - d[v_min:v_max + 1, u_min - 1:u_max]
        gy = d[v_min + 1:v_max + 2, u_min:u_max + 1] - d[v_min - 1:v_max, u_min:u_max + 1]
        return np.hypot(gx, gy), np.arctan2(gy, gx)

    def blurred(self, sigma, absolute_scale):
        """Return a copy smoothed by a Gaussian of width sigma."""
        if sigma <= 0:
            return ScaleLevel(self.data, absolute_scale)
        smoothed = gaussian_filter(self.data, sigma, mode='nearest')
        return ScaleLevel(smoothed, absolute_scale)

    def decimate(self):
        """2:1 subsampled copy; the absolute scale is unchanged."""
        h2, w2 = self.height // 2, self.width // 2
        return ScaleLevel(self.data[0:2 * h2:2, 0:2 * w2:2], self.absolute_scale)

    def __repr__(self):
        return (f"ScaleLevel[w={self.width} h={self.height} "
                f"absScale={self.absolute_scale:.4f}]")


class Octave:
    """
    A stack of scale levels at one sampling resolution, indexed by
    q in [bottom, top] (both inclusive).
    """

    def __init__(self, p, Q, levels, bottom, sigma_0):
        if not levels:
            raise ValueError("An octave needs at least one level")
        self.p = p
        self.Q = Q
        self.bottom = bottom
        self.top = bottom + len(levels) - 1
        self.sigma_0 = sigma_0
        self._levels = list(levels)
        shapes = {lvl.data.shape for lvl in self._levels}
        if len(shapes) != 1:
            raise ValueError("All levels of an octave must have the same size")
        self.height, self.width = shapes.pop()

    def level(self, q):
        if not self.bottom <= q <= self.top:
            raise IndexError(f"Level {q} outside [{self.bottom}, {self.top}]")
        return self._levels[q - self.bottom]

    @property
    def levels(self):
        return tuple(self._levels)

    def is_inside(self, q, u, v):
        """True iff q is strictly inside the level range and (u, v) is
        strictly inside the level bounds."""
        return (self.bottom < q < self.top and
                0 < u < self.width - 1 and
                0 < v < self.height - 1)

    def absolute_scale(self, q):
        return self.level(q).absolute_scale

    def neighborhood(self, q, u, v):
        """
        Collect the 3x3x3 neighborhood around (u, v) from levels q-1, q, q+1.

        Returns:
            numpy array nh[s, x, y] with the center at nh[1, 1, 1]
        """
        return np.stack([self.level(q + s).neighborhood_3x3(u, v) for s in (-1, 0, 1)])

    def stack(self, q):
        """Levels q-1, q, q+1 as a single (3, height, width) array."""
        return np.stack([self.level(q + s).data for s in (-1, 0, 1)])

    def __repr__(self):
        return f"Octave[p={self.p} levels={self.bottom}..{self.top} {self.width}x{self.height}]"


class HierarchicalScaleSpace:
    """
    Common container logic for the Gaussian and DoG scale spaces.
    """

    def __init__(self, P, Q, sigma_s, sigma_0, bottom, top):
        self.P = P
        self.Q = Q
        self.sigma_s = sigma_s
        self.sigma_0 = sigma_0
        self.bottom = bottom
        self.top = top
        self.octaves = []

    def octave(self, p):
        return self.octaves[p]

    def level(self, p, q):
        return self.octaves[p].level(q)

    def absolute_scale(self, p, q):
        """Absolute scale sigma_0 * 2^(p + q/Q); q may be fractional."""
        return self.sigma_0 * 2.0 ** ((self.Q * p + q) / self.Q)

    @staticmethod
    def relative_scale(scale_a, scale_b):
        """Blur needed to go from scale_a to scale_b (scale_a <= scale_b)."""
        if scale_a > scale_b:
            raise ValueError(f"relative_scale(): {scale_a} > {scale_b}")
        return np.sqrt(scale_b * scale_b - scale_a * scale_a)

    def real_x(self, p, x):
        """Original image x-position for octave-local coordinate x."""
        return (2 ** p) * x

    def real_y(self, p, y):
        """Original image y-position for octave-local coordinate y."""
        return (2 ** p) * y

    def describe(self):
        lines = [f"Hierarchical Scale Space ({type(self).__name__})"]
        for octave in self.octaves:
            lines.append(f"  Scale Octave p={octave.p}")
            for q in range(octave.bottom, octave.top + 1):
                lines.append(f"   level (p={octave.p}, q={q}, "
                             f"scale={octave.absolute_scale(q):.4f})")
        return '\n'.join(lines)


class GaussianScaleSpace(HierarchicalScaleSpace):
    """
    Gaussian scale space with levels q in [-1, Q+1] in every octave.

    The input is a single-channel image which is normalized to [0, 1];
    a flat image (min == max) raises DegenerateImageError.
    """

    def __init__(self, image, sigma_s=0.5, sigma_0=1.6, P=4, Q=3):
        super().__init__(P, Q, sigma_s, sigma_0, -1, Q + 1)
        data = normalize_image(image)
        if min(data.shape) < 2 ** (P - 1):
            raise DegenerateImageError(
                f"Image of size {data.shape[1]}x{data.shape[0]} is too small for {P} octaves")

        logger.debug('Building Gaussian scale space (%d octaves, %d levels)...', P, Q)
        scale_bottom = self.absolute_scale(0, self.bottom)
        sigma_init = self.relative_scale(sigma_s, scale_bottom)
        bottom_level = ScaleLevel(data, sigma_s).blurred(sigma_init, scale_bottom)

        for p in range(P):
            if p > 0:
                # level Q-1 has twice the scale of level -1
                bottom_level = self.octaves[p - 1].level(Q + self.bottom).decimate()
            self.octaves.append(self._build_octave(p, bottom_level))

    def _build_octave(self, p, bottom_level):
        Q = self.Q
        sigma_bottom = self.sigma_0 * 2.0 ** (self.bottom / Q)  # octave-local
        levels = [bottom_level]
        for q in range(self.bottom + 1, self.top + 1):
            sigma_q = self.sigma_0 * 2.0 ** (q / Q)
            sigma_d = self.relative_scale(sigma_bottom, sigma_q)
            levels.append(bottom_level.blurred(sigma_d, self.absolute_scale(p, q)))
        octave = Octave(p, Q, levels, self.bottom, self.sigma_0)
        logger.debug('  octave %d: %dx%d', p, octave.width, octave.height)
        return octave


class DogScaleSpace(HierarchicalScaleSpace):
    """
    Difference-of-Gaussians view of a Gaussian scale space:
    D(p, q) = G(p, q+1) - G(p, q) for q in [-1, Q].
    """

    def __init__(self, gaussian):
        super().__init__(gaussian.P, gaussian.Q, gaussian.sigma_s, gaussian.sigma_0,
                         gaussian.bottom, gaussian.top - 1)
        logger.debug('Building DoG scale space...')
        for g_oct in gaussian.octaves:
            levels = []
            for q in range(self.bottom, self.top + 1):
                ga, gb = g_oct.level(q), g_oct.level(q + 1)
                levels.append(ScaleLevel(gb.data - ga.data, ga.absolute_scale))
            self.octaves.append(Octave(g_oct.p, self.Q, levels, self.bottom, self.sigma_0))

    def neighborhood(self, p, q, u, v):
        """The 27 DoG values around (u, v) at levels q-1..q+1, as nh[s, x, y]."""
        return self.octaves[p].neighborhood(q, u, v)


def normalize_image(image):
    """
    Map a 2D image linearly to [0, 1].

    Raises:
        DegenerateImageError: If the image is not 2D, is empty, or is flat
    """
    data = np.asarray(image, dtype=np.float64)
    if data.ndim != 2 or data.size == 0:
        raise DegenerateImageError(f"Expected a non-empty 2D image, got shape {data.shape}")
    if not np.all(np.isfinite(data)):
        raise DegenerateImageError("Image contains non-finite values")
    vmin, vmax = data.min(), data.max()
    if vmax <= vmin:
        raise DegenerateImageError("Image is flat (all samples are equal)")
    return (data - vmin) / (vmax - vmin)
