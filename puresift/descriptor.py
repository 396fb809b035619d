"""
SIFT descriptors: the immutable feature record, feature-vector distances,
and construction of descriptors from oriented keypoints.
"""

import logging
import math
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)

PI2 = 2 * math.pi

# vectors with a smaller L2 norm are left unnormalized
NORM_EPSILON = 1e-7


def distance_l1(f1, f2):
    return float(np.sum(np.abs(f1 - f2)))


def distance_l2(f1, f2):
    d = f1 - f2
    return float(np.sqrt(np.dot(d, d)))


def distance_linf(f1, f2):
    return float(np.max(np.abs(f1 - f2))) if len(f1) else 0.0


class NormType(Enum):
    """Distance norms for comparing integer feature vectors."""
    L1 = 'L1'
    L2 = 'L2'
    LINF = 'LINF'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown norm type: {value!r}") from None

    def distance(self, f1, f2):
        return DISTANCE_FUNCTIONS[self](f1, f2)

    def distances(self, f, features):
        """Distances from vector f to every row of the 2D array features."""
        d = np.abs(features - f)
        if self is NormType.L1:
            return d.sum(axis=1).astype(np.float64)
        if self is NormType.L2:
            return np.sqrt((d * d).sum(axis=1).astype(np.float64))
        return d.max(axis=1).astype(np.float64)


DISTANCE_FUNCTIONS = {
    NormType.L1: distance_l1,
    NormType.L2: distance_l2,
    NormType.LINF: distance_linf,
}


class SiftDescriptor:
    """
    Immutable SIFT feature: real image position, scale, response
    magnitude, orientation and integer feature vector.
    """

    __slots__ = ('_x', '_y', '_scale', '_scale_level', '_magnitude',
                 '_orientation', '_features')

    def __init__(self, x, y, scale, scale_level, magnitude, orientation, features):
        features = np.array(features, dtype=np.int64)
        features.setflags(write=False)
        self._x = float(x)
        self._y = float(y)
        self._scale = float(scale)
        self._scale_level = int(scale_level)
        self._magnitude = float(magnitude)
        self._orientation = float(orientation)
        self._features = features

    @property
    def x(self):
        return self._x

    @property
    def y(self):
        return self._y

    @property
    def scale(self):
        """Absolute scale of the scale-space level the feature was found at."""
        return self._scale

    @property
    def scale_level(self):
        """Octave index, used for display."""
        return self._scale_level

    @property
    def magnitude(self):
        return self._magnitude

    @property
    def orientation(self):
        return self._orientation

    @property
    def features(self):
        return self._features

    def distance_l1(self, other):
        return distance_l1(self._features, other._features)

    def distance_l2(self, other):
        return distance_l2(self._features, other._features)

    def distance_linf(self, other):
        return distance_linf(self._features, other._features)

    def distance(self, other, norm_type=NormType.L2):
        return NormType.parse(norm_type).distance(self._features, other._features)

    def marker_polygon(self, feature_scale=1.0):
        """
        Vertices of the display marker: a square of half-size
        feature_scale * scale with a notch pointing along the orientation.
        """
        x, y = self._x, self._y
        s = feature_scale * self._scale
        orient = self._orientation - math.pi / 2
        sin, cos = math.sin(orient), math.cos(orient)
        return [
            (x + (sin - cos) * s, y - (sin + cos) * s),
            (x + (sin + cos) * s, y + (sin - cos) * s),
            (x, y),
            (x - (sin - cos) * s, y + (sin + cos) * s),
            (x - (sin + cos) * s, y - (sin - cos) * s),
        ]

    def __eq__(self, other):
        if not isinstance(other, SiftDescriptor):
            return NotImplemented
        return (self._x == other._x and self._y == other._y and
                self._scale == other._scale and
                self._scale_level == other._scale_level and
                self._magnitude == other._magnitude and
                self._orientation == other._orientation and
                np.array_equal(self._features, other._features))

    def __hash__(self):
        return hash((self._x, self._y, self._scale, self._orientation,
                     self._features.tobytes()))

    def __str__(self):
        return (f"x={self._x:.1f} y={self._y:.1f} s={self._scale:.2f} "
                f"mag={self._magnitude:.4f} angle={self._orientation:.2f}")

    def __repr__(self):
        return f"SiftDescriptor({self})"


class DescriptorBuilder:
    """
    Builds rotation-normalized gradient histograms around oriented keypoints.
    """

    def __init__(self, gaussian, params):
        self.gaussian = gaussian
        self.n_spat = params.n_spat
        self.n_angl = params.n_angl
        self.t_fclip = params.t_fclip
        self.s_fscale = params.s_fscale
        self.s_desc = params.s_desc

    def make_descriptor(self, keypoint, phi_d):
        """
        Create the descriptor of a keypoint for dominant orientation phi_d.

        Args:
            keypoint: Refined KeyPoint
            phi_d: Dominant orientation in radians

        Returns:
            SiftDescriptor
        """
        p, q = keypoint.p, keypoint.q
        x, y = keypoint.x, keypoint.y
        G = self.gaussian
        level = G.level(p, q)

        sigma_q = G.sigma_0 * 2.0 ** (q / G.Q)      # octave-local scale
        w_d = self.s_desc * sigma_q                 # descriptor width
        sigma_d = 0.25 * w_d                        # Gaussian weight width
        r_d = 2.5 * sigma_d                         # limiting radius
        sc = 1.0 / w_d                              # scale to canonical frame
        sin_phi, cos_phi = math.sin(-phi_d), math.cos(-phi_d)

        h_grad = np.zeros((self.n_spat, self.n_spat, self.n_angl))
        u_min = max(int(math.floor(x - r_d)), 1)
        u_max = min(int(math.ceil(x + r_d)), level.width - 2)
        v_min = max(int(math.floor(y - r_d)), 1)
        v_max = min(int(math.ceil(y + r_d)), level.height - 2)

        if u_min <= u_max and v_min <= v_max:
            dx = (np.arange(u_min, u_max + 1) - x)[None, :]
            dy = (np.arange(v_min, v_max + 1) - y)[:, None]
            r2 = dx * dx + dy * dy
            inside = r2 < r_d * r_d
            dx, dy = np.broadcast_to(dx, r2.shape)[inside], np.broadcast_to(dy, r2.shape)[inside]

            # canonical coordinates in [-1/2, +1/2]
            uu = sc * (cos_phi * dx - sin_phi * dy)
            vv = sc * (sin_phi * dx + cos_phi * dy)

            mag, phi = level.gradients_polar(u_min, u_max, v_min, v_max)
            phi_norm = np.mod(phi[inside] - phi_d, PI2)
            z = mag[inside] * np.exp(-r2[inside] / (2 * sigma_d * sigma_d))
            self._update_histogram(h_grad, uu, vv, phi_norm, z)

        features = self.make_feature_vector(h_grad)
        return SiftDescriptor(G.real_x(p, x), G.real_y(p, y), G.absolute_scale(p, q),
                              p, keypoint.magnitude, phi_d, features)

    def _update_histogram(self, h_grad, uu, vv, phi_norm, z):
        # trilinear distribution of z over the 8 surrounding spatial/angular bins
        n_spat, n_angl = self.n_spat, self.n_angl
        ii = n_spat * uu + 0.5 * (n_spat - 1)
        jj = n_spat * vv + 0.5 * (n_spat - 1)
        kk = phi_norm * (n_angl / PI2)

        i0 = np.floor(ii).astype(int)
        j0 = np.floor(jj).astype(int)
        k_floor = np.floor(kk)
        k0 = k_floor.astype(int) % n_angl
        alpha1 = ii - i0
        beta1 = jj - j0
        gamma1 = kk - k_floor

        for i, wa in ((i0, 1 - alpha1), (i0 + 1, alpha1)):
            for j, wb in ((j0, 1 - beta1), (j0 + 1, beta1)):
                valid = (i >= 0) & (i < n_spat) & (j >= 0) & (j < n_spat)
                if not np.any(valid):
                    continue
                for k, wc in ((k0, 1 - gamma1), ((k0 + 1) % n_angl, gamma1)):
                    np.add.at(h_grad, (i[valid], j[valid], k[valid]),
                              (z * wa * wb * wc)[valid])

    def make_feature_vector(self, h_grad):
        """
        Flatten (angular index fastest, then j, then i), normalize, clip,
        renormalize and convert to integers.
        """
        f = np.asarray(h_grad, dtype=np.float64).reshape(-1)
        f = normalize(f)
        f = np.minimum(f, self.t_fclip)
        f = normalize(f)
        return np.floor(self.s_fscale * f + 0.5).astype(np.int64)


def normalize(f):
    norm = np.linalg.norm(f)
    if norm > NORM_EPSILON:
        return f / norm
    return f
