"""
Dominant orientation assignment for refined keypoints.
"""

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

# minimum histogram peak (gradient energy) needed to assign any orientation
MIN_HISTOGRAM_ENERGY = 0.01


def smooth_circular(hist, n_iter):
    """
    Smooth a circular histogram with the kernel [1/4, 1/2, 1/4].

    Args:
        hist: 1D histogram (not modified)
        n_iter: Number of smoothing passes

    Returns:
        Smoothed copy of the histogram
    """
    h = np.array(hist, dtype=np.float64)
    for _ in range(n_iter):
        h = 0.25 * np.roll(h, 1) + 0.5 * h + 0.25 * np.roll(h, -1)
    return h


def interpolate_quadratic(y1, y2, y3):
    """
    Position of the extremum of the parabola through (-1, y1), (0, y2), (1, y3).
    Returns 0 when the three values are (nearly) collinear.
    """
    a = (y1 - 2 * y2 + y3) / 2
    if abs(a) < 1e-5:
        return 0.0
    b = (y3 - y1) / 2
    return -b / (2 * a)


def find_peak_orientations(hist, t_dom_or=0.8):
    """
    Extract the dominant orientations of a (smoothed) orientation histogram.

    A bin is a peak if it exceeds t_dom_or times the global maximum and is
    strictly greater than both circular neighbors. Peak positions are
    refined by quadratic interpolation.

    Args:
        hist: Circular orientation histogram
        t_dom_or: Minimum peak value relative to the maximum

    Returns:
        List of angles in [0, 2*pi), possibly empty
    """
    n = len(hist)
    h_max = float(np.max(hist))
    if h_max <= MIN_HISTOGRAM_ENERGY:
        return []

    h_min = h_max * t_dom_or
    angles = []
    for k in range(n):
        hc = hist[k]
        if hc > h_min:
            hp = hist[(k - 1) % n]
            hn = hist[(k + 1) % n]
            if hc > hp and hc > hn:
                k_max = (k + interpolate_quadratic(hp, hc, hn)) % n
                angles.append(k_max * 2 * math.pi / n)
    return angles


class OrientationEstimator:
    """
    Computes gradient orientation histograms on the Gaussian scale space
    and extracts the dominant orientations of keypoints.
    """

    def __init__(self, gaussian, params):
        self.gaussian = gaussian
        self.n_orient = params.n_orient
        self.n_smooth = params.n_smooth
        self.t_dom_or = params.t_dom_or
        self.sigma_0 = params.sigma_0
        self.Q = params.num_levels

    def orientation_histogram(self, keypoint):
        """
        Build the raw (unsmoothed) orientation histogram for a keypoint.

        Every gradient sample inside a disk of radius 2.5 * sigma_w
        contributes its magnitude times a Gaussian window weight, split
        linearly between the two nearest bins.

        Returns:
            numpy array with n_orient bins
        """
        n_phi = self.n_orient
        level = self.gaussian.level(keypoint.p, keypoint.q)
        h_phi = np.zeros(n_phi)
        x, y = keypoint.x, keypoint.y

        sigma_w = 1.5 * self.sigma_0 * 2.0 ** (keypoint.q / self.Q)
        r_w = max(1.0, 2.5 * sigma_w)
        u_min = max(int(math.floor(x - r_w)), 1)
        u_max = min(int(math.ceil(x + r_w)), level.width - 2)
        v_min = max(int(math.floor(y - r_w)), 1)
        v_max = min(int(math.ceil(y + r_w)), level.height - 2)
        if u_min > u_max or v_min > v_max:
            return h_phi

        dx = np.arange(u_min, u_max + 1) - x
        dy = np.arange(v_min, v_max + 1) - y
        r2 = dy[:, None] ** 2 + dx[None, :] ** 2
        inside = r2 < r_w * r_w

        mag, phi = level.gradients_polar(u_min, u_max, v_min, v_max)
        z = mag[inside] * np.exp(-r2[inside] / (2 * sigma_w * sigma_w))
        k_phi = n_phi * phi[inside] / (2 * math.pi)
        alpha = k_phi - np.floor(k_phi)
        k0 = np.floor(k_phi).astype(int) % n_phi
        k1 = (k0 + 1) % n_phi
        np.add.at(h_phi, k0, (1 - alpha) * z)
        np.add.at(h_phi, k1, alpha * z)
        return h_phi

    def dominant_orientations(self, keypoint):
        """
        Returns:
            List of dominant orientations in [0, 2*pi) (zero, one or more)
        """
        hist = smooth_circular(self.orientation_histogram(keypoint), self.n_smooth)
        angles = find_peak_orientations(hist, self.t_dom_or)
        if not angles:
            logger.debug('no dominant orientation for %r', keypoint)
        return angles
