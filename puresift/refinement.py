"""
Sub-pixel keypoint localization and rejection of weak or edge-like peaks.
"""

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

# determinants below this are treated as zero
DET_EPSILON = 1e-12


def gradient(nh):
    """
    3D gradient (dx, dy, ds) at the center of a neighborhood nh[s, x, y]
    by central differences.
    """
    return np.array([
        0.5 * (nh[1, 2, 1] - nh[1, 0, 1]),
        0.5 * (nh[1, 1, 2] - nh[1, 1, 0]),
        0.5 * (nh[2, 1, 1] - nh[0, 1, 1]),
    ])


def hessian(nh):
    """
    3x3 Hessian matrix at the center of a neighborhood nh[s, x, y]:

        | dxx dxy dxs |
        | dxy dyy dys |
        | dxs dys dss |
    """
    c2 = 2.0 * nh[1, 1, 1]
    dxx = nh[1, 0, 1] - c2 + nh[1, 2, 1]
    dyy = nh[1, 1, 0] - c2 + nh[1, 1, 2]
    dss = nh[0, 1, 1] - c2 + nh[2, 1, 1]
    dxy = (nh[1, 2, 2] - nh[1, 0, 2] - nh[1, 2, 0] + nh[1, 0, 0]) * 0.25
    dxs = (nh[2, 2, 1] - nh[2, 0, 1] - nh[0, 2, 1] + nh[0, 0, 1]) * 0.25
    dys = (nh[2, 1, 2] - nh[2, 1, 0] - nh[0, 1, 2] + nh[0, 1, 0]) * 0.25
    return np.array([[dxx, dxy, dxs],
                     [dxy, dyy, dys],
                     [dxs, dys, dss]])


def max_curvature_ratio(rho_max):
    """Upper bound on trace(H)^2 / det(H) for principal curvature ratio rho_max."""
    return (rho_max + 1.0) ** 2 / rho_max


def _step(d):
    # move by at most one lattice unit, rounding half up
    return min(1, max(-1, int(math.floor(d + 0.5))))


class KeypointRefiner:
    """
    Iterative sub-pixel localization of DoG extrema.

    Each candidate is refined by fitting a quadratic to the local DoG
    function. If the fitted peak lies more than half a pixel away, the
    candidate moves to the neighboring lattice cell (never along the scale
    axis) and the fit is repeated, at most n_refine times.
    """

    def __init__(self, dog, params):
        self.dog = dog
        self.n_refine = params.n_refine
        self.t_peak = params.t_peak
        self.a_max = max_curvature_ratio(params.rho_max)

    def refine(self, keypoint):
        """
        Refine a candidate keypoint.

        Args:
            keypoint: KeyPoint at an integer lattice position

        Returns:
            A new, refined KeyPoint, or None if the candidate was rejected
        """
        p, q = keypoint.p, keypoint.q
        u, v = keypoint.u, keypoint.v
        octave = self.dog.octave(p)

        n = 1
        while n <= self.n_refine and octave.is_inside(q, u, v):
            nh = octave.neighborhood(q, u, v)
            grad = gradient(nh)
            hess = hessian(nh)
            if abs(np.linalg.det(hess)) < DET_EPSILON:
                logger.debug('singular Hessian at p=%d q=%d u=%d v=%d', p, q, u, v)
                return None

            d = -np.linalg.solve(hess, grad)
            xx, yy = d[0], d[1]
            if abs(xx) < 0.5 and abs(yy) < 0.5:
                return self._accept(keypoint, nh, grad, hess, d, u, v)

            u += _step(xx)
            v += _step(yy)
            n += 1

        logger.debug('no convergence for %r', keypoint)
        return None

    def _accept(self, keypoint, nh, grad, hess, d, u, v):
        d_peak = nh[1, 1, 1] + 0.5 * float(np.dot(grad, d))
        if abs(d_peak) <= self.t_peak:
            return None

        dxx, dxy, dyy = hess[0, 0], hess[0, 1], hess[1, 1]
        det_xy = dxx * dyy - dxy * dxy
        if det_xy <= 0:
            return None
        # curvature ratio of the spatial Hessian only
        if (dxx + dyy) ** 2 / det_xy > self.a_max:
            return None

        p, q = keypoint.p, keypoint.q
        x, y = u + float(d[0]), v + float(d[1])
        return keypoint.replace(
            u=u, v=v, x=x, y=y,
            x_real=float(self.dog.real_x(p, x)),
            y_real=float(self.dog.real_y(p, y)),
            scale=self.dog.absolute_scale(p, q))
