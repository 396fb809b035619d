"""
Parameters for SIFT detection and matching.

All options carry the defaults recommended by Lowe and used throughout
this package; a modified instance may be passed to the detector.
"""

import json
from enum import Enum


class NeighborhoodType(Enum):
    """
    Types of 3D neighborhoods used in min/max detection.
    The value of each member is the number of neighbors compared.
    """
    NH8 = 8
    NH10 = 10
    NH18 = 18
    NH26 = 26

    @classmethod
    def parse(cls, value):
        """Accept a member, its name ('NH18') or its neighbor count (18)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if not name.startswith('NH'):
                name = 'NH' + name
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"Unknown neighborhood type: {value!r}") from None
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"Unknown neighborhood type: {value!r}") from None

    @property
    def offsets(self):
        """Neighbor offsets (ds, dx, dy) compared for this neighborhood type."""
        return NEIGHBOR_OFFSETS[self]


# 8 neighbors in scale plane q
_PLANE = tuple((0, dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)
               if (dx, dy) != (0, 0))
# same (u, v) in planes q-1 and q+1
_AXIAL = ((-1, 0, 0), (1, 0, 0))
# 4-neighbors in planes q-1 and q+1
_CROSS = tuple((ds, dx, dy) for ds in (-1, 1)
               for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)))
# remaining corners of the cube
_CORNERS = tuple((ds, dx, dy) for ds in (-1, 1)
                 for dx in (-1, 1) for dy in (-1, 1))

NEIGHBOR_OFFSETS = {
    NeighborhoodType.NH8: _PLANE,
    NeighborhoodType.NH10: _PLANE + _AXIAL,
    NeighborhoodType.NH18: _PLANE + _AXIAL + _CROSS,
    NeighborhoodType.NH26: _PLANE + _AXIAL + _CROSS + _CORNERS,
}


class SiftParameters:
    """
    Bundle of SIFT detector options.

    Attributes:
        nh_type: Neighborhood used for peak detection in 3D scale space
        sigma_s: Sampling scale (nominal smoothing of the input image)
        sigma_0: Base scale at level 0 (base smoothing)
        num_octaves: Number of octaves P in the Gaussian/DoG scale space
        num_levels: Scale steps (levels) Q per octave
        t_mag: Minimum DoG magnitude required in peak detection
        t_peak: Minimum DoG magnitude of interpolated peaks (defaults to t_mag)
        t_extrm: Minimum difference to all neighbors in peak detection
        n_refine: Maximum number of position refinement steps
        rho_max: Maximum principal curvature ratio (3..10)
        n_orient: Number of orientation histogram bins
        n_smooth: Number of smoothing passes applied to the orientation histogram
        t_dom_or: Minimum histogram value for dominant orientations (rel. to max.)
        n_spat: Number of spatial descriptor bins along each axis
        n_angl: Number of angular descriptor bins
        t_fclip: Maximum value in the normalized feature vector
        s_fscale: Scale factor for converting normalized features to integers
        s_desc: Spatial size factor of the descriptor (rel. to feature scale)
        sort_keypoints: Sort keypoints by descending response magnitude
        workers: Thread count for per-level/per-keypoint fan-out (None = sequential)
    """

    def __init__(self, nh_type=NeighborhoodType.NH18, sigma_s=0.5, sigma_0=1.6,
                 num_octaves=4, num_levels=3, t_mag=0.01, t_peak=None,
                 t_extrm=0.0, n_refine=5, rho_max=10.0, n_orient=36,
                 n_smooth=2, t_dom_or=0.8, n_spat=4, n_angl=8, t_fclip=0.2,
                 s_fscale=512.0, s_desc=10.0, sort_keypoints=True,
                 workers=None):
        self.nh_type = NeighborhoodType.parse(nh_type)
        self.sigma_s = float(sigma_s)
        self.sigma_0 = float(sigma_0)
        self.num_octaves = int(num_octaves)
        self.num_levels = int(num_levels)
        self.t_mag = float(t_mag)
        self._t_peak = None if t_peak is None else float(t_peak)
        self.t_extrm = float(t_extrm)
        self.n_refine = int(n_refine)
        self.rho_max = float(rho_max)
        self.n_orient = int(n_orient)
        self.n_smooth = int(n_smooth)
        self.t_dom_or = float(t_dom_or)
        self.n_spat = int(n_spat)
        self.n_angl = int(n_angl)
        self.t_fclip = float(t_fclip)
        self.s_fscale = float(s_fscale)
        self.s_desc = float(s_desc)
        self.sort_keypoints = bool(sort_keypoints)
        self.workers = None if workers is None else int(workers)
        self._validate()

    def _validate(self):
        for name in ('num_octaves', 'num_levels', 'n_refine', 'n_orient',
                     'n_spat', 'n_angl'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.n_smooth < 0:
            raise ValueError(f"n_smooth must be >= 0, got {self.n_smooth}")
        if self.sigma_s < 0:
            raise ValueError(f"sigma_s must be >= 0, got {self.sigma_s}")
        if self.sigma_0 * 2 ** (-1.0 / self.num_levels) < self.sigma_s:
            raise ValueError(
                f"sigma_0={self.sigma_0} is too small for sigma_s={self.sigma_s} "
                f"with {self.num_levels} levels per octave")
        if not 3.0 <= self.rho_max <= 10.0:
            raise ValueError(f"rho_max must be in [3, 10], got {self.rho_max}")
        if not 0.0 < self.t_dom_or <= 1.0:
            raise ValueError(f"t_dom_or must be in (0, 1], got {self.t_dom_or}")
        for name in ('t_fclip', 's_fscale', 's_desc'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        for name in ('t_mag', 't_peak', 't_extrm'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    @property
    def t_peak(self):
        """Peak threshold; follows t_mag unless it was set explicitly."""
        return self.t_mag if self._t_peak is None else self._t_peak

    @property
    def feature_length(self):
        """Length of the integer feature vector (n_spat^2 * n_angl)."""
        return self.n_spat * self.n_spat * self.n_angl

    @classmethod
    def from_dict(cls, values):
        """
        Create parameters from a mapping of option names.

        Args:
            values: Mapping of option name to value

        Returns:
            SiftParameters instance

        Raises:
            ValueError: If the mapping contains unknown option names
        """
        known = set(cls().as_dict())
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown SIFT parameter(s): {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def load(cls, filepath):
        """Read parameters from a JSON file holding a single object."""
        with open(filepath, 'r', encoding='utf-8') as f:
            values = json.load(f)
        if not isinstance(values, dict):
            raise ValueError(f"Expected a JSON object in {filepath}")
        return cls.from_dict(values)

    def as_dict(self):
        """Option values by name; 't_peak' is None while it follows t_mag."""
        return {
            'nh_type': self.nh_type.name,
            'sigma_s': self.sigma_s,
            'sigma_0': self.sigma_0,
            'num_octaves': self.num_octaves,
            'num_levels': self.num_levels,
            't_mag': self.t_mag,
            't_peak': self._t_peak,
            't_extrm': self.t_extrm,
            'n_refine': self.n_refine,
            'rho_max': self.rho_max,
            'n_orient': self.n_orient,
            'n_smooth': self.n_smooth,
            't_dom_or': self.t_dom_or,
            'n_spat': self.n_spat,
            'n_angl': self.n_angl,
            't_fclip': self.t_fclip,
            's_fscale': self.s_fscale,
            's_desc': self.s_desc,
            'sort_keypoints': self.sort_keypoints,
            'workers': self.workers,
        }

    def replace(self, **changes):
        """Return a copy with some options changed."""
        values = self.as_dict()
        values.update(changes)
        return SiftParameters(**values)

    def __repr__(self):
        args = ', '.join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"SiftParameters({args})"
