"""
Scale-space keypoint record.
"""


class KeyPoint:
    """
    Candidate or refined scale-space extremum.

    Attributes:
        p: Octave index
        q: Level index within the octave
        u, v: Lattice coordinates (integers, octave-local)
        x, y: Refined continuous coordinates (octave-local)
        x_real, y_real: Position in original image coordinates
        scale: Absolute scale of level (p, q)
        magnitude: Absolute DoG response at detection time
    """

    __slots__ = ('p', 'q', 'u', 'v', 'x', 'y', 'x_real', 'y_real', 'scale', 'magnitude')

    def __init__(self, p, q, u, v, x, y, x_real, y_real, scale, magnitude):
        self.p = p
        self.q = q
        self.u = u
        self.v = v
        self.x = x
        self.y = y
        self.x_real = x_real
        self.y_real = y_real
        self.scale = scale
        self.magnitude = magnitude

    def replace(self, **changes):
        """Return a copy with some fields changed."""
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return KeyPoint(**values)

    def __eq__(self, other):
        if not isinstance(other, KeyPoint):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in self.__slots__)

    def __hash__(self):
        return hash(tuple(getattr(self, n) for n in self.__slots__))

    def __repr__(self):
        return (f"KeyPoint(p={self.p}, q={self.q}, u={self.u}, v={self.v}, "
                f"x={self.x:.2f}, y={self.y:.2f}, scale={self.scale:.2f}, "
                f"mag={self.magnitude:.4f})")


def sort_by_magnitude(keypoints):
    """Stable sort by descending response magnitude."""
    return sorted(keypoints, key=lambda kp: kp.magnitude, reverse=True)
