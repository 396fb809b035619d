"""
Exceptions raised by the SIFT pipeline.

Only construction-level problems are exceptional. Candidates rejected during
detection (singular Hessian, low contrast, edge response, no dominant
orientation) are filtered out silently and never raise.
"""


class DegenerateImageError(ValueError):
    """
    Raised when an input image cannot carry any scale-space response,
    e.g. all samples are equal or the array is not a non-empty 2D grid.
    """
