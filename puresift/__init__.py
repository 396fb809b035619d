"""
Pure implementation of SIFT feature detection and matching without OpenCV.

This package provides a complete implementation of Lowe's Scale-Invariant
Feature Transform using only NumPy, SciPy, and Pillow (no OpenCV).

Main components:
- Scale space: hierarchical Gaussian and Difference-of-Gaussians octaves
- Detection: 3D extrema search, sub-pixel refinement, edge rejection
- Description: dominant orientations and 4x4x8 gradient histograms
- Feature Matching: Brute-force matcher with Lowe's ratio test

Example usage:
    from puresift.image_io import read_grayscale
    from puresift.sift import SiftDetector
    from puresift.matcher import SiftMatcher

    features_a = SiftDetector(read_grayscale('left.png')).get_sift_features()
    features_b = SiftDetector(read_grayscale('right.png')).get_sift_features()
    matches = SiftMatcher().match(features_a, features_b)
"""

__version__ = '1.0.0'

from .errors import DegenerateImageError
from .params import NeighborhoodType, SiftParameters
from .keypoint import KeyPoint
from .scale_space import GaussianScaleSpace, DogScaleSpace
from .descriptor import NormType, SiftDescriptor
from .sift import SiftDetector, detect_features
from .matcher import SiftMatch, SiftMatcher
from .image_io import read_image, read_grayscale, write_image

__all__ = [
    'DegenerateImageError',
    'NeighborhoodType',
    'SiftParameters',
    'KeyPoint',
    'GaussianScaleSpace',
    'DogScaleSpace',
    'NormType',
    'SiftDescriptor',
    'SiftDetector',
    'detect_features',
    'SiftMatch',
    'SiftMatcher',
    'read_image',
    'read_grayscale',
    'write_image',
]
