"""
SIFT (Scale-Invariant Feature Transform) detector
using only NumPy and SciPy - no OpenCV dependencies.
"""

import logging

from .descriptor import DescriptorBuilder
from .extrema import ExtremaDetector
from .keypoint import sort_by_magnitude
from .orientation import OrientationEstimator, find_peak_orientations, smooth_circular
from .parallel import fan_out
from .params import SiftParameters
from .refinement import KeypointRefiner
from .scale_space import DogScaleSpace, GaussianScaleSpace

logger = logging.getLogger(__name__)


class SiftDetector:
    """
    Scale-Invariant Feature Transform (SIFT) detector.

    The Gaussian and DoG scale spaces are built once, in the constructor,
    and are only read afterwards. The pipeline is:
    1. Scale-space extrema detection
    2. Keypoint refinement and filtering
    3. Orientation assignment
    4. Keypoint descriptor
    """

    def __init__(self, image, params=None, **overrides):
        """
        Initialize SIFT detector.

        Args:
            image: Single-channel image (2D array), normalized to [0, 1] internally
            params: SiftParameters (defaults are used if None)
            **overrides: Individual parameters replacing those in params

        Raises:
            DegenerateImageError: If the image is flat or not a 2D grid
        """
        params = params or SiftParameters()
        if overrides:
            params = params.replace(**overrides)
        self.params = params

        self.gaussian = GaussianScaleSpace(image, params.sigma_s, params.sigma_0,
                                           params.num_octaves, params.num_levels)
        self.dog = DogScaleSpace(self.gaussian)

        self.extrema_detector = ExtremaDetector(self.dog, params)
        self.refiner = KeypointRefiner(self.dog, params)
        self.orientation_estimator = OrientationEstimator(self.gaussian, params)
        self.descriptor_builder = DescriptorBuilder(self.gaussian, params)

    def get_keypoints(self):
        """
        Detect and refine keypoints over all octaves p and levels q in [0, Q-1].

        Returns:
            List of refined KeyPoints, sorted by descending magnitude
            if params.sort_keypoints is set
        """
        params = self.params
        levels = [(p, q) for p in range(params.num_octaves)
                  for q in range(params.num_levels)]
        logger.debug('Finding scale-space extrema...')
        per_level = fan_out(self._keypoints_at_level, levels, params.workers)
        keypoints = [kp for level_keypoints in per_level for kp in level_keypoints]
        logger.debug('%d keypoints after refinement', len(keypoints))
        if params.sort_keypoints:
            keypoints = sort_by_magnitude(keypoints)
        return keypoints

    def _keypoints_at_level(self, level):
        p, q = level
        refined = []
        for candidate in self.extrema_detector.find_extrema(p, q):
            keypoint = self.refiner.refine(candidate)
            if keypoint is not None:
                refined.append(keypoint)
        return refined

    def get_sift_features(self):
        """
        Detect keypoints and compute one descriptor per dominant orientation.

        Returns:
            List of SiftDescriptor objects in keypoint order
        """
        keypoints = self.get_keypoints()
        logger.debug('Computing orientations and descriptors...')
        per_keypoint = fan_out(self._descriptors_for, keypoints, self.params.workers)
        descriptors = [d for kp_descriptors in per_keypoint for d in kp_descriptors]
        logger.debug('%d descriptors from %d keypoints', len(descriptors), len(keypoints))
        return descriptors

    def _descriptors_for(self, keypoint):
        return [self.descriptor_builder.make_descriptor(keypoint, phi)
                for phi in self.orientation_estimator.dominant_orientations(keypoint)]

    def get_rich_keypoints(self):
        """
        Keypoints together with their smoothed orientation histograms and
        dominant orientations, for inspection and illustration.

        Returns:
            List of dictionaries with keys 'keypoint', 'histogram', 'orientations'
        """
        estimator = self.orientation_estimator
        rich = []
        for keypoint in self.get_keypoints():
            hist = smooth_circular(estimator.orientation_histogram(keypoint),
                                   self.params.n_smooth)
            rich.append({
                'keypoint': keypoint,
                'histogram': hist,
                'orientations': find_peak_orientations(hist, self.params.t_dom_or),
            })
        return rich


def detect_features(image, params=None, **overrides):
    """
    Detect SIFT features in a single-channel image.

    Args:
        image: 2D array
        params: SiftParameters (optional)

    Returns:
        List of SiftDescriptor objects
    """
    return SiftDetector(image, params, **overrides).get_sift_features()
