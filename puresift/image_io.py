"""
Image I/O utilities using PIL (Pillow)
No OpenCV dependencies.
"""

import numpy as np
from PIL import Image

# Pillow modes read as single-channel float samples without 8-bit reduction
HIGH_DEPTH_MODES = ('I', 'I;16', 'I;16B', 'I;16L', 'F')

# Pillow modes returned as they are; everything else is converted to RGB
PLAIN_MODES = ('L', 'RGB')


def read_image(filepath):
    """
    Read an image file into a numpy array.

    16-bit and float images keep their full sample range as float64.
    Palette, alpha and CMYK images are converted to RGB.

    Args:
        filepath: Path to image file

    Returns:
        (H, W) array for single-channel images, (H, W, 3) uint8 for color

    Raises:
        IOError: If the file cannot be opened or decoded
    """
    try:
        with Image.open(filepath) as img:
            if img.mode in HIGH_DEPTH_MODES:
                return np.array(img, dtype=np.float64)
            if img.mode not in PLAIN_MODES:
                img = img.convert('RGB')
            return np.array(img)
    except (OSError, ValueError) as e:
        raise IOError(f"Failed to read image from {filepath}: {str(e)}") from e


def write_image(filepath, image):
    """
    Write a grayscale or RGB array to an image file.

    Samples are clipped to [0, 255] and stored as 8-bit; a trailing
    single-channel axis is dropped. The format follows the file extension.

    Raises:
        IOError: If the array cannot be encoded or the file cannot be written
    """
    data = np.asarray(image)
    if data.ndim == 3 and data.shape[2] == 1:
        data = data[..., 0]
    if data.dtype != np.uint8:
        data = np.clip(np.rint(data), 0, 255).astype(np.uint8)

    try:
        Image.fromarray(data).save(filepath)
    except (OSError, ValueError, TypeError, KeyError) as e:
        raise IOError(f"Failed to write image to {filepath}: {str(e)}") from e


def to_grayscale(image):
    """Convert image to a single-channel float array if needed."""
    image = np.asarray(image)
    if len(image.shape) == 3:
        # RGB to grayscale using standard weights
        return np.dot(image[..., :3].astype(np.float64), [0.299, 0.587, 0.114])
    return image.astype(np.float64)


def read_grayscale(filepath):
    """Read an image file as a single-channel float array."""
    return to_grayscale(read_image(filepath))


def split_horizontally(image):
    """
    Split an image holding two side-by-side frames into its left and right half.

    Returns:
        (left, right) views of equal width
    """
    w2 = image.shape[1] // 2
    return image[:, :w2], image[:, w2:2 * w2]
