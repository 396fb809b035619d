"""
Drawing of SIFT features and matches on numpy RGB images.
"""

import numpy as np

FEATURE_COLOR = (0, 255, 0)
MATCH_COLOR = (255, 0, 255)


def to_display_rgb(image):
    """Scale an image to uint8 and convert it to 3-channel RGB."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = image.astype(np.float64)
        lo, hi = image.min(), image.max()
        scale = 255.0 / (hi - lo) if hi > lo else 0.0
        image = ((image - lo) * scale).astype(np.uint8)
    if image.ndim == 2:
        image = np.stack([image, image, image], axis=2)
    return image[..., :3].copy()


def draw_features(image, descriptors, feature_scale=1.0, color=FEATURE_COLOR,
                  offset=(0, 0)):
    """
    Draw the marker polygon of every descriptor.

    Args:
        image: Image to draw on (any dtype; converted to RGB)
        descriptors: Iterable of SiftDescriptor
        feature_scale: Marker size relative to the feature scale
        color: RGB color
        offset: (dx, dy) added to all marker coordinates

    Returns:
        New RGB image with markers drawn
    """
    vis = to_display_rgb(image)
    for d in descriptors:
        _draw_marker(vis, d, feature_scale, color, offset)
    return vis


def draw_matches(img1, img2, matches, max_matches=25, feature_scale=1.0):
    """
    Create side-by-side visualization of feature matches.

    Args:
        img1: First image
        img2: Second image
        matches: List of SiftMatch (best first)
        max_matches: Maximum number of matches to draw

    Returns:
        Visualization image with markers and connecting lines
    """
    matches_to_draw = matches[:max_matches]
    a = to_display_rgb(img1)
    b = to_display_rgb(img2)
    h1, w1 = a.shape[:2]
    h2, w2 = b.shape[:2]

    vis = np.zeros((max(h1, h2), w1 + w2, 3), dtype=np.uint8)
    vis[:h1, :w1] = a
    vis[:h2, w1:w1 + w2] = b

    for m in matches_to_draw:
        _draw_marker(vis, m.descriptor1, feature_scale, FEATURE_COLOR, (0, 0))
        _draw_marker(vis, m.descriptor2, feature_scale, FEATURE_COLOR, (w1, 0))
    for m in matches_to_draw:
        pt1 = (int(round(m.descriptor1.x)), int(round(m.descriptor1.y)))
        pt2 = (int(round(m.descriptor2.x)) + w1, int(round(m.descriptor2.y)))
        draw_line(vis, pt1, pt2, MATCH_COLOR)
    return vis


def _draw_marker(image, descriptor, feature_scale, color, offset):
    ox, oy = offset
    pts = [(int(round(x + ox)), int(round(y + oy)))
           for x, y in descriptor.marker_polygon(feature_scale)]
    for pt1, pt2 in zip(pts, pts[1:] + pts[:1]):
        draw_line(image, pt1, pt2, color)


def draw_line(image, pt1, pt2, color):
    """Draw line on image using Bresenham's algorithm."""
    x1, y1 = pt1
    x2, y2 = pt2

    steep = abs(y2 - y1) > abs(x2 - x1)
    if steep:
        x1, y1 = y1, x1
        x2, y2 = y2, x2
    if x1 > x2:
        x1, x2 = x2, x1
        y1, y2 = y2, y1

    dx = x2 - x1
    dy = abs(y2 - y1)
    error = dx / 2
    ystep = 1 if y1 < y2 else -1
    y = y1

    h, w = image.shape[:2]
    for x in range(x1, x2 + 1):
        row, col = (x, y) if steep else (y, x)
        if 0 <= row < h and 0 <= col < w:
            image[row, col] = color
        error -= dy
        if error < 0:
            y += ystep
            error += dx
