"""
Image preprocessing for sign detection and matching.

Handles dtype normalization, height normalization of sign images, the
lighting compensation applied before color segmentation, and the small
set of rectangle helpers used when merging candidate regions.

Rectangles are (x, y, w, h) tuples throughout, matching what
cv2.boundingRect returns.
"""

import os
import cv2
import numpy as np
import logging
from typing import Tuple

logger = logging.getLogger(__name__)

# Every sign image is rescaled to this height before feature extraction
SIGN_HEIGHT = int(os.environ.get("SIGN_HEIGHT", "100"))

# Lighting compensation parameters
BILATERAL_DIAMETER = 5
BILATERAL_SIGMA = 1
CONTRAST_GAIN = 2.0
CONTRAST_BIAS = 1.0

Box = Tuple[int, int, int, int]


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 format."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = image_np.astype(np.uint8)
    return image_np


def to_gray(image_np: np.ndarray) -> np.ndarray:
    """Convert an RGB (or already gray) image to single channel."""
    image_np = normalize_image(image_np)
    if len(image_np.shape) == 3:
        if image_np.shape[2] == 4:
            return cv2.cvtColor(image_np, cv2.COLOR_RGBA2GRAY)
        return cv2.cvtColor(image_np, cv2.COLOR_RGB2GRAY)
    return image_np


def normalize_height(image_np: np.ndarray,
                     height: int = SIGN_HEIGHT) -> np.ndarray:
    """
    Convert a sign image to grayscale and resize it to a fixed height.

    The aspect ratio is preserved. Shrinking uses area averaging,
    enlarging uses bicubic interpolation.

    Args:
        image_np: RGB or grayscale image.
        height: Target height in pixels.

    Returns:
        Grayscale uint8 image `height` pixels tall.

    Raises:
        ValueError: If the image is empty.
    """
    if image_np.size == 0:
        raise ValueError("Cannot normalize an empty image")

    gray = to_gray(image_np)
    h, w = gray.shape[:2]

    width = max(1, int(round(w * height / float(h))))
    interpolation = cv2.INTER_AREA if h > height else cv2.INTER_CUBIC
    return cv2.resize(gray, (width, height), interpolation=interpolation)


def compensate_lighting(image_np: np.ndarray) -> np.ndarray:
    """
    Prepare a scene image for color thresholding.

    Process:
        1. Edge-preserving bilateral smoothing
        2. Histogram equalization of the luma channel in YCrCb space
        3. Back to RGB with a fixed contrast gain

    Args:
        image_np: RGB uint8 image.

    Returns:
        Enhanced RGB uint8 image of the same size.
    """
    image_np = normalize_image(image_np)
    smooth = cv2.bilateralFilter(image_np, BILATERAL_DIAMETER,
                                 BILATERAL_SIGMA, BILATERAL_SIGMA)

    ycc = cv2.cvtColor(smooth, cv2.COLOR_RGB2YCrCb)
    y_ch, cr_ch, cb_ch = cv2.split(ycc)
    y_eq = cv2.equalizeHist(y_ch)
    smooth = cv2.cvtColor(cv2.merge((y_eq, cr_ch, cb_ch)), cv2.COLOR_YCrCb2RGB)

    return cv2.convertScaleAbs(smooth, alpha=CONTRAST_GAIN, beta=CONTRAST_BIAS)


def boxes_intersect(a: Box, b: Box) -> bool:
    """True if the rectangles overlap. Touching edges do not count."""
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah


def union_box(a: Box, b: Box) -> Box:
    """Smallest rectangle enclosing both rectangles."""
    x1 = min(a[0], b[0])
    y1 = min(a[1], b[1])
    x2 = max(a[0] + a[2], b[0] + b[2])
    y2 = max(a[1] + a[3], b[1] + b[3])
    return x1, y1, x2 - x1, y2 - y1


def inflate_box(box: Box, amount: int) -> Box:
    """Grow a rectangle by `amount` pixels on every side."""
    x, y, w, h = box
    return x - amount, y - amount, w + 2 * amount, h + 2 * amount


def clamp_box(box: Box, width: int, height: int) -> Box:
    """
    Clip a rectangle to the image area.

    The result may have zero width or height when the rectangle lies
    completely outside the image.
    """
    x, y, w, h = box
    x1 = min(max(0, x), width)
    y1 = min(max(0, y), height)
    x2 = min(max(0, x + w), width)
    y2 = min(max(0, y + h), height)
    return x1, y1, x2 - x1, y2 - y1
