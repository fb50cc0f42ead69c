"""
Color-based detection of traffic sign candidates.

Traffic signs are dominated by saturated red or blue. The detector
compensates for uneven lighting, thresholds the scene in HSV space for
both color families, and turns the blobs of each mask into padded
candidate regions cut from the original image.

Overlapping boxes are merged greedily: a new box merges with the first
stored box it intersects and nothing else, so chains of overlaps are
not collapsed transitively.
"""

import os
import cv2
import numpy as np
import logging
from typing import List, Sequence

from .errors import ConfigurationError
from .preprocessing import (
    Box, boxes_intersect, clamp_box, compensate_lighting, inflate_box,
    normalize_image, union_box,
)
from .sign import Sign

logger = logging.getLogger(__name__)

DEFAULT_PADDING = int(os.environ.get("SIGN_CANDIDATE_PADDING", "5"))

# HSV thresholds (OpenCV hue range is 0-180). Inclusive (low, high) pairs.
RED_HUE_RANGES = ((0, 5), (170, 255))
RED_SATURATION = (130, 255)
RED_VALUE = (120, 255)

BLUE_HUE_RANGE = (100, 140)
BLUE_SATURATION = (185, 255)
BLUE_VALUE = (120, 255)

# Blob shape limits
MIN_BOX_SIZE = 20
MIN_ASPECT_RATIO = 0.80


def red_mask(hsv: np.ndarray) -> np.ndarray:
    """Binary mask of red-family pixels (hue wraps around 0)."""
    mask = np.zeros(hsv.shape[:2], dtype=np.uint8)
    for hue_low, hue_high in RED_HUE_RANGES:
        mask |= cv2.inRange(
            hsv,
            np.array([hue_low, RED_SATURATION[0], RED_VALUE[0]], dtype=np.uint8),
            np.array([hue_high, RED_SATURATION[1], RED_VALUE[1]], dtype=np.uint8),
        )
    return mask


def blue_mask(hsv: np.ndarray) -> np.ndarray:
    """Binary mask of blue-family pixels."""
    return cv2.inRange(
        hsv,
        np.array([BLUE_HUE_RANGE[0], BLUE_SATURATION[0], BLUE_VALUE[0]], dtype=np.uint8),
        np.array([BLUE_HUE_RANGE[1], BLUE_SATURATION[1], BLUE_VALUE[1]], dtype=np.uint8),
    )


def filter_and_merge_boxes(boxes: Sequence[Box],
                           padding: int = 0,
                           min_size: int = MIN_BOX_SIZE,
                           min_aspect: float = MIN_ASPECT_RATIO) -> List[Box]:
    """
    Reject badly shaped boxes and merge overlapping ones.

    For every box, in order:
        1. Drop it if narrower or shorter than `min_size`, or if
           width / height is below `min_aspect`
        2. If it intersects a stored box, remove the first such box
           and continue with the union of the two
        3. Inflate by `padding` and store it

    Args:
        boxes: Raw (x, y, w, h) bounding boxes.
        padding: Pixels added on every side of an accepted box.
        min_size: Minimum width and height.
        min_aspect: Minimum width / height ratio.

    Returns:
        Padded boxes, unclamped.
    """
    stored = []
    for box in boxes:
        x, y, w, h = box
        if w < min_size or h < min_size:
            continue
        if float(w) / h < min_aspect:
            continue

        for i, other in enumerate(stored):
            if boxes_intersect(other, box):
                box = union_box(box, other)
                del stored[i]
                break

        stored.append(inflate_box(box, padding))
    return stored


class CandidateDetector:
    """Finds red and blue sign-like regions in a scene image."""

    def __init__(self, padding: int = DEFAULT_PADDING):
        """
        Args:
            padding: Pixels added around every detected region.

        Raises:
            ConfigurationError: If padding is negative or not an integer.
        """
        self._padding = 0
        self.padding = padding
        self.last_boxes: List[Box] = []

    @property
    def padding(self) -> int:
        return self._padding

    @padding.setter
    def padding(self, value: int):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ConfigurationError(f"Padding must be an integer, got {value!r}")
        if value < 0:
            raise ConfigurationError("Negative paddings not supported.")
        self._padding = int(value)

    def find_candidates(self, image: np.ndarray) -> List[Sign]:
        """
        Look for candidate signs in an image based on color.

        Args:
            image: RGB uint8 scene image.

        Returns:
            Candidate Signs, red detections first, then blue. Empty
            list when nothing sign-like is present.
        """
        image = normalize_image(image)
        if image.ndim != 3 or image.shape[0] == 0 or image.shape[1] == 0:
            logger.warning("Candidate detection needs a non-empty color image")
            self.last_boxes = []
            return []

        if image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)

        enhanced = compensate_lighting(image)
        hsv = cv2.cvtColor(enhanced, cv2.COLOR_RGB2HSV)

        candidates = []
        candidates.extend(self._mask_to_candidates(red_mask(hsv), image))
        candidates.extend(self._mask_to_candidates(blue_mask(hsv), image))

        self.last_boxes = [c.scene_bounding_box for c in candidates]
        logger.info(f"Found {len(candidates)} sign candidates")
        return candidates

    def _mask_to_candidates(self, mask: np.ndarray,
                            context: np.ndarray) -> List[Sign]:
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL,
                                       cv2.CHAIN_APPROX_SIMPLE)
        boxes = [cv2.boundingRect(c) for c in contours]
        padded = filter_and_merge_boxes(boxes, self._padding)

        height, width = context.shape[:2]
        candidates = []
        for box in padded:
            x, y, w, h = clamp_box(box, width, height)
            if w == 0 or h == 0:
                continue
            crop = context[y:y + h, x:x + w].copy()
            candidates.append(Sign.candidate(crop, (x, y, w, h)))
        return candidates
