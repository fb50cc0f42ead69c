"""
Tiered scoring of a candidate / catalog sign pairing.

The score is an integer, higher is better, and the tiers are strictly
ordered:

    0   no usable homography, or the projected sign outline is not a
        physically plausible quadrilateral
    1   plausible outline but too small or too skewed to judge further
    2+  outline passed every geometric check; the warped catalog sign
        is correlated with the candidate and 2 + the scaled
        correlation is returned
"""

import os
import cv2
import numpy as np
import logging
from typing import Optional

from .sign import Sign

logger = logging.getLogger(__name__)

SCORE_REJECTED = 0
SCORE_GEOMETRY_ONLY = 1
SCORE_APPEARANCE_BASE = 2

# Projected diagonals' product must reach known height / MIN_SIZE_DIVISOR
MIN_SIZE_DIVISOR = 5.0

# Max relative difference between the projected diagonals
MAX_DIAGONAL_DEVIATION = 0.2

# Normalized correlation (0-1) is scaled before flooring to an integer
CORRELATION_SCALE = float(os.environ.get("SIGN_CORRELATION_SCALE", "100"))


def project_corners(homography: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Map the corners of a width x height image through a homography.

    Returns:
        (4, 2) array ordered top-left, top-right, bottom-right,
        bottom-left.
    """
    corners = np.float32([
        [0, 0],
        [width, 0],
        [width, height],
        [0, height],
    ]).reshape(-1, 1, 2)
    return cv2.perspectiveTransform(corners, homography).reshape(4, 2)


def corners_preserve_order(pts: np.ndarray) -> bool:
    """
    Check that projected corners still form a rectangle-like outline.

    Each corner is compared with its horizontal neighbour and the
    opposite corner in x, and with the two corners of the other row
    in y.
    """
    tl, tr, br, bl = pts

    if tl[0] > tr[0] or tl[0] > br[0]:
        return False
    if tl[1] > br[1] or tl[1] > bl[1]:
        return False

    if tr[0] < tl[0] or tr[0] < bl[0]:
        return False
    if tr[1] > br[1] or tr[1] > bl[1]:
        return False

    if br[0] < tl[0] or br[0] < bl[0]:
        return False
    if br[1] < tl[1] or br[1] < tr[1]:
        return False

    if bl[0] > tr[0] or bl[0] > br[0]:
        return False
    if bl[1] < tl[1] or bl[1] < tr[1]:
        return False

    return True


def correlate(known: Sign, candidate: Sign, homography: np.ndarray) -> float:
    """
    Normalized correlation between the warped catalog sign and the candidate.

    The catalog sign's grayscale image is warped into the candidate's
    frame, so both images have the same size.
    """
    target = candidate.normalized_image
    h, w = target.shape[:2]
    warped = cv2.warpPerspective(known.normalized_image, homography, (w, h),
                                 flags=cv2.INTER_LINEAR)
    result = cv2.matchTemplate(target, warped, cv2.TM_CCOEFF_NORMED)
    result = np.nan_to_num(result, nan=0.0, posinf=0.0, neginf=0.0)
    return float(result.max())


def score_match(homography: Optional[np.ndarray], known: Sign,
                candidate: Sign) -> int:
    """
    Score a pairing, higher is better.

    Args:
        homography: 3x3 matrix mapping the known sign onto the
            candidate, or None if none could be estimated.
        known: Catalog sign.
        candidate: Candidate sign.

    Returns:
        Integer score (see module docstring for the tiers).
    """
    if homography is None:
        return SCORE_REJECTED

    height, width = known.normalized_image.shape[:2]
    pts = project_corners(homography, width, height)
    if not np.all(np.isfinite(pts)):
        return SCORE_REJECTED

    if not corners_preserve_order(pts):
        return SCORE_REJECTED

    diagonal1 = float(np.linalg.norm(pts[2] - pts[0]))
    diagonal2 = float(np.linalg.norm(pts[1] - pts[3]))
    if diagonal1 * diagonal2 < height / MIN_SIZE_DIVISOR:
        return SCORE_GEOMETRY_ONLY

    if diagonal2 == 0 or abs(1.0 - diagonal1 / diagonal2) > MAX_DIAGONAL_DEVIATION:
        return SCORE_GEOMETRY_ONLY

    correlation = correlate(known, candidate, homography)
    logger.debug(f"Appearance correlation {correlation:.3f} for {known.name}")
    return SCORE_APPEARANCE_BASE + int(np.floor(max(correlation, 0.0) * CORRELATION_SCALE))
