"""Overlay rendering for recognition results."""

import cv2
import numpy as np
import logging
from typing import Sequence

from .match import Match
from .preprocessing import normalize_image
from .scoring import project_corners
from .sign import Sign

logger = logging.getLogger(__name__)

# RGB colors
CANDIDATE_COLOR = (20, 20, 255)
MATCH_COLOR = (50, 255, 50)
OUTLINE_COLOR = (255, 0, 0)


def _paste(canvas: np.ndarray, patch: np.ndarray, x: int, y: int):
    """Copy patch onto canvas at (x, y), clipped to the canvas."""
    h, w = canvas.shape[:2]
    x1, y1 = max(0, x), max(0, y)
    x2 = min(w, x + patch.shape[1])
    y2 = min(h, y + patch.shape[0])
    if x2 <= x1 or y2 <= y1:
        return
    canvas[y1:y2, x1:x2] = patch[y1 - y:y2 - y, x1 - x:x2 - x]


def draw_signs(image: np.ndarray, matches: Sequence[Match],
               candidates: Sequence[Sign]) -> np.ndarray:
    """
    Draw raw candidates and recognized signs on a copy of the scene.

    Candidates get a thin box, matches a thick one plus the matched
    catalog image scaled to the box width, drawn below the box or above
    it when there is no room below.
    """
    result = normalize_image(image).copy()
    if result.ndim == 2:
        result = cv2.cvtColor(result, cv2.COLOR_GRAY2RGB)
    height = result.shape[0]

    for candidate in candidates:
        x, y, w, h = candidate.scene_bounding_box
        cv2.rectangle(result, (x, y), (x + w, y + h), CANDIDATE_COLOR, 1)

    for match in matches:
        x, y, w, h = match.bounding_box
        cv2.rectangle(result, (x, y), (x + w, y + h), MATCH_COLOR, 3)

        sign_image = match.known_sign.image
        if sign_image.ndim == 2:
            sign_image = cv2.cvtColor(sign_image, cv2.COLOR_GRAY2RGB)
        sh, sw = sign_image.shape[:2]
        new_h = max(1, int(round(sh * w / float(sw))))
        interpolation = cv2.INTER_AREA if w < sw else cv2.INTER_CUBIC
        thumb = cv2.resize(sign_image, (w, new_h), interpolation=interpolation)

        if y + h + new_h > height:
            _paste(result, thumb, x, y - new_h)
        else:
            _paste(result, thumb, x, y + h)

    return result


def draw_correspondences(match: Match) -> np.ndarray:
    """
    Render the feature correspondences of a match side by side.

    The catalog sign is on the left, the candidate on the right; the
    catalog sign's outline is projected into the candidate.
    """
    known = cv2.cvtColor(match.known_sign.normalized_image, cv2.COLOR_GRAY2RGB)
    candidate = cv2.cvtColor(match.candidate.normalized_image, cv2.COLOR_GRAY2RGB)

    # drawMatches expects query = first image, so swap the indices
    swapped = [cv2.DMatch(m.trainIdx, m.queryIdx, m.distance)
               for m in match.correspondences]
    result = cv2.drawMatches(known, match.known_sign.keypoints or [],
                             candidate, match.candidate.keypoints or [],
                             swapped, None,
                             matchColor=(255, 255, 255),
                             singlePointColor=(255, 255, 255))

    if match.homography is not None:
        h, w = known.shape[:2]
        pts = project_corners(match.homography, w, h)
        if np.all(np.isfinite(pts)):
            pts = np.round(pts + [w, 0]).astype(np.int32).reshape(-1, 1, 2)
            cv2.polylines(result, [pts], True, OUTLINE_COLOR, 2)

    return result
