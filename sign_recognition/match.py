"""Accepted pairing of a candidate region with a catalog sign."""

from typing import List, NamedTuple, Optional

import cv2
import numpy as np

from .preprocessing import Box
from .sign import Sign


class Match(NamedTuple):
    """A candidate paired with the catalog sign it matched best."""

    candidate: Sign
    known_sign: Sign
    score: int
    correspondences: List[cv2.DMatch]
    homography: np.ndarray

    @property
    def label(self) -> Optional[str]:
        return self.known_sign.name

    @property
    def bounding_box(self) -> Optional[Box]:
        return self.candidate.scene_bounding_box
