"""
Sign entity shared by catalog entries and detected candidates.

A Sign keeps the original color crop, a height-normalized grayscale copy
used for feature extraction, and lazily computed keypoints/descriptors.
Catalog signs additionally own a read-only descriptor index that
candidates are matched against.
"""

import logging
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from .errors import InvalidOperationError
from .features import build_descriptor_index, extract_features, knn_match
from .preprocessing import Box, normalize_height, normalize_image

logger = logging.getLogger(__name__)

Extractor = Callable[[np.ndarray], Tuple[list, np.ndarray]]


class Sign:
    """A catalog (known) sign or an unlabeled candidate region."""

    def __init__(self, image: np.ndarray, name: Optional[str] = None,
                 is_catalog_sign: bool = False,
                 scene_bounding_box: Optional[Box] = None):
        """
        Args:
            image: RGB (or grayscale) uint8 image of the sign.
            name: Label of a catalog sign, None for candidates.
            is_catalog_sign: Build a descriptor index for this sign.
            scene_bounding_box: (x, y, w, h) region of the scene the
                candidate was cut from.
        """
        self._image = normalize_image(image)
        self._normalized_image = normalize_height(self._image)
        self.name = name
        self.is_catalog_sign = is_catalog_sign
        self.scene_bounding_box = scene_bounding_box
        self.keypoints = None
        self.descriptors = None
        self._index = None

    @classmethod
    def catalog(cls, image: np.ndarray, name: str) -> "Sign":
        return cls(image, name=name, is_catalog_sign=True)

    @classmethod
    def candidate(cls, image: np.ndarray, scene_bounding_box: Box) -> "Sign":
        return cls(image, scene_bounding_box=scene_bounding_box)

    @property
    def image(self) -> np.ndarray:
        return self._image

    @property
    def normalized_image(self) -> np.ndarray:
        return self._normalized_image

    @property
    def has_descriptors(self) -> bool:
        return self.descriptors is not None and len(self.descriptors) > 0

    @property
    def index(self):
        """Descriptor index of a catalog sign (None until computed)."""
        return self._index

    def ensure_descriptors(self, extractor: Extractor = extract_features) -> bool:
        """
        Compute keypoints and descriptors unless they already exist.

        Catalog signs build their descriptor index here, once.

        Returns:
            True if the sign has descriptors afterwards.
        """
        if self.has_descriptors:
            return True

        keypoints, descriptors = extractor(self._normalized_image)
        self.keypoints = list(keypoints)
        self.descriptors = descriptors

        if self.is_catalog_sign and self.has_descriptors:
            self._index = build_descriptor_index(descriptors)

        return self.has_descriptors

    def match(self, other: "Sign", k: int = 2) -> List[List[cv2.DMatch]]:
        """
        kNN-match another sign's descriptors against this catalog sign.

        The other sign is the query side (queryIdx), this sign the
        train side (trainIdx).

        Raises:
            InvalidOperationError: If this is not a catalog sign or
                either sign has no descriptors.
        """
        if not self.is_catalog_sign:
            raise InvalidOperationError("Only catalog signs support matching.")
        if not other.has_descriptors:
            raise InvalidOperationError("Other sign has no descriptors to match.")
        if not self.has_descriptors or self._index is None:
            raise InvalidOperationError("Current sign has no descriptors to match.")

        return knn_match(self._index, other.descriptors, k=k)

    def __repr__(self):
        kind = "catalog" if self.is_catalog_sign else "candidate"
        h, w = self._image.shape[:2]
        return f"Sign({kind}, name={self.name!r}, size={w}x{h}, box={self.scene_bounding_box})"
