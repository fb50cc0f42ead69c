"""
End-to-end traffic sign recognition.

Wires the candidate detector and the sign matcher together: the catalog
is loaded once, then every scene image goes through detection,
descriptor computation and matching.
"""

import time
import logging
from typing import Any, Dict, Optional

import numpy as np

from .catalog import read_image
from .detector import DEFAULT_PADDING, CandidateDetector
from .matcher import SignMatcher

logger = logging.getLogger(__name__)


class SignRecognizer:
    """Detects and identifies traffic signs in scene images."""

    def __init__(self, catalog_dir: str,
                 padding: int = DEFAULT_PADDING,
                 detector: Optional[CandidateDetector] = None,
                 matcher: Optional[SignMatcher] = None):
        """
        Args:
            catalog_dir: Directory with one known sign image per file.
            padding: Candidate padding, used when no detector is given.
            detector: Preconfigured detector.
            matcher: Preconfigured matcher.

        Raises:
            ConfigurationError: On negative padding or a missing
                catalog directory.
        """
        self.detector = detector or CandidateDetector(padding)
        self.matcher = matcher or SignMatcher()
        self.catalog_report = self.matcher.load_catalog(catalog_dir)

    def recognize(self, image: np.ndarray) -> Dict[str, Any]:
        """
        Find catalog signs in a scene image.

        Args:
            image: RGB uint8 scene image.

        Returns:
            Dict with 'matches' (list of Match), 'candidates' (list of
            candidate Signs), 'candidate_boxes' (their scene boxes) and
            'elapsed_ms'.
        """
        start = time.perf_counter()

        candidates = self.detector.find_candidates(image)
        self.matcher.set_candidates(candidates)
        matches = self.matcher.match_all(candidates, self.matcher.known_signs)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Recognition complete: {len(matches)} hits from "
            f"{len(candidates)} candidates in {elapsed_ms:.0f} ms"
        )

        return {
            "matches": matches,
            "candidates": candidates,
            "candidate_boxes": [c.scene_bounding_box for c in candidates],
            "elapsed_ms": elapsed_ms,
        }

    def recognize_file(self, path: str) -> Dict[str, Any]:
        """
        Read an image file and run recognize() on it.

        Raises:
            ValueError: If the file cannot be read as an image.
        """
        image = read_image(path)
        if image is None:
            raise ValueError(f"Could not read image: {path}")
        return self.recognize(image)
