"""
Matching of candidate regions against the sign catalog.

Every candidate is compared with every catalog sign:
    1. kNN descriptor matching (k = 2) against the catalog sign's index
    2. Ratio test to drop ambiguous correspondences
    3. RANSAC homography from the catalog sign onto the candidate
    4. Tiered geometric / appearance score

The best-scoring catalog sign per candidate becomes a Match when its
score is positive. Failures on a single item are logged and skipped so
one bad image never aborts the run.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .catalog import load_catalog
from .features import (
    DEFAULT_RANSAC_THRESHOLD, DEFAULT_UNIQUENESS_RATIO, estimate_homography,
    extract_features, filter_unique,
)
from .match import Match
from .scoring import SCORE_REJECTED, score_match
from .sign import Extractor, Sign

logger = logging.getLogger(__name__)


class SignMatcher:
    """
    Owns the sign catalog and matches candidates against it.

    The catalog is read-only once loaded, so candidates may be matched
    from several threads against the same SignMatcher.
    """

    def __init__(self,
                 extractor: Extractor = extract_features,
                 uniqueness_ratio: float = DEFAULT_UNIQUENESS_RATIO,
                 ransac_threshold: float = DEFAULT_RANSAC_THRESHOLD):
        """
        Args:
            extractor: Keypoint/descriptor extractor for all signs.
            uniqueness_ratio: Lowe's ratio test threshold.
            ransac_threshold: Homography inlier distance in pixels.
        """
        self.extractor = extractor
        self.uniqueness_ratio = uniqueness_ratio
        self.ransac_threshold = ransac_threshold
        self.known_signs: List[Sign] = []
        self.candidates: List[Sign] = []
        self.matches: List[Match] = []

    def load_catalog(self, path: str) -> dict:
        """
        Read every file in `path` as a catalog sign.

        Returns:
            Load report (see catalog.load_catalog).

        Raises:
            ConfigurationError: If path is not a directory.
        """
        self.known_signs, report = load_catalog(path, self.extractor)
        return report

    def set_candidates(self, candidates: Sequence[Sign]) -> dict:
        """
        Accept detector output and compute missing descriptors.

        A candidate whose extraction fails keeps no descriptors and is
        ignored by match_all.

        Returns:
            Dict with 'prepared' count and 'skipped', a list of
            {'index', 'reason'} dicts.
        """
        self.candidates = list(candidates)
        skipped = []

        for i, candidate in enumerate(self.candidates):
            try:
                if not candidate.ensure_descriptors(self.extractor):
                    logger.warning(f"No features found in candidate {i}")
                    skipped.append({"index": i, "reason": "no features"})
            except Exception as e:
                logger.warning(f"Descriptor computation failed for candidate {i}: {e}")
                skipped.append({"index": i, "reason": str(e)})

        return {
            "prepared": len(self.candidates) - len(skipped),
            "skipped": skipped,
        }

    def match_pair(self, candidate: Sign, known: Sign
                   ) -> Tuple[int, List[cv2.DMatch], Optional[np.ndarray]]:
        """
        Score one candidate against one catalog sign.

        Returns:
            Tuple of (score, unique correspondences, homography). The
            homography is None when it could not be estimated.

        Raises:
            InvalidOperationError: If either sign has no descriptors.
        """
        knn_matches = known.match(candidate, k=2)
        unique = filter_unique(knn_matches, self.uniqueness_ratio)
        homography = estimate_homography(known.keypoints, candidate.keypoints,
                                         unique, self.ransac_threshold)
        score = score_match(homography, known, candidate)
        return score, unique, homography

    def best_match(self, candidate: Sign,
                   catalog: Sequence[Sign]) -> Optional[Match]:
        """
        Find the best catalog sign for one candidate.

        Ties keep the first catalog sign reaching the top score.

        Returns:
            Match, or None if no pairing scored above zero.
        """
        best_score = SCORE_REJECTED
        best = None

        for known in catalog:
            try:
                score, correspondences, homography = self.match_pair(candidate, known)
            except Exception as e:
                logger.warning(f"Matching against {known.name} failed: {e}")
                continue

            logger.debug(f"Candidate {candidate.scene_bounding_box} vs {known.name}: {score}")

            if score > best_score:
                best_score = score
                best = Match(candidate, known, score, correspondences, homography)

        return best

    def match_all(self,
                  candidates: Optional[Sequence[Sign]] = None,
                  catalog: Optional[Sequence[Sign]] = None) -> List[Match]:
        """
        Match candidates against catalog signs.

        Args:
            candidates: Candidate signs (defaults to set_candidates input).
            catalog: Catalog signs (defaults to the loaded catalog).

        Returns:
            At most one Match per candidate, in candidate order.
        """
        candidates = self.candidates if candidates is None else candidates
        catalog = self.known_signs if catalog is None else catalog

        matches = []
        if not candidates or not catalog:
            self.matches = matches
            return []

        for candidate in candidates:
            if not candidate.has_descriptors:
                logger.debug(f"Skipping candidate without descriptors: {candidate}")
                continue

            match = self.best_match(candidate, catalog)
            if match is not None and match.score > 0:
                matches.append(match)

        logger.info(
            f"Matching complete: {len(candidates)} candidates x "
            f"{len(catalog)} signs -> {len(matches)} matches"
        )
        self.matches = matches
        return matches
