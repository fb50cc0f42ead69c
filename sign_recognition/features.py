"""
Keypoint extraction, descriptor indexing and geometric matching.

Uses SIFT keypoints on the height-normalized grayscale sign image. Each
catalog sign owns a FAISS flat L2 index over its descriptors, so a
candidate is always matched against one catalog sign at a time.

Match filtering follows Lowe's ratio test; the surviving
correspondences feed a RANSAC homography from the catalog sign's plane
into the candidate's plane.
"""

import os
import cv2
import faiss
import numpy as np
import logging
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# SIFT descriptor length
DESCRIPTOR_DIM = 128

# 0 keeps every keypoint SIFT finds
DEFAULT_N_FEATURES = int(os.environ.get("SIGN_SIFT_FEATURES", "0"))

# Best neighbour must be this much closer than the second best
DEFAULT_UNIQUENESS_RATIO = float(os.environ.get("SIGN_UNIQUENESS_RATIO", "0.8"))

# Max reprojection error (pixels) for a RANSAC inlier
DEFAULT_RANSAC_THRESHOLD = float(os.environ.get("SIGN_RANSAC_THRESHOLD", "1.5"))

# findHomography needs at least four point pairs
MIN_HOMOGRAPHY_MATCHES = 4


def empty_descriptors() -> np.ndarray:
    """Descriptor array with zero rows."""
    return np.empty((0, DESCRIPTOR_DIM), dtype=np.float32)


def extract_features(gray: np.ndarray,
                     n_features: int = DEFAULT_N_FEATURES
                     ) -> Tuple[list, np.ndarray]:
    """
    Detect SIFT keypoints and compute their descriptors.

    Args:
        gray: Grayscale uint8 image (normally a Sign's normalized image).
        n_features: Maximum number of keypoints, 0 for unlimited.

    Returns:
        Tuple of (keypoints, descriptors). Descriptors is a float32
        array of shape (N, 128); N is 0 when nothing was found.
    """
    sift = cv2.SIFT_create(nfeatures=n_features)
    keypoints, descriptors = sift.detectAndCompute(gray, None)

    if descriptors is None:
        return [], empty_descriptors()

    logger.debug(f"Extracted {len(keypoints)} SIFT features")
    return list(keypoints), descriptors.astype(np.float32)


def build_descriptor_index(descriptors: np.ndarray) -> faiss.Index:
    """
    Build an exact L2 index over one sign's descriptors.

    Raises:
        ValueError: If there are no descriptors to index.
    """
    if descriptors is None or len(descriptors) == 0:
        raise ValueError("Cannot index an empty descriptor set")

    data = np.ascontiguousarray(descriptors, dtype=np.float32)
    index = faiss.IndexFlatL2(data.shape[1])
    index.add(data)
    return index


def knn_match(index: faiss.Index,
              query_desc: np.ndarray,
              k: int = 2) -> List[List[cv2.DMatch]]:
    """
    Find the k nearest indexed descriptors for every query descriptor.

    FAISS reports squared L2 distances; they are converted back to
    plain L2 so ratio tests behave like OpenCV's matchers.

    Returns:
        One list of cv2.DMatch per query descriptor, nearest first.
        queryIdx refers to the query descriptors, trainIdx to the
        indexed ones.
    """
    query = np.ascontiguousarray(query_desc, dtype=np.float32)
    if query.shape[1] != index.d:
        raise ValueError(
            f"Query dimension {query.shape[1]} doesn't match "
            f"index dimension {index.d}"
        )

    k = min(k, index.ntotal)
    distances, indices = index.search(query, k)

    matches = []
    for query_idx in range(len(query)):
        neighbours = []
        for dist, train_idx in zip(distances[query_idx], indices[query_idx]):
            if train_idx < 0:
                continue
            neighbours.append(cv2.DMatch(int(query_idx), int(train_idx),
                                         float(np.sqrt(max(dist, 0.0)))))
        matches.append(neighbours)
    return matches


def filter_unique(knn_matches: Sequence[Sequence[cv2.DMatch]],
                  ratio: float = DEFAULT_UNIQUENESS_RATIO) -> List[cv2.DMatch]:
    """
    Keep only unambiguous matches (Lowe's ratio test).

    A query descriptor survives when its best neighbour is closer than
    `ratio` times the second-best one. Entries with fewer than two
    neighbours cannot be judged and are dropped.
    """
    good = []
    for neighbours in knn_matches:
        if len(neighbours) < 2:
            continue
        best, second = neighbours[0], neighbours[1]
        if best.distance < ratio * second.distance:
            good.append(best)
    return good


def estimate_homography(known_keypoints: Sequence[cv2.KeyPoint],
                        candidate_keypoints: Sequence[cv2.KeyPoint],
                        matches: Sequence[cv2.DMatch],
                        threshold: float = DEFAULT_RANSAC_THRESHOLD
                        ) -> Optional[np.ndarray]:
    """
    Estimate the homography mapping the known sign onto the candidate.

    Args:
        known_keypoints: Keypoints of the catalog sign (trainIdx side).
        candidate_keypoints: Keypoints of the candidate (queryIdx side).
        matches: Unique correspondences.
        threshold: RANSAC reprojection threshold in pixels.

    Returns:
        3x3 float64 matrix, or None when too few correspondences exist
        or the estimate is degenerate.
    """
    if len(matches) < MIN_HOMOGRAPHY_MATCHES:
        return None

    src = np.float32([known_keypoints[m.trainIdx].pt for m in matches])
    dst = np.float32([candidate_keypoints[m.queryIdx].pt for m in matches])

    homography, _ = cv2.findHomography(src.reshape(-1, 1, 2),
                                       dst.reshape(-1, 1, 2),
                                       cv2.RANSAC, threshold)
    if homography is None or not np.all(np.isfinite(homography)):
        return None
    return homography
