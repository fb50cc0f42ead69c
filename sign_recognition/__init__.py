"""
sign_recognition — Traffic sign detection and catalog matching.

Finds red and blue sign-like regions in a scene by color, then matches
each region against a catalog of known sign images with SIFT keypoints,
FAISS nearest-neighbor search and homography validation.

Modules:
    pipeline       SignRecognizer, detection + matching in one call
    detector       Color-based candidate detection
    matcher        SignMatcher, candidate vs. catalog matching
    scoring        Tiered geometric / appearance scoring
    catalog        Loading known signs from a directory
    sign           Sign entity (catalog sign or candidate)
    match          Match entity
    features       SIFT extraction, FAISS kNN, ratio test, homography
    preprocessing  Image normalization, lighting, box helpers
    drawing        Result overlays
    errors         Exception hierarchy
"""

from .detector import CandidateDetector
from .errors import ConfigurationError, InvalidOperationError, SignRecognitionError
from .match import Match
from .matcher import SignMatcher
from .pipeline import SignRecognizer
from .sign import Sign

__version__ = "1.0.0"

__all__ = [
    "CandidateDetector",
    "ConfigurationError",
    "InvalidOperationError",
    "Match",
    "Sign",
    "SignMatcher",
    "SignRecognitionError",
    "SignRecognizer",
]
