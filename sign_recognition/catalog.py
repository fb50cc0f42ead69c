"""
Catalog loading from a directory of labeled sign images.

Every file in the directory is one known sign; the file name without
extension is its label. Files that cannot be decoded, or in which no
features are found, are skipped and reported instead of aborting the
whole load.
"""

import os
import logging
from typing import List, Tuple

import cv2

from .errors import ConfigurationError
from .features import extract_features
from .sign import Extractor, Sign

logger = logging.getLogger(__name__)


def read_image(path: str):
    """Read an image file as RGB uint8, or None if it cannot be decoded."""
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        return None
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def load_catalog(catalog_dir: str,
                 extractor: Extractor = extract_features
                 ) -> Tuple[List[Sign], dict]:
    """
    Load every file in a directory as a catalog sign.

    Args:
        catalog_dir: Directory with one sign image per file.
        extractor: Keypoint/descriptor extractor.

    Returns:
        Tuple of (signs, report). The report dict holds 'success',
        'loaded', 'errors' counts and 'skipped', a list of
        {'filename', 'reason'} dicts.

    Raises:
        ConfigurationError: If catalog_dir is not a directory.
    """
    if not catalog_dir or not os.path.isdir(catalog_dir):
        raise ConfigurationError(f"Cannot open folder: {catalog_dir}")

    filenames = sorted(
        f for f in os.listdir(catalog_dir)
        if os.path.isfile(os.path.join(catalog_dir, f))
    )

    signs = []
    skipped = []

    logger.info(f"Loading catalog from {len(filenames)} files in {catalog_dir}")

    for filename in filenames:
        filepath = os.path.join(catalog_dir, filename)
        try:
            image = read_image(filepath)
            if image is None:
                logger.warning(f"Could not read: {filename}")
                skipped.append({"filename": filename, "reason": "unreadable image"})
                continue

            name = os.path.splitext(filename)[0]
            sign = Sign.catalog(image, name)
            if not sign.ensure_descriptors(extractor):
                logger.warning(f"No features found in {filename}")
                skipped.append({"filename": filename, "reason": "no features"})
                continue

            signs.append(sign)

        except Exception as e:
            logger.warning(f"Failed to load {filename}: {e}")
            skipped.append({"filename": filename, "reason": str(e)})

    logger.info(
        f"Catalog loaded: {len(signs)} signs, {len(skipped)} skipped"
    )

    report = {
        "success": bool(signs),
        "loaded": len(signs),
        "errors": len(skipped),
        "skipped": skipped,
    }
    return signs, report
