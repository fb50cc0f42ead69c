"""Shared test fixtures for sign recognition tests."""

import numpy as np
import cv2
import pytest


def blocky_texture(seed, size=120, block=10):
    """Random black/white block pattern (rich in SIFT features)."""
    rng = np.random.RandomState(seed)
    cells = rng.randint(0, 2, (size // block, size // block)).astype(np.uint8) * 255
    gray = cv2.resize(cells, (size, size), interpolation=cv2.INTER_NEAREST)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2RGB)


def smooth_noise(seed, size=160):
    """Blurred random noise, unrelated to any sign."""
    rng = np.random.RandomState(seed)
    img = rng.randint(0, 255, (size, size, 3), dtype=np.uint8)
    return cv2.GaussianBlur(img, (5, 5), 0)


@pytest.fixture
def red_block_scene():
    """200x200 white scene with a 40x50 (w x h) red block at (50, 60)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[60:110, 50:90] = [200, 30, 30]
    return img


@pytest.fixture
def blue_block_scene():
    """200x200 white scene with a 60x60 blue block at (70, 70)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[70:130, 70:130] = [30, 30, 200]
    return img


@pytest.fixture
def blank_scene():
    """200x200 plain white scene."""
    return np.ones((200, 200, 3), dtype=np.uint8) * 255


@pytest.fixture
def textured_image():
    """120x120 block pattern, good for keypoint matching."""
    return blocky_texture(seed=7)


@pytest.fixture
def framed_sign():
    """120x120 sign: 15px red frame around a black/white block pattern."""
    img = np.zeros((120, 120, 3), dtype=np.uint8)
    img[:, :] = [200, 30, 30]
    img[15:105, 15:105] = blocky_texture(seed=3, size=90, block=10)
    return img


@pytest.fixture
def framed_sign_scene(framed_sign):
    """300x300 white scene with the framed sign at (90, 80)."""
    img = np.ones((300, 300, 3), dtype=np.uint8) * 255
    img[80:200, 90:210] = framed_sign
    return img


@pytest.fixture
def noise_catalog_dir(tmp_path):
    """Catalog directory with three noise signs that match nothing."""
    for i, name in enumerate(["noise_a", "noise_b", "noise_c"]):
        cv2.imwrite(str(tmp_path / f"{name}.png"), smooth_noise(seed=100 + i))
    return tmp_path


@pytest.fixture
def sign_catalog_dir(tmp_path, framed_sign):
    """Catalog directory holding the framed sign plus two noise signs."""
    cv2.imwrite(str(tmp_path / "framed.png"),
                cv2.cvtColor(framed_sign, cv2.COLOR_RGB2BGR))
    cv2.imwrite(str(tmp_path / "noise_a.png"), smooth_noise(seed=100))
    cv2.imwrite(str(tmp_path / "noise_b.png"), smooth_noise(seed=101))
    return tmp_path
