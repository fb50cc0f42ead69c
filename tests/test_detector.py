"""Tests for color-based candidate detection."""

import numpy as np
import pytest

from sign_recognition.detector import CandidateDetector, filter_and_merge_boxes
from sign_recognition.errors import ConfigurationError


class TestPaddingConfiguration:
    """Tests for detector configuration."""

    def test_negative_padding_rejected(self):
        with pytest.raises(ConfigurationError):
            CandidateDetector(padding=-1)

    def test_negative_padding_rejected_on_assignment(self):
        detector = CandidateDetector(padding=3)
        with pytest.raises(ConfigurationError):
            detector.padding = -2
        assert detector.padding == 3

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            CandidateDetector(padding=-5)

    def test_zero_padding_allowed(self):
        assert CandidateDetector(padding=0).padding == 0


class TestFilterAndMergeBoxes:
    """Tests for the box filtering / merging step."""

    def test_small_boxes_rejected(self):
        assert filter_and_merge_boxes([(0, 0, 19, 40), (0, 0, 40, 19)]) == []

    def test_elongated_box_rejected(self):
        # width / height = 0.5
        assert filter_and_merge_boxes([(0, 0, 30, 60)]) == []

    def test_aspect_ratio_boundary_accepted(self):
        # width / height = 0.8 exactly
        assert filter_and_merge_boxes([(10, 10, 40, 50)]) == [(10, 10, 40, 50)]

    def test_wide_box_accepted(self):
        assert filter_and_merge_boxes([(0, 0, 90, 30)]) == [(0, 0, 90, 30)]

    def test_padding_inflates_box(self):
        assert filter_and_merge_boxes([(10, 10, 30, 30)], padding=5) == [(5, 5, 40, 40)]

    def test_overlapping_boxes_merge_into_one(self):
        boxes = [(0, 0, 30, 30), (20, 20, 30, 30)]
        assert filter_and_merge_boxes(boxes) == [(0, 0, 50, 50)]

    def test_touching_boxes_do_not_merge(self):
        boxes = [(0, 0, 30, 30), (30, 0, 30, 30)]
        assert len(filter_and_merge_boxes(boxes)) == 2

    def test_padding_causes_merge(self):
        boxes = [(0, 0, 30, 30), (34, 0, 30, 30)]
        merged = filter_and_merge_boxes(boxes, padding=5)
        assert len(merged) == 1

    def test_merge_is_first_match_only(self):
        # The third box bridges the first two but only merges with the first
        boxes = [(0, 0, 30, 30), (100, 0, 30, 30), (25, 0, 80, 30)]
        merged = filter_and_merge_boxes(boxes)
        assert len(merged) == 2
        assert (100, 0, 30, 30) in merged
        assert (0, 0, 105, 30) in merged


class TestFindCandidates:
    """Tests for scene-level detection."""

    def test_blank_scene_returns_empty_list(self, blank_scene):
        candidates = CandidateDetector(padding=5).find_candidates(blank_scene)
        assert candidates == []

    def test_red_block_detected(self, red_block_scene):
        candidates = CandidateDetector(padding=0).find_candidates(red_block_scene)
        assert len(candidates) == 1
        assert candidates[0].scene_bounding_box == (50, 60, 40, 50)

    def test_red_block_padded(self, red_block_scene):
        candidates = CandidateDetector(padding=5).find_candidates(red_block_scene)
        assert len(candidates) == 1
        assert candidates[0].scene_bounding_box == (45, 55, 50, 60)
        assert candidates[0].image.shape == (60, 50, 3)

    def test_candidate_cut_from_original_image(self, red_block_scene):
        candidate = CandidateDetector(padding=0).find_candidates(red_block_scene)[0]
        assert np.array_equal(candidate.image, red_block_scene[60:110, 50:90])

    def test_candidates_are_unlabeled(self, red_block_scene):
        candidate = CandidateDetector().find_candidates(red_block_scene)[0]
        assert candidate.name is None
        assert not candidate.is_catalog_sign

    def test_blue_block_detected(self, blue_block_scene):
        candidates = CandidateDetector(padding=0).find_candidates(blue_block_scene)
        assert len(candidates) == 1
        assert candidates[0].scene_bounding_box == (70, 70, 60, 60)

    def test_red_candidates_come_before_blue(self):
        img = np.ones((200, 300, 3), dtype=np.uint8) * 255
        img[50:110, 20:80] = [30, 30, 200]
        img[50:110, 200:260] = [200, 30, 30]
        candidates = CandidateDetector(padding=0).find_candidates(img)
        assert [c.scene_bounding_box[0] for c in candidates] == [200, 20]

    def test_tall_blob_rejected(self):
        img = np.ones((200, 200, 3), dtype=np.uint8) * 255
        img[20:180, 80:110] = [200, 30, 30]
        assert CandidateDetector().find_candidates(img) == []

    def test_tiny_blob_rejected(self):
        img = np.ones((200, 200, 3), dtype=np.uint8) * 255
        img[50:65, 50:65] = [200, 30, 30]
        assert CandidateDetector().find_candidates(img) == []

    def test_nearby_blobs_merge(self):
        img = np.ones((200, 200, 3), dtype=np.uint8) * 255
        img[60:100, 40:80] = [200, 30, 30]
        img[60:100, 84:124] = [200, 30, 30]
        candidates = CandidateDetector(padding=5).find_candidates(img)
        assert len(candidates) == 1
        x, y, w, h = candidates[0].scene_bounding_box
        assert x <= 40 and x + w >= 124

    def test_boxes_clamped_to_image(self):
        img = np.ones((200, 200, 3), dtype=np.uint8) * 255
        img[0:40, 160:200] = [200, 30, 30]
        candidates = CandidateDetector(padding=10).find_candidates(img)
        assert len(candidates) == 1
        x, y, w, h = candidates[0].scene_bounding_box
        assert x >= 0 and y >= 0
        assert x + w <= 200 and y + h <= 200
        assert candidates[0].image.shape[:2] == (h, w)

    def test_last_boxes_recorded(self, red_block_scene):
        detector = CandidateDetector(padding=0)
        detector.find_candidates(red_block_scene)
        assert detector.last_boxes == [(50, 60, 40, 50)]

    def test_grayscale_input_returns_empty(self):
        gray = np.ones((100, 100), dtype=np.uint8) * 128
        assert CandidateDetector().find_candidates(gray) == []

    def test_rgba_scene_detected(self, red_block_scene):
        alpha = np.full(red_block_scene.shape[:2] + (1,), 255, dtype=np.uint8)
        rgba = np.dstack([red_block_scene, alpha])
        candidates = CandidateDetector(padding=0).find_candidates(rgba)
        assert len(candidates) == 1
        assert candidates[0].scene_bounding_box == (50, 60, 40, 50)
        assert candidates[0].image.shape == (50, 40, 3)
