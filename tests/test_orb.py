"""Tests for the ORB pipeline and BRIEF descriptors."""

import pytest
import numpy as np

from improc.image.buffer import PixelBuffer, ColorSpace
from improc.detection.keypoint import DescriptorKind, KeyPoint, KeyPointShape, DESCRIPTOR_BYTES
from improc.detection.orb import (
    BRIEF_PATTERN, PATTERN_HALF_SIZE, PATCH_RADIUS, PATCH_U, PATCH_V,
    patch_half_widths, rotate_offsets, orientation, describe,
    brief_descriptors, rotated_brief_descriptors, build_pyramid, OrbExtractor
)
from improc.matching.matcher import match_descriptors


class TestSamplingPattern:
    """Test the fixed point-pair pattern and circular patch."""

    def test_pattern_shape_and_bounds(self):
        """Test 512 pairs inside the pattern square."""
        assert BRIEF_PATTERN.shape == (512, 4)
        assert np.abs(BRIEF_PATTERN).max() <= PATTERN_HALF_SIZE

    def test_pattern_is_stable(self):
        """Test the pattern is rebuilt identically."""
        from improc.detection.orb import _sampling_pattern
        assert np.array_equal(_sampling_pattern(), BRIEF_PATTERN)

    def test_patch_half_widths(self):
        """Test the circular patch profile."""
        widths = patch_half_widths()
        assert widths.shape == (PATCH_RADIUS + 1,)
        assert widths[0] == PATCH_RADIUS
        assert widths[PATCH_RADIUS] == 0
        assert np.all(np.diff(widths) <= 0)

    def test_patch_is_symmetric(self):
        """Test the patch offsets are symmetric around the center."""
        points = set(zip(PATCH_U.tolist(), PATCH_V.tolist()))
        assert all((-u, v) in points and (u, -v) in points for u, v in points)
        assert np.hypot(PATCH_U, PATCH_V).max() <= PATCH_RADIUS + 0.5


class TestRotation:
    """Test offset rotation."""

    def test_quarter_turn(self):
        """Test a quarter turn maps (x, y) to (-y, x)."""
        x, y = rotate_offsets(np.array([3.0]), np.array([1.0]), np.pi / 2)
        assert x[0] == pytest.approx(-1.0)
        assert y[0] == pytest.approx(3.0)

    def test_uses_unrotated_coordinates(self):
        """Test the y output is computed from the original x."""
        x, y = rotate_offsets(np.array([3.0]), np.array([1.0]), np.pi / 6)
        assert x[0] == pytest.approx(3 * np.cos(np.pi / 6) - np.sin(np.pi / 6))
        assert y[0] == pytest.approx(np.cos(np.pi / 6) + 3 * np.sin(np.pi / 6))

    def test_preserves_length(self):
        """Test rotation keeps offset lengths."""
        xs, ys = BRIEF_PATTERN[:, 0], BRIEF_PATTERN[:, 1]
        rx, ry = rotate_offsets(xs, ys, 1.1)
        assert np.allclose(np.hypot(rx, ry), np.hypot(xs, ys))


class TestOrientation:
    """Test intensity-centroid orientation."""

    def test_bright_right_half(self):
        """Test a brighter right side points along +x."""
        image = np.zeros((51, 51), dtype=np.uint8)
        image[:, 26:] = 200
        assert orientation(image, 25, 25) == pytest.approx(0.0)

    def test_bright_bottom_half(self):
        """Test a brighter lower side points along +y."""
        image = np.zeros((51, 51), dtype=np.uint8)
        image[26:, :] = 200
        assert orientation(image, 25, 25) == pytest.approx(np.pi / 2)

    def test_uniform_patch(self):
        """Test a flat patch has zero angle."""
        image = np.full((51, 51), 80, dtype=np.uint8)
        assert orientation(image, 25, 25) == pytest.approx(0.0)


class TestDescriptors:
    """Test BRIEF sampling."""

    @pytest.fixture
    def texture(self):
        rng = np.random.default_rng(99)
        return rng.integers(0, 256, size=(101, 101), dtype=np.uint8)

    def test_descriptor_layout(self, texture):
        """Test 64 packed bytes of the requested variant."""
        descriptor = describe(texture, 50, 50, 0.0)
        assert descriptor.kind is DescriptorKind.ROTATED_BRIEF
        assert descriptor.bits.shape == (DESCRIPTOR_BYTES,)

    def test_bits_follow_pattern(self, texture):
        """Test bit i compares the two points of pair i."""
        descriptor = describe(texture, 50, 50, 0.0, DescriptorKind.BRIEF)
        x1, y1, x2, y2 = BRIEF_PATTERN.T
        expected = texture[50 + y1, 50 + x1] < texture[50 + y2, 50 + x2]
        assert np.array_equal(descriptor.to_bools(), expected)

    def test_rotation_invariance(self, texture):
        """Test rotating image and angle together gives the same descriptor."""
        rotated = np.rot90(texture, -1)
        assert describe(texture, 50, 50, 0.0) == describe(rotated, 50, 50, np.pi / 2)
        assert describe(texture, 50, 50, 0.0) != describe(rotated, 50, 50, 0.0)

    def test_border_samples_are_clamped(self, texture):
        """Test keypoints near the border still get descriptors."""
        descriptor = describe(texture, 2, 98, 0.7)
        assert descriptor.bits.shape == (DESCRIPTOR_BYTES,)

    def test_brief_descriptors(self, texture):
        """Test BRIEF attaches unrotated descriptors."""
        buffer = PixelBuffer(np.repeat(texture[:, :, np.newaxis], 3, axis=2))
        keypoints = brief_descriptors(buffer, [KeyPoint(50.0, 50.0, angle=1.0)])
        assert keypoints[0].descriptor.kind is DescriptorKind.BRIEF
        assert keypoints[0].descriptor == describe(texture, 50, 50, 0.0, DescriptorKind.BRIEF)

    def test_rotated_brief_descriptors(self, texture):
        """Test rotated BRIEF uses the stored angle."""
        buffer = PixelBuffer(texture, color=ColorSpace.GRAY)
        keypoints = rotated_brief_descriptors(buffer, [KeyPoint(50.0, 50.0, angle=1.0)])
        assert keypoints[0].descriptor == describe(texture, 50, 50, 1.0)


class TestPyramid:
    """Test pyramid construction."""

    def test_level_sizes(self):
        """Test each level halves the previous one."""
        buffer = PixelBuffer(np.zeros((64, 48), dtype=np.uint8), color=ColorSpace.GRAY)
        pyramid = build_pyramid(buffer, 4)
        assert [(level.height, level.width) for level in pyramid] == [
            (64, 48), (32, 24), (16, 12), (8, 6)
        ]
        assert pyramid[0] is buffer

    def test_stops_when_too_small(self):
        """Test the pyramid ends before an empty level."""
        buffer = PixelBuffer(np.zeros((3, 3), dtype=np.uint8), color=ColorSpace.GRAY)
        assert len(build_pyramid(buffer, 4)) == 2


class TestOrbExtractor:
    """Test the full ORB pipeline."""

    def test_keypoint_attributes(self, make_canvas, make_rgb):
        """Test ORB keypoints carry orientation and rotated descriptors."""
        keypoints = OrbExtractor().detect_and_compute(make_rgb(make_canvas(blocks=200)))
        assert keypoints
        for kp in keypoints:
            assert kp.descriptor.kind is DescriptorKind.ROTATED_BRIEF
            assert kp.shape is KeyPointShape.SQUARE
            assert kp.color == (255, 0, 0)
            assert -np.pi <= kp.angle <= np.pi

    def test_flat_image(self):
        """Test a flat image has no ORB keypoints."""
        buffer = PixelBuffer(np.full((120, 120, 3), 50, dtype=np.uint8))
        assert OrbExtractor().detect_and_compute(buffer) == []

    def test_suppression_radius(self, make_canvas, make_rgb):
        """Test suppression leaves no stronger keypoint inside the radius."""
        keypoints = OrbExtractor(nms_radius=8.0).detect_and_compute(make_rgb(make_canvas(blocks=200)))
        for a in keypoints:
            for b in keypoints:
                if np.hypot(a.x - b.x, a.y - b.y) <= 8.0:
                    assert a.score == b.score
        unsuppressed = OrbExtractor(nms_radius=0.0).detect_and_compute(make_rgb(make_canvas(blocks=200)))
        assert len(keypoints) <= len(unsuppressed)

    def test_translation_matching(self, make_canvas):
        """Test matches between shifted crops recover the shift."""
        canvas = make_canvas(blocks=200)
        first = canvas[0:180, 0:180]
        second = canvas[8:188, 16:196]

        extractor = OrbExtractor(nms_radius=0.0)
        source = extractor.detect_and_compute(PixelBuffer(first, color=ColorSpace.GRAY))
        target = extractor.detect_and_compute(PixelBuffer(second, color=ColorSpace.GRAY))

        matches = match_descriptors(source, target, 0.8)
        assert len(matches) >= 3
        correct = [
            (s, t) for s, t in matches
            if t.x - s.x == -16 and t.y - s.y == -8
        ]
        assert len(correct) >= 0.8 * len(matches)
