"""Tests for sliding windows, convolution and rank filters."""

import pytest
import numpy as np

from improc.exceptions import PreconditionError
from improc.image.buffer import PixelBuffer, ColorSpace
from improc.image.encoding import FLOAT32
from improc.filtering.window import Padding, sliding_window
from improc.filtering.filters import (
    convolve, non_linear_filter, median_filter, blur,
    gaussian_kernel, gaussian_blur, sobel, sobel_gradients
)
from improc.utils.metrics import mse
from improc.utils.noise import salt_and_pepper


def ramp(width=48, height=48):
    """u8 RGB buffer whose value grows by 2 per column, starting at 64."""
    row = (64 + 2 * np.arange(width)).astype(np.uint8)
    data = np.repeat(np.tile(row, (height, 1))[:, :, np.newaxis], 3, axis=2)
    return PixelBuffer(data)


class TestSlidingWindow:
    """Test window offsets and padding."""

    def test_offsets_in_row_major_order(self):
        """Test every window offset is visited once."""
        buffer = PixelBuffer(np.arange(12, dtype=np.uint8).reshape(3, 4))
        offsets = [(wi, wj) for wi, wj, _ in sliding_window(buffer, 1, 2)]
        assert offsets == [(wi, wj) for wi in range(3) for wj in range(5)]

    def test_samples_match_buffer_shape(self):
        """Test each yielded view covers the whole buffer."""
        buffer = PixelBuffer(np.zeros((5, 7, 3), dtype=np.uint8))
        for _, _, samples in sliding_window(buffer, 2, 1):
            assert samples.shape == buffer.shape

    def test_repeat_padding_clamps(self):
        """Test out-of-range samples repeat the nearest edge."""
        data = np.arange(9, dtype=np.uint8).reshape(3, 3)
        buffer = PixelBuffer(data)
        windows = {(wi, wj): s[:, :, 0] for wi, wj, s in sliding_window(buffer, 1, 1, Padding.REPEAT)}
        # Top-left offset sees the pixel up and to the left, clamped at the border
        assert windows[(0, 0)][0, 0] == data[0, 0]
        assert windows[(0, 0)][2, 2] == data[1, 1]
        assert windows[(2, 2)][2, 2] == data[2, 2]

    def test_zero_padding(self):
        """Test out-of-range samples read the encoding minimum."""
        buffer = PixelBuffer(np.full((3, 3), 200, dtype=np.uint8))
        windows = {(wi, wj): s[:, :, 0] for wi, wj, s in sliding_window(buffer, 1, 1, Padding.ZEROS)}
        assert windows[(0, 0)][0, 0] == 0
        assert windows[(0, 0)][1, 1] == 200
        assert windows[(1, 1)].min() == 200

    def test_negative_window(self):
        """Test negative half-sizes are refused."""
        buffer = PixelBuffer(np.zeros((3, 3), dtype=np.uint8))
        with pytest.raises(ValueError):
            list(sliding_window(buffer, -1, 0))


class TestConvolution:
    """Test the linear filter family."""

    def test_identity_kernel(self, random_rgb):
        """Test a centered unit kernel leaves u8 samples untouched."""
        original = random_rgb.data.copy()
        kernel = [0, 0, 0, 0, 1, 0, 0, 0, 0]
        convolve(random_rgb, 1, 1, kernel)
        assert np.array_equal(random_rgb.data, original)

    def test_shift_with_zero_padding(self):
        """Test a top-left kernel shifts content and fills the border with zeros."""
        buffer = PixelBuffer(np.full((4, 4), 1.0, dtype=np.float32))
        convolve(buffer, 1, 1, [1, 0, 0, 0, 0, 0, 0, 0, 0], Padding.ZEROS)
        plane = buffer.data[:, :, 0]
        assert np.all(plane[0, :] == 0.0)
        assert np.all(plane[:, 0] == 0.0)
        assert np.all(plane[1:, 1:] == 1.0)

    def test_reads_a_snapshot(self):
        """Test writes during filtering do not leak into later reads."""
        data = np.zeros((1, 5), dtype=np.float32)
        data[0, 2] = 1.0
        buffer = PixelBuffer(data)
        convolve(buffer, 0, 1, [1, 1, 1], Padding.ZEROS)
        assert buffer.data[0, :, 0].tolist() == [0.0, 1.0, 1.0, 1.0, 0.0]

    def test_kernel_size_mismatch(self, random_rgb):
        """Test the kernel must fill the window."""
        with pytest.raises(PreconditionError):
            convolve(random_rgb, 1, 1, [1, 2, 3])

    def test_blur_keeps_constant_image(self):
        """Test box blur of a flat image."""
        buffer = PixelBuffer(np.full((6, 6, 3), 100, dtype=np.uint8))
        blur(buffer, 2)
        assert np.all(buffer.data == 100)

    def test_blur_averages(self):
        """Test box blur spreads an impulse evenly."""
        data = np.zeros((5, 5), dtype=np.float32)
        data[2, 2] = 9.0
        buffer = blur(PixelBuffer(data), 1, Padding.ZEROS)
        assert np.allclose(buffer.data[1:4, 1:4, 0], 1.0)
        assert buffer.data[0, 0, 0] == 0.0

    def test_gaussian_kernel(self):
        """Test Gaussian kernel shape and normalization."""
        kernel = gaussian_kernel(2, 1.0)
        assert kernel.shape == (25,)
        assert kernel.sum() == pytest.approx(1.0, abs=1e-6)
        assert kernel.argmax() == 12
        grid = kernel.reshape(5, 5)
        assert np.allclose(grid, grid.T)
        assert np.allclose(grid, grid[::-1, ::-1])

    @pytest.mark.parametrize("window, sigma", [
        (0, 0.5), (1, 1.0), (2, 1.0), (3, 0.7), (4, 5.0), (6, 0.3)
    ])
    def test_gaussian_kernel_sums_to_one(self, window, sigma):
        """Test normalization for any window and sigma."""
        kernel = gaussian_kernel(window, sigma)
        assert kernel.shape == ((2 * window + 1) ** 2,)
        assert kernel.sum() == pytest.approx(1.0, abs=1e-5)
        assert np.all(kernel >= 0)

    @pytest.mark.parametrize("sigma", [0.0, -1.0])
    def test_gaussian_kernel_needs_positive_sigma(self, sigma):
        """Test non-positive sigma is refused."""
        with pytest.raises(PreconditionError):
            gaussian_kernel(1, sigma)

    def test_gaussian_blur_smooths_step(self):
        """Test a step edge is softened but keeps its mean."""
        data = np.zeros((8, 8), dtype=np.float32)
        data[:, 4:] = 1.0
        buffer = gaussian_blur(PixelBuffer(data.copy()), 1, 1.0)
        plane = buffer.data[:, :, 0]
        assert 0.0 < plane[0, 3] < 0.5 < plane[0, 4] < 1.0
        assert plane.mean() == pytest.approx(data.mean(), abs=1e-6)


class TestRankFilters:
    """Test the non-linear filter family."""

    def test_non_linear_filter_receives_window_axis(self):
        """Test the reducer sees every window sample."""
        buffer = PixelBuffer(np.arange(9, dtype=np.float32).reshape(3, 3))
        non_linear_filter(buffer, 1, 1, lambda samples: samples.max(axis=-1))
        assert buffer.data[0, 0, 0] == 4.0
        assert buffer.data[1, 1, 0] == 8.0

    def test_median_removes_impulse(self):
        """Test a lone bright pixel disappears."""
        data = np.zeros((5, 5, 3), dtype=np.uint8)
        data[2, 2] = 255
        buffer = median_filter(PixelBuffer(data), 1)
        assert buffer.data.max() == 0

    def test_median_window_zero_is_identity(self, random_rgb):
        """Test a 1x1 median changes nothing."""
        original = random_rgb.data.copy()
        median_filter(random_rgb, 0)
        assert np.array_equal(random_rgb.data, original)

    @pytest.mark.parametrize("window", [1, 2, 3])
    def test_median_reduces_salt_and_pepper(self, window):
        """Test median filtering a noisy ramp lowers its error."""
        clean = ramp()
        noisy = salt_and_pepper(ramp(), 25, seed=42)
        noisy_error = mse(clean, noisy)

        filtered = median_filter(noisy.copy(), window)
        assert mse(clean, filtered) < noisy_error

    def test_wide_median_nearly_restores_ramp(self):
        """Test a 7x7 median recovers the ramp from 25% noise."""
        clean = ramp()
        filtered = median_filter(salt_and_pepper(ramp(), 25, seed=42), 3)
        assert mse(clean, filtered) < 1e-3


class TestSobel:
    """Test gradient magnitude."""

    def test_vertical_edge(self):
        """Test a vertical step produces a normalized response on the edge."""
        data = np.zeros((10, 10, 3), dtype=np.uint8)
        data[:, 5:] = 255
        magnitude = sobel(PixelBuffer(data))

        assert magnitude.channels == 1
        assert magnitude.color is ColorSpace.GRAY
        assert magnitude.encoding is FLOAT32
        assert magnitude.data.max() == pytest.approx(1.0)
        plane = magnitude.data[:, :, 0]
        assert np.allclose(plane[:, 4:6], 1.0)
        assert np.all(plane[:, :3] == 0.0)
        assert np.all(plane[:, 7:] == 0.0)

    def test_gradient_signs(self):
        """Test horizontal gradient is along x and vertical along y."""
        data = np.zeros((6, 6), dtype=np.float32)
        data[:, 3:] = 1.0
        gx, gy = sobel_gradients(PixelBuffer(data))
        assert np.any(gx.data != 0.0)
        assert np.all(gy.data == 0.0)

    def test_flat_image(self):
        """Test a flat image gives a zero, finite magnitude."""
        magnitude = sobel(PixelBuffer(np.full((5, 5), 0.3, dtype=np.float32)))
        assert np.all(np.isfinite(magnitude.data))
        assert magnitude.data.max() == 0.0
