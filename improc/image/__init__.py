"""Pixel buffers, sample encodings and color spaces."""
