"""
improc - pixel buffers, filters, corner detectors and binary descriptor matching.
"""

from .image.buffer import PixelBuffer, ColorSpace
from .filtering.window import Padding
from .detection.keypoint import KeyPoint, Descriptor, DescriptorKind
from .core import FeatureProcessor

__all__ = [
    'PixelBuffer', 'ColorSpace', 'Padding',
    'KeyPoint', 'Descriptor', 'DescriptorKind',
    'FeatureProcessor',
]
__version__ = '1.0.0'
