"""
RasterLib - Raster primitives and algorithms

This module provides the pixel buffer, background segmentation,
mask painting and compositing used by Open Cutout sessions.
"""

from OC_Libs.RasterLib.image_models import RenderMode, RgbaColor
from OC_Libs.RasterLib.pixel_buffer import PixelBuffer
from OC_Libs.RasterLib.mask_layer import MaskLayer
from OC_Libs.RasterLib.segmentation import (
    SegmentationConfig,
    background_mask,
    estimate_background_color,
    feather_alpha,
    segment,
)
from OC_Libs.RasterLib.compositor import ImageCompositor, composite

__all__ = [
    "RenderMode",
    "RgbaColor",
    "PixelBuffer",
    "MaskLayer",
    "SegmentationConfig",
    "background_mask",
    "estimate_background_color",
    "feather_alpha",
    "segment",
    "ImageCompositor",
    "composite",
]
