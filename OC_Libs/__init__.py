"""
OC_Libs - Open Cutout Library Modules

This package contains the background-removal and layered-edit engine,
organized into specialized sub-packages:

- RasterLib: Pixel buffers, segmentation, mask painting and compositing
- SessionLib: Edit sessions, undo history, AI replacement and export
"""

__version__ = "0.1.0"
