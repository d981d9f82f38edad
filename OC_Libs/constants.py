"""
Constants and configuration values for Open Cutout.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the engine.
"""

# Segmentation parameters
MIN_TOLERANCE_PERCENT = 1
MAX_TOLERANCE_PERCENT = 100
DEFAULT_TOLERANCE_PERCENT = 15
MIN_SMOOTHING_PASSES = 0
MAX_SMOOTHING_PASSES = 10
DEFAULT_SMOOTHING_PASSES = 0
CHANNEL_MAX = 255

# Flood fill backends
FILL_BACKEND_SCIPY = "scipy"
FILL_BACKEND_WORKLIST = "worklist"
FILL_BACKENDS = (FILL_BACKEND_SCIPY, FILL_BACKEND_WORKLIST)
DEFAULT_FILL_BACKEND = FILL_BACKEND_SCIPY

# Brush parameters
MIN_BRUSH_RADIUS = 5
MAX_BRUSH_RADIUS = 100
DEFAULT_BRUSH_RADIUS = 30

# Mask layer appearance
MASK_MARKER_COLOR = (255, 0, 0, 255)
MASK_OVERLAY_OPACITY = 0.6

# Undo history
HISTORY_CAPACITY = 20

# Export
DEFAULT_EXPORT_FORMAT = "PNG"
EXPORT_EXTENSION = ".png"
DEFAULT_EXPORT_NAME = "processed_image"

# Safe filename characters
SAFE_FILENAME_CHARS = "-_"
FILENAME_REPLACEMENT_CHAR = "_"

# Session parameter field names
FIELD_TOLERANCE_PERCENT = "tolerance_percent"
FIELD_SMOOTHING_PASSES = "smoothing_passes"
FIELD_BRUSH_RADIUS = "brush_radius"
FIELD_RENDER_MODE = "render_mode"
