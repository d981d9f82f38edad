"""
Export helpers for finished cutouts.

Functions:
    sanitize_filename: Make a user-supplied name safe for the filesystem
    default_export_name: Fallback download name derived from the upload
    save_export: Write a session's export PNG into a directory
"""

import logging
from pathlib import Path
from typing import Optional

from OC_Libs.constants import (
    DEFAULT_EXPORT_NAME,
    EXPORT_EXTENSION,
    FILENAME_REPLACEMENT_CHAR,
    SAFE_FILENAME_CHARS,
)
from OC_Libs.SessionLib.edit_session import EditSession

logger = logging.getLogger(__name__)


def sanitize_filename(name: str) -> str:
    """
    Replace unsafe characters and strip leading/trailing replacements.

    Returns:
        Safe name, or the default export name if nothing usable remains
    """
    safe_name = "".join(
        c if c.isalnum() or c in SAFE_FILENAME_CHARS else FILENAME_REPLACEMENT_CHAR
        for c in str(name)
    ).strip(FILENAME_REPLACEMENT_CHAR)
    return safe_name or DEFAULT_EXPORT_NAME


def default_export_name(source_name: Optional[str] = None) -> str:
    """
    Suggest a download name before any naming service has answered.

    Uses the uploaded file's name up to its first dot, e.g.
    "holiday.photo.jpg" -> "holiday".
    """
    if not source_name:
        return DEFAULT_EXPORT_NAME
    stem = Path(str(source_name)).name.split(".")[0]
    return sanitize_filename(stem)


def save_export(session: EditSession, output_dir: Path, file_stem: Optional[str] = None) -> Path:
    """
    Save the session's erase-applied result as PNG.

    Args:
        session: Loaded edit session
        output_dir: Existing directory to write into
        file_stem: Name without extension (sanitized; default name if None)

    Returns:
        Path of the written file

    Raises:
        OSError: If the directory does not exist or is not a directory
        SessionNotLoaded: If the session has no image
    """
    output_dir = Path(output_dir)
    if not output_dir.exists():
        raise OSError(f"Output directory does not exist: {output_dir}")

    if not output_dir.is_dir():
        raise OSError(f"Output path is not a directory: {output_dir}")

    stem = sanitize_filename(file_stem) if file_stem else DEFAULT_EXPORT_NAME
    save_path = output_dir / f"{stem}{EXPORT_EXTENSION}"
    save_path.write_bytes(session.export_current())
    logger.info(f"Exported cutout to {save_path}")
    return save_path
