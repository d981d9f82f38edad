"""
SessionLib - Edit sessions and their collaborators

This module handles the editing workflow: undo history, the edit
session state machine, AI replacement and export.
"""

from OC_Libs.SessionLib.history_stack import HistorySnapshot, HistoryStack
from OC_Libs.SessionLib.session_models import AiRequest, SessionParameters, SessionState
from OC_Libs.SessionLib.edit_session import EditSession, open_source_image
from OC_Libs.SessionLib.ai_removal import (
    AiRemovalResult,
    AiRemovalRunner,
    apply_ai_result,
    call_remove_background,
    run_ai_removal,
)
from OC_Libs.SessionLib.export import default_export_name, sanitize_filename, save_export

__all__ = [
    "HistorySnapshot",
    "HistoryStack",
    "AiRequest",
    "SessionParameters",
    "SessionState",
    "EditSession",
    "open_source_image",
    "AiRemovalResult",
    "AiRemovalRunner",
    "apply_ai_result",
    "call_remove_background",
    "run_ai_removal",
    "default_export_name",
    "sanitize_filename",
    "save_export",
]
