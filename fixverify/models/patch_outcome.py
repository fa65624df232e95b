"""
Patch Outcome Model
===================
Pydantic model tracking the outcome of one patch application.

Fields:
    applied         — True only if the target file was rewritten
    message         — human-readable reason (success summary or rejection cause)
    mode            — "range" | "full_file" | "preview"
    backup_path     — backup written before the rewrite, if any
    start_line      — first replaced line (range mode, 1-based)
    end_line        — last replaced line after clamping (range mode)

Truthiness mirrors ``applied`` so callers can write ``if outcome: ...``.
"""
from typing import Optional

from pydantic import BaseModel


class PatchOutcome(BaseModel):
    applied: bool = False
    message: str = ""
    mode: str = "range"
    backup_path: Optional[str] = None
    start_line: Optional[int] = None
    end_line: Optional[int] = None

    def __bool__(self) -> bool:
        return self.applied
