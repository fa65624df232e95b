"""
Bug Fix Model
=============
Pydantic models for structured bug-fix information.
This is the contract between the response parser and every downstream
consumer (patch applier, orchestrator, session logger).

Fields:
    position        — "<file>:<start>-<end>" or bare "<start>-<end>", 1-based inclusive
    bug_type        — model-reported category (e.g. "Logical Error")
    explanation     — model-reported reasoning, free text
    original_code   — verbatim buggy lines; empty for the COMPLETE FILE variant
    corrected_code  — replacement lines, or the whole corrected file

A BugFix is frozen: the parser creates it, nothing downstream mutates it.
"""
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class BugFix(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: str
    bug_type: str = ""
    explanation: str = ""
    original_code: str = ""
    corrected_code: str

    @property
    def is_full_file(self) -> bool:
        """True when ``corrected_code`` is a whole-file replacement."""
        return not self.original_code


class ParsedResponse(BaseModel):
    """
    Everything usable extracted from one model answer.

    ``bug_fixes`` keeps the order in which blocks appeared in the text.
    ``complete_file`` is the trailing, independent COMPLETE FILE block.
    ``skipped_blocks`` counts blocks rejected as malformed.
    """
    model_config = ConfigDict(frozen=True)

    bug_fixes: Tuple[BugFix, ...] = ()
    complete_file: Optional[str] = None
    skipped_blocks: int = 0
