"""
Patch Applier
=============
Writes model-proposed fixes to disk.

Modes (selected by which BugFix fields are populated):
    - range      ORIGINAL/CORRECTED block: lines [start, end] of the file
                 are replaced by the corrected lines
    - full_file  COMPLETE FILE block (or the trailing complete file): the
                 whole file is replaced verbatim
    - preview    apply=False: nothing is written

Safety Rules:
    - Validate fully BEFORE touching the file; a rejected patch writes nothing
    - Write a backup (<file>.bak) before every mutation
    - Write through a temporary sibling + os.replace, never in place
    - Full-file replacements must have balanced (), [] and {} counts

The applier trusts model-reported positions. It is NOT a diff engine:
no hunk matching, no fuzz, no line-shift detection.
"""
import logging
import os
import shutil
import tempfile
from typing import Iterable, List, Optional, Tuple

from fixverify.core.config import BACKUP_SUFFIX
from fixverify.core.errors import SourceFileError
from fixverify.models.bug_fix import BugFix, ParsedResponse
from fixverify.models.patch_outcome import PatchOutcome
from fixverify.parser.position import InvalidPositionError, parse_position

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation Helpers
# ---------------------------------------------------------------------------
def bracket_balance(text: str) -> Tuple[int, int, int]:
    """
    Count open-minus-close for (), [] and {} across ``text``.

    Returns
    -------
    tuple[int, int, int]
        Counters in the order braces, brackets, parentheses. All zero
        means balanced. Strings and comments are NOT skipped; this is a
        truncation detector, not a parser.
    """
    braces = text.count("{") - text.count("}")
    brackets = text.count("[") - text.count("]")
    parens = text.count("(") - text.count(")")
    return braces, brackets, parens


def resolve_range(position: str, line_count: int) -> Tuple[int, int]:
    """
    Parse and clamp a position against a file of ``line_count`` lines.

    ``start`` is raised to at least 1 and ``end`` lowered to at most
    ``line_count``.

    Returns
    -------
    tuple[int, int]
        1-based inclusive (start, end) after clamping.

    Raises
    ------
    InvalidPositionError
        If the position has no start-end range.
    ValueError
        If the clamped interval is empty or outside the file.
    """
    start, end = parse_position(position)
    start = max(1, start)
    end = min(line_count, end)
    if start > line_count or end < start:
        raise ValueError(
            f"Bug position out of range: {position} (file has {line_count} lines)"
        )
    return start, end


def _detect_newline(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"


def splice_lines(content: str, start: int, end: int, corrected_code: str) -> str:
    """
    Replace 1-based inclusive lines [start, end] of ``content``.

    The result is exactly head(start-1) + corrected lines + tail(end..).
    Corrected lines take the file's newline style. When the replaced range
    includes an unterminated last line, the last corrected line stays
    unterminated too.
    """
    lines = content.splitlines(keepends=True)
    newline = _detect_newline(content)
    head = lines[:start - 1]
    tail = lines[end:]

    corrected = corrected_code.replace("\r\n", "\n").split("\n")
    replaced_last_had_newline = lines[end - 1].endswith(("\n", "\r"))
    new_block = [line + newline for line in corrected]
    if not tail and not replaced_last_had_newline:
        new_block[-1] = corrected[-1]

    return "".join(head + new_block + tail)


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------
def _read(file_path: str) -> str:
    try:
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SourceFileError(f"Cannot read {file_path}: {e}") from e


def _write_backup(file_path: str) -> str:
    backup_path = file_path + BACKUP_SUFFIX
    shutil.copy2(file_path, backup_path)
    logger.info("Created backup at: %s", backup_path)
    return backup_path


def _atomic_write(file_path: str, content: str) -> None:
    """Write ``content`` via a temporary sibling file and os.replace."""
    directory = os.path.dirname(os.path.abspath(file_path))
    fd, tmp_path = tempfile.mkstemp(prefix=".fixverify-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        shutil.copymode(file_path, tmp_path)
        os.replace(tmp_path, file_path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# ---------------------------------------------------------------------------
# Patch Applier
# ---------------------------------------------------------------------------
class PatchApplier:
    """
    Applies BugFix records to a source file.

    Parameters
    ----------
    make_backup : bool
        Write ``<file><BACKUP_SUFFIX>`` before each mutation (default: True).
    """

    def __init__(self, make_backup: bool = True) -> None:
        self.make_backup = make_backup

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def apply_patch(self, file_path: str, bug_fix: BugFix, apply: bool = True) -> PatchOutcome:
        """
        Apply one BugFix to ``file_path``.

        Parameters
        ----------
        file_path : str
            The file to rewrite.
        bug_fix : BugFix
            Range fix (original_code set) or full-file fix.
        apply : bool
            False turns the call into a no-op preview.

        Returns
        -------
        PatchOutcome
            ``applied`` is True only if the file was rewritten.
        """
        if not apply:
            logger.info("Fix at %s not applied (preview only)", bug_fix.position)
            return PatchOutcome(applied=False, mode="preview", message="Fix not applied.")

        if bug_fix.is_full_file:
            return self.replace_file(file_path, bug_fix.corrected_code)
        return self.replace_range(file_path, bug_fix.position, bug_fix.corrected_code)

    def replace_range(self, file_path: str, position: str, corrected_code: str) -> PatchOutcome:
        """Replace the position's line range with ``corrected_code``."""
        content = _read(file_path)
        line_count = len(content.splitlines())

        try:
            start, end = resolve_range(position, line_count)
        except ValueError as e:  # includes InvalidPositionError
            logger.warning("Rejected patch for %s: %s", file_path, e)
            return PatchOutcome(applied=False, mode="range", message=str(e))

        new_content = splice_lines(content, start, end, corrected_code)
        backup = _write_backup(file_path) if self.make_backup else None
        _atomic_write(file_path, new_content)

        logger.info("Successfully applied fix to %s (replaced lines %d to %d)", file_path, start, end)
        return PatchOutcome(
            applied=True,
            mode="range",
            message=f"Replaced lines {start} to {end}",
            backup_path=backup,
            start_line=start,
            end_line=end,
        )

    def replace_file(self, file_path: str, new_content: str) -> PatchOutcome:
        """Replace the whole file with ``new_content`` after a balance check."""
        _read(file_path)  # target must exist and be readable

        counters = bracket_balance(new_content)
        if any(counters):
            message = (
                "Rejected full-file replacement: unbalanced brackets "
                f"(braces={counters[0]}, brackets={counters[1]}, parens={counters[2]})"
            )
            logger.warning("%s for %s", message, file_path)
            return PatchOutcome(applied=False, mode="full_file", message=message)

        backup = _write_backup(file_path) if self.make_backup else None
        _atomic_write(file_path, new_content)

        logger.info("Replaced entire content of %s", file_path)
        return PatchOutcome(
            applied=True,
            mode="full_file",
            message="Replaced entire file",
            backup_path=backup,
        )

    def apply_fixes(
        self,
        file_path: str,
        parsed: ParsedResponse,
        accepted: Optional[Iterable[BugFix]] = None,
    ) -> List[Tuple[BugFix, PatchOutcome]]:
        """
        Apply a set of accepted fixes from one model answer.

        Whole-file replacements are coalesced into ONE write:
            - every fix accepted and a trailing complete file present
              → the complete file
            - otherwise, any accepted full-file block → the last of them
        With the complete file every fix shares the write's outcome. With a
        full-file block only that block does; the other accepted fixes are
        reported as superseded (``applied=False``). Without a
        whole-file write, range fixes are applied bottom-up (highest start
        line first) so the positions of the remaining fixes stay valid.

        Returns
        -------
        list[tuple[BugFix, PatchOutcome]]
            One entry per fix, in the original order of appearance.
        """
        chosen = list(parsed.bug_fixes if accepted is None else accepted)
        if not chosen:
            return []

        outcomes: dict[int, PatchOutcome] = {}
        all_accepted = len(chosen) == len(parsed.bug_fixes)
        full_file_fixes = [fix for fix in chosen if fix.is_full_file]

        if parsed.complete_file and all_accepted:
            outcome = self.replace_file(file_path, parsed.complete_file)
            for fix in chosen:
                outcomes[id(fix)] = outcome
        elif full_file_fixes:
            winner = full_file_fixes[-1]
            outcomes[id(winner)] = self.replace_file(file_path, winner.corrected_code)
            for fix in chosen:
                if fix is not winner:
                    outcomes[id(fix)] = _superseded(fix, winner)
        else:
            for fix in sorted(chosen, key=_range_start, reverse=True):
                outcomes[id(fix)] = self.apply_patch(file_path, fix)

        return [(fix, outcomes[id(fix)]) for fix in chosen]


def _superseded(fix: BugFix, winner: BugFix) -> PatchOutcome:
    logger.warning("Fix at %s superseded by full-file replacement from %s", fix.position, winner.position)
    return PatchOutcome(
        applied=False,
        mode="full_file" if fix.is_full_file else "range",
        message=f"Superseded by full-file replacement from {winner.position}",
    )


def _range_start(fix: BugFix) -> int:
    try:
        return parse_position(fix.position)[0]
    except InvalidPositionError:
        return -1
