"""
Bug Block Parser
================
Converts the model's free-text answer into typed BugFix records.

Grammar (labels case-insensitive, each value runs until the next label):

    BUG LOCATION: <file>:<start>-<end>
    BUG TYPE: <category>
    EXPLANATION: <free text, may span lines>
    ORIGINAL CODE:            |  COMPLETE FILE:
    ```<lang>                 |  ```<lang>
    <original lines>          |  <entire corrected file>
    ```                       |  ```
    CORRECTED CODE:           |
    ```<lang>                 |
    <replacement lines>       |
    ```                       |

Blocks may follow each other back-to-back. One independent COMPLETE FILE
block may close the answer after the last bug block.

Pipeline:
    1. "No bugs found." style answers without any BUG LOCATION label
       short-circuit to None
    2. Split the text at every BUG LOCATION label (one segment per block)
    3. Match each segment on its own, so a broken block cannot swallow
       the next one
    4. Reject blocks with empty code fields (warning, keep scanning)
    5. Attach the trailing COMPLETE FILE block, if any
    6. Zero surviving blocks → None

Contract:
    - DETERMINISTIC: same text → same ParsedResponse.
    - Tolerant: malformed blocks are skipped, never raised.
    - "Nothing to apply" is None, never an exception.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from fixverify.models.bug_fix import BugFix, ParsedResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Grammar Building Blocks
# ---------------------------------------------------------------------------
_ANY_LABEL = (
    r"(?:BUG\s+LOCATION|BUG\s+TYPE|EXPLANATION|ORIGINAL\s+CODE"
    r"|CORRECTED\s+CODE|COMPLETE\s+FILE)\s*:"
)

# Field text that never crosses another label
_FIELD = rf"(?:(?!{_ANY_LABEL}).)*?"


def _fence(group: str) -> str:
    return rf"```[^\n`]*\n(?P<{group}>.*?)```"


_BLOCK_RE = re.compile(
    rf"""
    BUG\s+LOCATION\s*:\s*(?P<location>{_FIELD})\s*
    BUG\s+TYPE\s*:\s*(?P<bug_type>{_FIELD})\s*
    EXPLANATION\s*:\s*(?P<explanation>{_FIELD})\s*
    (?:
        COMPLETE\s+FILE\s*:\s*{_fence('complete')}
      |
        ORIGINAL\s+CODE\s*:\s*{_fence('original')}\s*
        CORRECTED\s+CODE\s*:\s*{_fence('corrected')}
    )
    """,
    re.IGNORECASE | re.DOTALL | re.VERBOSE,
)

_BLOCK_START_RE = re.compile(r"BUG\s+LOCATION\s*:", re.IGNORECASE)

_COMPLETE_FILE_RE = re.compile(
    rf"COMPLETE\s+FILE\s*:\s*{_fence('complete')}",
    re.IGNORECASE | re.DOTALL,
)

_NO_BUGS_RE = re.compile(
    r"^\W*no\s+(?:bugs?|issues?|errors?|problems?)"
    r"(?:\s+(?:were|was|have\s+been|has\s+been))?"
    r"(?:\s+(?:found|detected|identified))?\b",
    re.IGNORECASE,
)

_LEADING_BLANK_LINES_RE = re.compile(r"\A(?:[ \t]*\r?\n)+")
_LINE_NUMBER_PREFIX_RE = re.compile(r"^\s*\d+\s*\|\s?")


# ---------------------------------------------------------------------------
# Field Cleanup
# ---------------------------------------------------------------------------
def _strip_line_numbers(code: str) -> str:
    """Remove 'N | ' prefixes when EVERY non-blank line carries one."""
    lines = code.split("\n")
    numbered = [line for line in lines if line.strip()]
    if not numbered or not all(_LINE_NUMBER_PREFIX_RE.match(line) for line in numbered):
        return code
    return "\n".join(_LINE_NUMBER_PREFIX_RE.sub("", line, count=1) for line in lines)


def _clean_code(code: Optional[str]) -> str:
    """
    Trim a fenced code field.

    Leading blank lines and trailing whitespace go; the first line's
    indentation stays, it is part of the replacement.
    """
    if not code:
        return ""
    code = _LEADING_BLANK_LINES_RE.sub("", code).rstrip()
    return _strip_line_numbers(code)


def _clean_text(text: Optional[str]) -> str:
    return (text or "").strip()


def is_no_bugs_statement(text: str) -> bool:
    """True when the answer opens with an explicit "no bugs" statement."""
    return bool(_NO_BUGS_RE.match((text or "").strip()))


# ---------------------------------------------------------------------------
# Grammar Strategy
# ---------------------------------------------------------------------------
class ResponseGrammar(ABC):
    """A textual protocol for extracting bug fixes from model output."""

    name: str = ""

    @abstractmethod
    def parse(self, text: str) -> Optional[ParsedResponse]:
        """Return the usable fixes in ``text``, or None if there are none."""


class LabeledBlockGrammar(ResponseGrammar):
    """
    Line-labeled grammar with ORIGINAL/CORRECTED pairs or COMPLETE FILE
    blocks, plus one optional trailing COMPLETE FILE.
    """

    name = "labeled-block"

    def parse(self, text: str) -> Optional[ParsedResponse]:
        starts = [m.start() for m in _BLOCK_START_RE.finditer(text)]
        if not starts:
            logger.info("No bug blocks found in model response")
            return None

        fixes: List[BugFix] = []
        skipped = 0
        last_block_end: Optional[int] = None

        bounds = starts[1:] + [len(text)]
        for index, (start, end) in enumerate(zip(starts, bounds), start=1):
            segment = text[start:end]
            fix, matched_len = self._parse_block(segment, index)
            if fix is None:
                skipped += 1
                last_block_end = None
                continue
            fixes.append(fix)
            last_block_end = start + matched_len

        complete_file = self._trailing_complete_file(text, last_block_end, starts[-1])

        if not fixes:
            logger.info("No usable bug blocks (%d skipped)", skipped)
            return None

        logger.info(
            "Parsed %d bug fix(es), %d skipped, complete file: %s",
            len(fixes), skipped, "yes" if complete_file is not None else "no",
        )
        return ParsedResponse(
            bug_fixes=tuple(fixes),
            complete_file=complete_file,
            skipped_blocks=skipped,
        )

    @staticmethod
    def _parse_block(segment: str, index: int):
        """
        Parse one block segment.

        Returns
        -------
        tuple[BugFix | None, int]
            The fix (None when rejected) and the length of the matched text.
        """
        match = _BLOCK_RE.match(segment)
        if not match:
            logger.warning("Skipping bug block #%d: does not match the expected format", index)
            return None, 0

        location = _clean_text(match.group("location"))
        bug_type = _clean_text(match.group("bug_type"))
        explanation = _clean_text(match.group("explanation"))

        if match.group("complete") is not None:
            original = ""
            corrected = _clean_code(match.group("complete"))
            if not corrected.strip():
                logger.warning("Skipping bug block #%d (%s): empty COMPLETE FILE", index, location)
                return None, 0
        else:
            original = _clean_code(match.group("original"))
            corrected = _clean_code(match.group("corrected"))
            if not original.strip() or not corrected.strip():
                logger.warning(
                    "Skipping bug block #%d (%s): empty %s",
                    index, location,
                    "ORIGINAL CODE" if not original.strip() else "CORRECTED CODE",
                )
                return None, 0

        fix = BugFix(
            position=location,
            bug_type=bug_type,
            explanation=explanation,
            original_code=original,
            corrected_code=corrected,
        )
        return fix, match.end()

    @staticmethod
    def _trailing_complete_file(text: str, last_block_end: Optional[int], last_start: int) -> Optional[str]:
        """
        Find the independent COMPLETE FILE block after the final bug block.

        Only trusted when the final bug block itself parsed; otherwise the
        whole-file text may belong to the rejected block.
        """
        if last_block_end is None:
            if _COMPLETE_FILE_RE.search(text, last_start):
                logger.warning("Ignoring trailing COMPLETE FILE after a malformed bug block")
            return None
        match = _COMPLETE_FILE_RE.search(text, last_block_end)
        if not match:
            return None
        content = _clean_code(match.group("complete"))
        return content if content.strip() else None


# ---------------------------------------------------------------------------
# Parser Facade
# ---------------------------------------------------------------------------
class BugBlockParser:
    """
    Extracts bug fixes from model text using one response grammar.

    Parameters
    ----------
    grammar : ResponseGrammar or None
        Protocol to parse with (default: LabeledBlockGrammar).
    """

    def __init__(self, grammar: Optional[ResponseGrammar] = None) -> None:
        self.grammar = grammar or LabeledBlockGrammar()

    def parse(self, text: str) -> Optional[ParsedResponse]:
        """
        Parse ``text`` into a ParsedResponse.

        Returns None for empty input, explicit "no bugs" answers, and
        answers without a single usable block. An answer that opens with
        a "no bugs" phrase but still carries a BUG LOCATION block is parsed.
        """
        if not text or not text.strip():
            logger.info("Empty model response")
            return None
        if is_no_bugs_statement(text) and not _BLOCK_START_RE.search(text):
            logger.info("Model reported no bugs")
            return None
        return self.grammar.parse(text)


_DEFAULT_PARSER = BugBlockParser()


def parse_bug_blocks(text: str) -> Optional[ParsedResponse]:
    """Parse ``text`` with the default labeled-block grammar."""
    return _DEFAULT_PARSER.parse(text)
