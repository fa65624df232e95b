"""
Session Logger
==============
Appends one human-readable block per fix attempt to the session log.

Block layout:
    ==================================================
    DEBUGGING SESSION: 2024-05-01 12:00:00
    ==================================================

    Bug Position: Calculator.java:5-5

    Corrected Code:
    ```
    return a + b;
    ```

    Fix Applied: YES
    Tests Before Fix: FAILED (total=3, ...)
    Tests After Fix: PASSED (total=3, ...)

    --------------------------------------------------

The file is opened in append mode and each block is written with a single
write call; existing content is never rewritten.
"""
import logging
import os
from typing import Optional

from fixverify.core.config import SESSION_LOG_PATH
from fixverify.core.constants import LOG_BANNER, LOG_SEPARATOR
from fixverify.models.session_record import SessionLogRecord
from fixverify.models.test_verdict import TestVerdict

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _verdict_text(verdict: Optional[TestVerdict]) -> str:
    return verdict.summary() if verdict is not None else "NOT RUN"


def format_record(record: SessionLogRecord) -> str:
    """Render one record as a log block."""
    lines = [
        LOG_BANNER,
        f"DEBUGGING SESSION: {record.timestamp.strftime(_TIMESTAMP_FORMAT)}",
        LOG_BANNER,
        "",
        f"Bug Position: {record.position}",
        "",
        "Corrected Code:",
        "```",
        record.corrected_code,
        "```",
        "",
        f"Fix Applied: {'YES' if record.applied else 'NO'}",
        f"Tests Before Fix: {_verdict_text(record.pre_fix_verdict)}",
    ]
    if record.applied:
        lines.append(f"Tests After Fix: {_verdict_text(record.post_fix_verdict)}")
    lines += ["", LOG_SEPARATOR, "", ""]
    return "\n".join(lines)


class SessionLogger:
    """
    Append-only writer for SessionLogRecord blocks.

    Parameters
    ----------
    log_path : str
        Target log file (default: SESSION_LOG_PATH).
    """

    def __init__(self, log_path: str = SESSION_LOG_PATH) -> None:
        self.log_path = log_path

    def log(self, record: SessionLogRecord) -> None:
        """Append ``record`` to the log file, creating parent directories."""
        block = format_record(record)
        parent = os.path.dirname(os.path.abspath(self.log_path))
        os.makedirs(parent, exist_ok=True)

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(block)

        logger.info("Results logged to: %s", self.log_path)
