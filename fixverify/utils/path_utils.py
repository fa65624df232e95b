"""
Path Utils
==========
Source-file reading helpers.
"""
import os

from fixverify.core.errors import SourceFileError


def read_source_file(file_path: str) -> str:
    """
    Read the file under repair.

    Raises
    ------
    SourceFileError
        If the file does not exist, is not a regular file, or cannot be read.
    """
    if not os.path.exists(file_path):
        raise SourceFileError(f"File does not exist: {file_path}")
    if not os.path.isfile(file_path):
        raise SourceFileError(f"Not a regular file: {file_path}")
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SourceFileError(f"File is not readable: {file_path} ({e})") from e
