"""
Project Detector
================
Detects the build system of a Java project from marker files, and finds the
project root that owns a given source file.

Detection is deterministic — same directory always yields the same kind.
Detection is NOT cached; it runs once per test-run request.
No LLM is used. Pure marker-file matching only.
"""
import enum
import logging
import os
from pathlib import Path

from fixverify.core.constants import GRADLE_MARKERS, MAVEN_MARKER
from fixverify.core.errors import ProjectRootNotFoundError

logger = logging.getLogger(__name__)


class BuildSystemKind(str, enum.Enum):
    MAVEN = "maven"
    GRADLE = "gradle"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Signal File → Build System mapping (ordered by priority)
# ---------------------------------------------------------------------------
# Order matters: first match wins. A directory with both a pom.xml and a
# Gradle script is treated as Maven.
SIGNAL_MAP: list[tuple[str, BuildSystemKind]] = [
    (MAVEN_MARKER, BuildSystemKind.MAVEN),
] + [(marker, BuildSystemKind.GRADLE) for marker in GRADLE_MARKERS]


def detect_build_system(project_dir) -> BuildSystemKind:
    """
    Inspect ``project_dir`` for build-tool marker files.

    Parameters
    ----------
    project_dir : str | Path
        Directory to inspect. Only this directory is checked (no recursion).

    Returns
    -------
    BuildSystemKind
        MAVEN for pom.xml, GRADLE for build.gradle / build.gradle.kts,
        UNKNOWN otherwise (including when the directory does not exist).
    """
    if not os.path.isdir(project_dir):
        return BuildSystemKind.UNKNOWN

    for signal_file, kind in SIGNAL_MAP:
        if os.path.isfile(os.path.join(project_dir, signal_file)):
            return kind

    return BuildSystemKind.UNKNOWN


def find_project_root(source_file) -> Path:
    """
    Walk up from ``source_file`` to the nearest directory with a build marker.

    Parameters
    ----------
    source_file : str | Path
        The file under repair (or any path inside the project).

    Returns
    -------
    Path
        Absolute path of the project root.

    Raises
    ------
    ProjectRootNotFoundError
        If no Maven/Gradle marker exists up to the filesystem root.
    """
    path = Path(source_file).resolve()
    current = path if path.is_dir() else path.parent

    for directory in (current, *current.parents):
        kind = detect_build_system(directory)
        if kind is not BuildSystemKind.UNKNOWN:
            logger.debug("Project root for %s: %s (%s)", source_file, directory, kind.value)
            return directory

    raise ProjectRootNotFoundError(
        f"Project root (Maven/Gradle) not found for file: {source_file}"
    )
