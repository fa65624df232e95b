"""
Command Resolver
================
Maps a detected build system to its test command for the current OS.

Resolver never executes commands — it only returns argument lists.
Commands are passed to the TestProcessRunner for execution.

Deterministic: same build system + same OS + same wrapper files → same command.
"""
import os
from dataclasses import dataclass
from typing import Optional

from fixverify.core.errors import UnsupportedBuildSystemError
from fixverify.executor.project_detector import BuildSystemKind


@dataclass(frozen=True)
class ResolvedCommand:
    """
    Immutable container for a resolved test invocation.

    Fields
    ------
    argv : tuple[str, ...]
        Executable and arguments, ready for subprocess.
    build_system : BuildSystemKind
        The build system this command drives.
    """
    argv: tuple
    build_system: BuildSystemKind

    def display(self) -> str:
        return " ".join(self.argv)


def is_windows() -> bool:
    return os.name == "nt"


def _maven_executable(project_root: str, windows: bool) -> str:
    wrapper = "mvnw.cmd" if windows else "mvnw"
    if os.path.isfile(os.path.join(project_root, wrapper)):
        return wrapper if windows else f"./{wrapper}"
    return "mvn.cmd" if windows else "mvn"


def _gradle_executable(project_root: str, windows: bool) -> str:
    wrapper = "gradlew.bat" if windows else "gradlew"
    if os.path.isfile(os.path.join(project_root, wrapper)):
        return wrapper if windows else f"./{wrapper}"
    return "gradle.bat" if windows else "gradle"


def resolve_test_command(
    build_system: BuildSystemKind,
    project_root: str = ".",
    windows: Optional[bool] = None,
) -> ResolvedCommand:
    """
    Build the test invocation for ``build_system``.

    Parameters
    ----------
    build_system : BuildSystemKind
        Detected build system.
    project_root : str
        Project root; used to look for mvnw / gradlew wrappers.
    windows : bool | None
        Override OS detection (tests).

    Returns
    -------
    ResolvedCommand
        Maven: ``mvn clean test`` (wrapper preferred).
        Gradle: ``./gradlew test`` (plain ``gradle`` without a wrapper).

    Raises
    ------
    UnsupportedBuildSystemError
        For BuildSystemKind.UNKNOWN.
    """
    if windows is None:
        windows = is_windows()

    if build_system is BuildSystemKind.MAVEN:
        argv = (_maven_executable(project_root, windows), "clean", "test")
    elif build_system is BuildSystemKind.GRADLE:
        argv = (_gradle_executable(project_root, windows), "test")
    else:
        raise UnsupportedBuildSystemError(
            f"Unsupported build system in {project_root}: no pom.xml or build.gradle(.kts)"
        )
    return ResolvedCommand(argv=argv, build_system=build_system)
