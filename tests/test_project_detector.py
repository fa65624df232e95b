"""
Unit Tests — Project Detection & Command Resolution
===================================================
Tests for build-system detection, project-root discovery and the test
command chosen for each build system. No build tool is executed.
"""
import pytest

from fixverify.core.errors import ProjectRootNotFoundError, UnsupportedBuildSystemError
from fixverify.executor.command_resolver import ResolvedCommand, resolve_test_command
from fixverify.executor.project_detector import (
    SIGNAL_MAP,
    BuildSystemKind,
    detect_build_system,
    find_project_root,
)


# ---------------------------------------------------------------------------
# 1. Build System Detection
# ---------------------------------------------------------------------------
class TestDetectBuildSystem:

    def test_maven(self, tmp_path):
        (tmp_path / "pom.xml").write_text("<project/>")
        assert detect_build_system(tmp_path) is BuildSystemKind.MAVEN

    @pytest.mark.parametrize("marker", ["build.gradle", "build.gradle.kts"])
    def test_gradle(self, tmp_path, marker):
        (tmp_path / marker).write_text("")
        assert detect_build_system(str(tmp_path)) is BuildSystemKind.GRADLE

    def test_maven_wins_over_gradle(self, tmp_path):
        (tmp_path / "pom.xml").write_text("<project/>")
        (tmp_path / "build.gradle").write_text("")
        assert detect_build_system(tmp_path) is BuildSystemKind.MAVEN

    def test_unknown(self, tmp_path):
        assert detect_build_system(tmp_path) is BuildSystemKind.UNKNOWN

    def test_missing_directory(self, tmp_path):
        assert detect_build_system(tmp_path / "missing") is BuildSystemKind.UNKNOWN

    def test_signal_map_order(self):
        assert SIGNAL_MAP[0] == ("pom.xml", BuildSystemKind.MAVEN)


# ---------------------------------------------------------------------------
# 2. Project Root Discovery
# ---------------------------------------------------------------------------
class TestFindProjectRoot:

    def test_walks_up_from_nested_source(self, tmp_path):
        (tmp_path / "pom.xml").write_text("<project/>")
        src = tmp_path / "src" / "main" / "java" / "com" / "example"
        src.mkdir(parents=True)
        java_file = src / "Calculator.java"
        java_file.write_text("class Calculator {}")

        assert find_project_root(java_file) == tmp_path.resolve()

    def test_nearest_marker_wins(self, tmp_path):
        (tmp_path / "pom.xml").write_text("<project/>")
        module = tmp_path / "module"
        module.mkdir()
        (module / "build.gradle").write_text("")
        source = module / "A.java"
        source.write_text("")

        assert find_project_root(str(source)) == module.resolve()

    def test_directory_argument(self, tmp_path):
        (tmp_path / "build.gradle.kts").write_text("")
        assert find_project_root(tmp_path) == tmp_path.resolve()

    def test_not_found(self, tmp_path, monkeypatch):
        source = tmp_path / "A.java"
        source.write_text("")
        monkeypatch.setattr(
            "fixverify.executor.project_detector.detect_build_system",
            lambda directory: BuildSystemKind.UNKNOWN,
        )
        with pytest.raises(ProjectRootNotFoundError):
            find_project_root(source)


# ---------------------------------------------------------------------------
# 3. Command Resolution
# ---------------------------------------------------------------------------
class TestResolveTestCommand:

    def test_maven_posix(self, tmp_path):
        cmd = resolve_test_command(BuildSystemKind.MAVEN, str(tmp_path), windows=False)
        assert isinstance(cmd, ResolvedCommand)
        assert cmd.argv == ("mvn", "clean", "test")
        assert cmd.display() == "mvn clean test"

    def test_maven_windows(self, tmp_path):
        cmd = resolve_test_command(BuildSystemKind.MAVEN, str(tmp_path), windows=True)
        assert cmd.argv == ("mvn.cmd", "clean", "test")

    def test_maven_wrapper_preferred(self, tmp_path):
        (tmp_path / "mvnw").write_text("#!/bin/sh\n")
        cmd = resolve_test_command(BuildSystemKind.MAVEN, str(tmp_path), windows=False)
        assert cmd.argv == ("./mvnw", "clean", "test")

    def test_gradle_wrapper_posix(self, tmp_path):
        (tmp_path / "gradlew").write_text("#!/bin/sh\n")
        cmd = resolve_test_command(BuildSystemKind.GRADLE, str(tmp_path), windows=False)
        assert cmd.argv == ("./gradlew", "test")

    def test_gradle_wrapper_windows(self, tmp_path):
        (tmp_path / "gradlew.bat").write_text("@echo off\n")
        cmd = resolve_test_command(BuildSystemKind.GRADLE, str(tmp_path), windows=True)
        assert cmd.argv == ("gradlew.bat", "test")

    def test_gradle_without_wrapper(self, tmp_path):
        cmd = resolve_test_command(BuildSystemKind.GRADLE, str(tmp_path), windows=False)
        assert cmd.argv == ("gradle", "test")

    def test_unknown_rejected(self, tmp_path):
        with pytest.raises(UnsupportedBuildSystemError):
            resolve_test_command(BuildSystemKind.UNKNOWN, str(tmp_path))

    def test_deterministic(self, tmp_path):
        a = resolve_test_command(BuildSystemKind.GRADLE, str(tmp_path), windows=False)
        b = resolve_test_command(BuildSystemKind.GRADLE, str(tmp_path), windows=False)
        assert a == b
