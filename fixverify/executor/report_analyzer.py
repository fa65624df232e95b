"""
Test Report Analyzer
====================
Converts the build tool's JUnit-style XML reports into a TestVerdict.

Report locations (relative to the project root):
    Maven   target/surefire-reports/TEST-*.xml
    Gradle  build/test-results/test/TEST-*.xml

Classification per <testcase> (first match wins):
    <error>    → errored
    <failure>  → failed
    <skipped>  → skipped
    otherwise  → counted toward total only

Contract:
    - Missing report directory or no report files → reports_found=False.
      That is a failure (most likely compilation broke), never "all passed".
    - A malformed report file is logged and skipped; the rest still count.
    - Reports are only read after the build process has exited.
    - Counts are local to one call; nothing is kept between runs.
"""
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from fixverify.core.constants import GRADLE_REPORT_DIR, MAVEN_REPORT_DIR, REPORT_FILE_GLOB
from fixverify.executor.project_detector import BuildSystemKind, detect_build_system
from fixverify.models.test_verdict import TestVerdict

logger = logging.getLogger(__name__)


_REPORT_DIRS = {
    BuildSystemKind.MAVEN: MAVEN_REPORT_DIR,
    BuildSystemKind.GRADLE: GRADLE_REPORT_DIR,
}


def report_dir_for(project_root, build_system: BuildSystemKind) -> Optional[Path]:
    """Return the report directory for ``build_system``, or None if unknown."""
    parts = _REPORT_DIRS.get(build_system)
    if parts is None:
        return None
    return Path(project_root).joinpath(*parts)


def find_report_files(report_dir: Path) -> List[Path]:
    """Recursively list report files under ``report_dir``, sorted by path."""
    return sorted(p for p in report_dir.rglob(REPORT_FILE_GLOB) if p.is_file())


def _local_name(tag: str) -> str:
    """Strip an XML namespace: '{ns}testcase' → 'testcase'."""
    return tag.rsplit("}", 1)[-1]


def _has_child(element: ET.Element, name: str) -> bool:
    return any(_local_name(child.tag) == name for child in element)


def count_report(path: Path) -> TestVerdict:
    """
    Count the test cases of one report file.

    Raises
    ------
    ET.ParseError
        If the file is not well-formed XML.
    """
    root = ET.parse(path).getroot()
    total = failed = errored = skipped = 0
    for element in root.iter():
        if _local_name(element.tag) != "testcase":
            continue
        total += 1
        if _has_child(element, "error"):
            errored += 1
        elif _has_child(element, "failure"):
            failed += 1
        elif _has_child(element, "skipped"):
            skipped += 1
    return TestVerdict(total=total, failed=failed, errored=errored, skipped=skipped)


class TestReportAnalyzer:
    """Aggregates all XML test reports of one project into a TestVerdict."""

    __test__ = False  # not a pytest test class

    def analyze(self, project_root, build_system: Optional[BuildSystemKind] = None) -> TestVerdict:
        """
        Parse every report under the project's report directory.

        Parameters
        ----------
        project_root : str | Path
            Project root the build tool ran in.
        build_system : BuildSystemKind | None
            Detected build system; auto-detected when None.

        Returns
        -------
        TestVerdict
            Combined counts, or ``TestVerdict.reports_absent()``.
        """
        if build_system is None:
            build_system = detect_build_system(project_root)

        report_dir = report_dir_for(project_root, build_system)
        if report_dir is None or not report_dir.is_dir():
            logger.error("No test reports directory found (%s)", report_dir)
            return TestVerdict.reports_absent()

        report_files = find_report_files(report_dir)
        if not report_files:
            logger.error("No test reports found in %s. Possible compilation failure.", report_dir)
            return TestVerdict.reports_absent()

        total = failed = errored = skipped = 0
        parsed_files = 0
        for path in report_files:
            try:
                counts = count_report(path)
            except (ET.ParseError, OSError) as e:
                logger.warning("Error parsing %s: %s", path, e)
                continue
            parsed_files += 1
            total += counts.total
            failed += counts.failed
            errored += counts.errored
            skipped += counts.skipped

        if parsed_files == 0:
            logger.error("None of the %d report files in %s could be parsed", len(report_files), report_dir)
            return TestVerdict.reports_absent()

        verdict = TestVerdict(total=total, failed=failed, errored=errored, skipped=skipped)
        logger.info(
            "Parsed results from %d report(s) - Total: %d, Failed: %d, Errors: %d, Skipped: %d",
            parsed_files, total, failed, errored, skipped,
        )
        return verdict

