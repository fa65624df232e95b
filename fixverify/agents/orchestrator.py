"""
Orchestrator
============
Runs the find-bug → patch → verify loop for ONE source file.

Flows:
    find_bugs   Ask the model, parse, confirm each fix, apply accepted ones.
    run_tests   Locate the project root, run the build tool, read reports.
    fix_code    Tests before → ask → parse → apply → tests after → log.

Sequencing Rules:
    - Exactly one file and one verification cycle at a time, so a test
      verdict is always attributable to one applied change set.
    - Post-fix tests run only if at least one fix was written.
    - Every fix attempt (applied or not) gets one session log record.

Error Policy:
    - No usable bug block → empty result, neutral message; not an error.
    - Rejected patch → PatchOutcome(applied=False) with a reason.
    - Timeout, missing project root, unsupported build system, launch
      failure, provider errors → exceptions propagate to the caller.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from fixverify.executor.project_detector import detect_build_system, find_project_root
from fixverify.executor.report_analyzer import TestReportAnalyzer
from fixverify.executor.test_runner import TestProcessRunner
from fixverify.llm.client import LLMClient
from fixverify.llm.extractor import extract_content
from fixverify.llm.prompts import build_bug_finding_prompt
from fixverify.models.bug_fix import BugFix, ParsedResponse
from fixverify.models.patch_outcome import PatchOutcome
from fixverify.models.session_record import SessionLogRecord
from fixverify.models.test_verdict import TestVerdict
from fixverify.parser.bug_block_parser import BugBlockParser
from fixverify.parser.position import position_file
from fixverify.patcher.patch_applier import PatchApplier
from fixverify.services.session_logger import SessionLogger
from fixverify.utils.path_utils import read_source_file

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[BugFix], bool]
FixOutcomes = List[Tuple[BugFix, PatchOutcome]]


@dataclass
class FixCycleReport:
    """
    Outcome of one fix_code cycle.

    Fields
    ------
    pre_fix_verdict : TestVerdict
        Test verdict before any change.
    parsed : ParsedResponse | None
        What the model proposed (None = nothing to apply).
    outcomes : list[tuple[BugFix, PatchOutcome]]
        One entry per proposed fix, in order of appearance.
    post_fix_verdict : TestVerdict | None
        Test verdict after the fixes; None if nothing was applied.
    """
    pre_fix_verdict: TestVerdict
    parsed: Optional[ParsedResponse] = None
    outcomes: FixOutcomes = field(default_factory=list)
    post_fix_verdict: Optional[TestVerdict] = None

    @property
    def applied_any(self) -> bool:
        return any(outcome.applied for _, outcome in self.outcomes)

    @property
    def nothing_to_do(self) -> bool:
        return self.parsed is None


class FixVerifyPipeline:
    """
    Wires the parser, patch applier, test runner, report analyzer and
    session logger into the three user-facing flows.

    Every collaborator is injectable for tests; defaults are created
    otherwise.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        parser: Optional[BugBlockParser] = None,
        applier: Optional[PatchApplier] = None,
        runner: Optional[TestProcessRunner] = None,
        analyzer: Optional[TestReportAnalyzer] = None,
        session_logger: Optional[SessionLogger] = None,
    ) -> None:
        self.client = client or LLMClient()
        self.parser = parser or BugBlockParser()
        self.applier = applier or PatchApplier()
        self.runner = runner or TestProcessRunner()
        self.analyzer = analyzer or TestReportAnalyzer()
        self.session_logger = session_logger or SessionLogger()

    # -------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------
    async def request_fixes(self, source_file: str, provider: str) -> Optional[ParsedResponse]:
        """Send the file to the model and parse its answer."""
        source = read_source_file(source_file)
        prompt = build_bug_finding_prompt(source, os.path.basename(source_file))
        raw_body = await self.client.send(prompt, provider)
        text = extract_content(raw_body)
        parsed = self.parser.parse(text)
        if parsed is not None:
            self._warn_foreign_positions(source_file, parsed)
        return parsed

    async def find_bugs(
        self,
        source_file: str,
        provider: str,
        confirm: Optional[ConfirmFn] = None,
    ) -> FixOutcomes:
        """
        Ask the model for fixes and apply the ones ``confirm`` accepts.

        ``confirm=None`` accepts every fix. Returns an empty list when the
        model found nothing usable.
        """
        parsed = await self.request_fixes(source_file, provider)
        if parsed is None:
            logger.info("No bug found, or no bug information could be extracted")
            return []
        return self._apply(source_file, parsed, confirm)

    def run_tests(self, source_file: str) -> TestVerdict:
        """
        Run the test suite of the project that owns ``source_file``.

        Raises
        ------
        ProjectRootNotFoundError, UnsupportedBuildSystemError,
        TestLaunchError, TestTimeoutError
        """
        project_root = find_project_root(source_file)
        build_system = detect_build_system(project_root)
        outcome = self.runner.run(str(project_root), build_system)
        verdict = self.analyzer.analyze(project_root, build_system)
        if outcome.exit_code != 0 and verdict.ok:
            logger.warning(
                "Build tool exited with %d although all reported tests passed",
                outcome.exit_code,
            )
        logger.info("Test result: %s", verdict.summary())
        return verdict

    async def fix_code(
        self,
        source_file: str,
        provider: str,
        confirm: Optional[ConfirmFn] = None,
    ) -> FixCycleReport:
        """
        Full verification cycle: tests before, fix, tests after, log.

        Infrastructure failures in either test run propagate; a cycle that
        cannot verify is never reported as a pass or a fail.
        """
        logger.info("=== Running tests before fix ===")
        report = FixCycleReport(pre_fix_verdict=self.run_tests(source_file))

        report.parsed = await self.request_fixes(source_file, provider)
        if report.parsed is None:
            logger.info("No bug found - no action taken")
            return report

        report.outcomes = self._apply(source_file, report.parsed, confirm)

        if report.applied_any:
            logger.info("=== Running tests after fix ===")
            report.post_fix_verdict = self.run_tests(source_file)

        for fix, outcome in report.outcomes:
            self.session_logger.log(SessionLogRecord(
                position=fix.position,
                corrected_code=fix.corrected_code,
                applied=outcome.applied,
                pre_fix_verdict=report.pre_fix_verdict,
                post_fix_verdict=report.post_fix_verdict if outcome.applied else None,
            ))

        return report

    async def close(self) -> None:
        """Release the HTTP client."""
        await self.client.close()

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _warn_foreign_positions(source_file: str, parsed: ParsedResponse) -> None:
        """Positions always refer to ``source_file``; flag ones naming another file."""
        expected = os.path.basename(source_file)
        for fix in parsed.bug_fixes:
            named = position_file(fix.position)
            if named and os.path.basename(named.replace("\\", "/")) != expected:
                logger.warning(
                    "Fix position %s names another file; it is applied to %s",
                    fix.position, expected,
                )

    def _apply(
        self,
        source_file: str,
        parsed: ParsedResponse,
        confirm: Optional[ConfirmFn],
    ) -> FixOutcomes:
        """Apply accepted fixes; declined ones get a preview outcome."""
        accepted = [fix for fix in parsed.bug_fixes if confirm is None or confirm(fix)]
        applied = {id(fix): outcome for fix, outcome in self.applier.apply_fixes(source_file, parsed, accepted)}

        results: FixOutcomes = []
        for fix in parsed.bug_fixes:
            outcome = applied.get(id(fix))
            if outcome is None:
                outcome = self.applier.apply_patch(source_file, fix, apply=False)
            results.append((fix, outcome))
        return results
