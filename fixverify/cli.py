"""Command-line entry point for the find-bug → patch → verify loop."""
import asyncio
import logging
from typing import List, Optional, Tuple

import typer

from fixverify.agents.orchestrator import FixCycleReport, FixVerifyPipeline
from fixverify.core.errors import FixVerifyError
from fixverify.llm.router import get_supported_providers
from fixverify.models.bug_fix import BugFix
from fixverify.models.patch_outcome import PatchOutcome
from fixverify.models.test_verdict import TestVerdict
from fixverify.utils.logging_config import setup_logging

APP_HELP = "Find bugs with a language model, patch them, and verify with the project's tests."

app = typer.Typer(help=APP_HELP, no_args_is_help=True)

_FILE_OPTION_HELP = "Source file to analyse."
_MODEL_OPTION_HELP = f"Model provider ({', '.join(get_supported_providers())})."


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
def _show_fix(index: int, fix: BugFix) -> None:
    typer.echo(f"\nBug #{index}")
    typer.echo(f"Bug Location: {fix.position}")
    if fix.bug_type:
        typer.echo(f"Bug Type: {fix.bug_type}")
    if fix.explanation:
        typer.echo(f"Explanation: {fix.explanation}")
    if fix.is_full_file:
        typer.echo("Corrected Code (complete file):")
    else:
        typer.echo("Original Code:")
        typer.echo(fix.original_code)
        typer.echo("Corrected Code:")
    typer.echo(fix.corrected_code)


def _show_outcomes(outcomes: List[Tuple[BugFix, PatchOutcome]]) -> None:
    for fix, outcome in outcomes:
        status = "applied" if outcome.applied else "not applied"
        suffix = f" ({outcome.message})" if outcome.message else ""
        typer.echo(f"- {fix.position}: {status}{suffix}")


def _show_verdict(label: str, verdict: Optional[TestVerdict]) -> None:
    typer.echo(f"{label}: {verdict.summary() if verdict is not None else 'NOT RUN'}")


def _interactive_confirm():
    counter = {"n": 0}

    def confirm(fix: BugFix) -> bool:
        counter["n"] += 1
        _show_fix(counter["n"], fix)
        return typer.confirm("Apply this fix?", default=False)

    return confirm


def _fail(error: Exception) -> None:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1) from error


async def _with_pipeline(flow):
    pipeline = FixVerifyPipeline()
    try:
        return await flow(pipeline)
    finally:
        await pipeline.close()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@app.command("find-bugs")
def find_bugs(
    file: str = typer.Option(..., "--file", "-f", help=_FILE_OPTION_HELP),
    model: str = typer.Option(..., "--model", "-m", help=_MODEL_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Apply every proposed fix without asking."),
) -> None:
    """Ask the model for bugs and apply the fixes you accept."""
    confirm = None if yes else _interactive_confirm()
    try:
        outcomes = asyncio.run(_with_pipeline(lambda p: p.find_bugs(file, model, confirm)))
    except FixVerifyError as e:
        _fail(e)

    if not outcomes:
        typer.echo("No bug found, or no bug information could be extracted.")
        return
    typer.echo("\nPatch results:")
    _show_outcomes(outcomes)


@app.command("run-tests")
def run_tests(
    file: str = typer.Option(..., "--file", "-f", help="Any file inside the project to test."),
) -> None:
    """Run the project's test suite and summarise the reports."""
    try:
        verdict = FixVerifyPipeline().run_tests(file)
    except FixVerifyError as e:
        _fail(e)

    _show_verdict("Tests", verdict)
    if not verdict.ok:
        raise typer.Exit(code=1)


@app.command("fix-code")
def fix_code(
    file: str = typer.Option(..., "--file", "-f", help=_FILE_OPTION_HELP),
    model: str = typer.Option(..., "--model", "-m", help=_MODEL_OPTION_HELP),
    confirm: bool = typer.Option(False, "--confirm", help="Ask before applying each fix."),
) -> None:
    """Run tests, apply the model's fixes, re-run tests and log the session."""
    confirm_fn = _interactive_confirm() if confirm else None
    try:
        report: FixCycleReport = asyncio.run(
            _with_pipeline(lambda p: p.fix_code(file, model, confirm_fn))
        )
    except FixVerifyError as e:
        _fail(e)

    _show_verdict("Tests before fix", report.pre_fix_verdict)
    if report.nothing_to_do:
        typer.echo("No bug found - no action taken.")
    else:
        typer.echo("\nPatch results:")
        _show_outcomes(report.outcomes)
        if report.applied_any:
            _show_verdict("Tests after fix", report.post_fix_verdict)

    final = report.post_fix_verdict if report.post_fix_verdict is not None else report.pre_fix_verdict
    if not final.ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
