"""
LLM Prompts
===========
Builds the bug-finding prompt sent to the model.

Prompt Design Rules:
    - Source lines are numbered so reported positions are exact
    - The response grammar is spelled out label by label, matching the parser
    - Corrected code must keep the original indentation
    - "No bugs found." is the only accepted answer for a clean file
"""
import logging
import os

logger = logging.getLogger(__name__)


_LANGUAGE_TAGS: dict[str, str] = {
    ".java": "java",
    ".kt": "kotlin",
    ".groovy": "groovy",
    ".scala": "scala",
}


RESPONSE_FORMAT = (
    "Your response for EACH bug MUST follow this format exactly:\n"
    "\n"
    "BUG LOCATION: [file name]:[start line]-[end line]\n"
    "BUG TYPE: [Syntax Error | Logical Error | Potential Runtime Error]\n"
    "EXPLANATION: [what is wrong, why, and how the fix resolves it]\n"
    "ORIGINAL CODE:\n"
    "```{lang}\n"
    "[the exact original lines start..end, unchanged]\n"
    "```\n"
    "CORRECTED CODE:\n"
    "```{lang}\n"
    "[the corrected replacement for exactly those lines, original indentation kept]\n"
    "```\n"
    "\n"
    "After the last bug, add ONE block containing the whole corrected file:\n"
    "\n"
    "COMPLETE FILE:\n"
    "```{lang}\n"
    "[the entire corrected file]\n"
    "```\n"
    "\n"
    'If there are no bugs, respond with the single phrase: "No bugs found."'
)


def language_tag(file_name: str) -> str:
    """Return the fence language tag for a source file name."""
    _, ext = os.path.splitext(file_name)
    return _LANGUAGE_TAGS.get(ext.lower(), "")


def number_lines(source: str) -> str:
    """Prefix every source line with its 1-based line number."""
    return "\n".join(
        f"{i:4} | {line}" for i, line in enumerate(source.splitlines(), start=1)
    )


def build_bug_finding_prompt(source: str, file_name: str = "") -> str:
    """
    Build the prompt asking the model to find and fix bugs in ``source``.

    Parameters
    ----------
    source : str
        Full content of the file under analysis.
    file_name : str
        Base name of the file, used in positions and for the fence tag.

    Returns
    -------
    str
        The complete prompt.
    """
    lang = language_tag(file_name)
    display_name = file_name or "the file"
    prompt = (
        "You are an expert software engineer specialised in debugging. "
        f"Analyze {display_name} for ALL bugs: syntax errors that prevent "
        "compilation, logical errors where the code does not do what it is "
        "clearly meant to do, and potential runtime exceptions.\n"
        "\n"
        "Corrections must be minimal and touch only the lines that contain "
        "the error. Preserve imports, the package declaration, comments and "
        "the existing coding style.\n"
        "\n"
        f"{RESPONSE_FORMAT.format(lang=lang)}\n"
        "\n"
        "Line numbers are shown as 'N | ' prefixes; they are NOT part of the "
        "code and must not appear in ORIGINAL CODE, CORRECTED CODE or COMPLETE FILE.\n"
        "\n"
        "CODE TO ANALYZE:\n"
        f"```{lang}\n"
        f"{number_lines(source)}\n"
        "```\n"
    )
    logger.debug("Built bug-finding prompt for %s (%d chars)", display_name, len(prompt))
    return prompt
