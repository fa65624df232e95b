"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    OPENAI_API_KEY        — API key for the OpenAI chat-completion provider
    CLAUDE_API_KEY        — API key for the Anthropic messages provider
    DEEPSEEK_API_KEY      — API key for the DeepSeek chat-completion provider
                            (the three keys are read by get_api_key at call time)
    TEST_TIMEOUT_MINUTES  — Wall-clock limit for one test-suite run (default: 15)
    SESSION_LOG_PATH      — Append-only session log file (default: debug.log)
    LLM_HTTP_TIMEOUT      — Seconds to wait for a model response (default: 120)
    BACKUP_SUFFIX         — Suffix of the backup written before a patch (default: .bak)

Timeout Philosophy:
    A test run that exceeds TEST_TIMEOUT_MINUTES is killed together with
    its whole process tree. A timeout is never reported as "tests failed";
    it is a separate, fatal condition for that verification cycle.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Max minutes for a single build-tool run
TEST_TIMEOUT_MINUTES = float(os.getenv("TEST_TIMEOUT_MINUTES", 15))

# Session log
SESSION_LOG_PATH = os.getenv("SESSION_LOG_PATH", "debug.log")

# Model HTTP timeout in seconds
LLM_HTTP_TIMEOUT = float(os.getenv("LLM_HTTP_TIMEOUT", 120))

# Patch safety
BACKUP_SUFFIX = os.getenv("BACKUP_SUFFIX", ".bak")

# Build output lines kept in memory for the run summary
OUTPUT_TAIL_LINES = int(os.getenv("OUTPUT_TAIL_LINES", 200))


def get_api_key(provider_name: str) -> str:
    """
    Return the API key for a provider, read from ``<NAME>_API_KEY``.

    Looked up at call time so keys exported after import are honoured.
    Returns an empty string when the variable is unset.
    """
    return os.getenv(f"{provider_name.upper()}_API_KEY", "") or ""
