"""
Errors
======
Exception hierarchy for conditions that abort a verification cycle.

Recoverable problems are NOT exceptions:
    - a malformed bug block is skipped by the parser with a warning
    - "no bugs found" is a ``None`` parse result
    - an out-of-range position or unbalanced replacement is a
      ``PatchOutcome`` with ``applied=False``

Everything below is infrastructure failure and must reach the operator
as its own labelled condition, never as "tests failed".
"""


class FixVerifyError(Exception):
    """Base class for all fatal pipeline errors."""


class SourceFileError(FixVerifyError):
    """The target source file is missing or unreadable."""


class ProjectRootNotFoundError(FixVerifyError):
    """No Maven/Gradle marker found between the file and the filesystem root."""


class UnsupportedBuildSystemError(FixVerifyError):
    """The project root has no build system we know how to drive."""


class TestLaunchError(FixVerifyError):
    """The build tool process could not be spawned."""

    __test__ = False  # not a pytest test class


class TestTimeoutError(FixVerifyError):
    """The build tool did not finish before the configured deadline."""

    __test__ = False

    def __init__(self, timeout_seconds: float, command: str = "") -> None:
        self.timeout_seconds = timeout_seconds
        self.command = command
        super().__init__(
            f"Test execution timed out after {timeout_seconds:.0f}s"
            + (f" ({command})" if command else "")
        )


class LLMRequestError(FixVerifyError):
    """The model provider answered with an HTTP error status."""

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"API request to {provider} failed with status code {status_code}: {body[:300]}"
        )


class LLMTransportError(FixVerifyError):
    """The model provider could not be reached (connect, timeout, protocol)."""

    def __init__(self, provider: str, cause: Exception) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(
            f"Could not reach {provider}: {type(cause).__name__}: {cause}"
        )


class MissingApiKeyError(FixVerifyError):
    """No API key configured for the selected provider."""


class UnsupportedProviderError(FixVerifyError):
    """The requested model provider is not one we can talk to."""
