"""
LLM Router
==========
Maps a provider name to its endpoint, default model, auth headers and
request body.

Supported Providers:
    - openai    — chat-completion envelope  {choices:[{message:{content}}]}
    - claude    — messages envelope         {content:[{text}...]}
    - deepseek  — chat-completion envelope  (some gateways answer {response})

Provider names are matched case-insensitively. The router never performs
I/O; it only describes requests. The client sends them.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from fixverify.core.config import get_api_key
from fixverify.core.errors import MissingApiKeyError, UnsupportedProviderError


# ---------------------------------------------------------------------------
# Provider Configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for a single LLM provider."""
    name: str
    url: str
    model: str
    max_tokens: int = 4000
    extra_headers: Dict[str, str] = field(default_factory=dict)


def _chat_body(provider: ProviderConfig, prompt: str) -> Dict[str, Any]:
    return {
        "model": provider.model,
        "messages": [{"role": "user", "content": prompt}],
    }


def _claude_body(provider: ProviderConfig, prompt: str) -> Dict[str, Any]:
    return {
        "model": provider.model,
        "max_tokens": provider.max_tokens,
        "messages": [
            {"role": "user", "content": [{"type": "text", "text": prompt}]},
        ],
    }


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    url="https://api.openai.com/v1/chat/completions",
    model="gpt-4",
)

CLAUDE_CONFIG = ProviderConfig(
    name="claude",
    url="https://api.anthropic.com/v1/messages",
    model="claude-3-opus-20240229",
    extra_headers={"anthropic-version": "2023-06-01"},
)

DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    url="https://api.deepseek.com/v1/chat/completions",
    model="deepseek-coder",
)

_PROVIDERS: Dict[str, ProviderConfig] = {
    OPENAI_CONFIG.name: OPENAI_CONFIG,
    CLAUDE_CONFIG.name: CLAUDE_CONFIG,
    DEEPSEEK_CONFIG.name: DEEPSEEK_CONFIG,
}

_BODY_BUILDERS: Dict[str, Callable[[ProviderConfig, str], Dict[str, Any]]] = {
    "openai": _chat_body,
    "claude": _claude_body,
    "deepseek": _chat_body,
}


def get_provider(name: str) -> ProviderConfig:
    """
    Look up a provider by (case-insensitive) name.

    Raises
    ------
    UnsupportedProviderError
        If the name is not one of the supported providers.
    """
    key = (name or "").strip().lower()
    if key not in _PROVIDERS:
        raise UnsupportedProviderError(
            f"Unsupported AI model: {name!r} (choose one of {', '.join(get_supported_providers())})"
        )
    return _PROVIDERS[key]


def get_supported_providers() -> list[str]:
    """Return all provider names that have a configuration."""
    return sorted(_PROVIDERS.keys())


def build_request_body(provider: ProviderConfig, prompt: str) -> Dict[str, Any]:
    """Build the JSON request body for ``provider``."""
    return _BODY_BUILDERS[provider.name](provider, prompt)


def build_headers(provider: ProviderConfig) -> Dict[str, str]:
    """
    Build request headers, including auth.

    Raises
    ------
    MissingApiKeyError
        If ``<NAME>_API_KEY`` is not configured.
    """
    api_key = get_api_key(provider.name)
    if not api_key:
        key_name = f"{provider.name.upper()}_API_KEY"
        raise MissingApiKeyError(
            f"API key not found. Set the {key_name} environment variable (or add it to .env)."
        )
    headers = {"Content-Type": "application/json"}
    if provider.name == "claude":
        headers["x-api-key"] = api_key
    else:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(provider.extra_headers)
    return headers
