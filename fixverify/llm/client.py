"""
LLM Client
==========
Asynchronous HTTP client wrapper for the model providers.

The client sends one prompt to one provider and returns the RAW response
body. Turning that body into text is the extractor's job; turning the text
into bug fixes is the parser's job.

Error Policy:
    - HTTP status >= 400      → LLMRequestError (status + body excerpt)
    - transport failure       → LLMTransportError (wraps the httpx error)
    - missing API key         → MissingApiKeyError (raised before any I/O)
"""
import logging
from typing import Optional, Union

import httpx

from fixverify.core.config import LLM_HTTP_TIMEOUT
from fixverify.core.errors import LLMRequestError, LLMTransportError
from fixverify.llm.router import (
    ProviderConfig,
    build_headers,
    build_request_body,
    get_provider,
)

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Async HTTP client for calling model providers.

    Usage:
        client = LLMClient()
        raw = await client.send("Find bugs...", "openai")
        await client.close()
    """

    def __init__(self, timeout_seconds: float = LLM_HTTP_TIMEOUT) -> None:
        self.timeout_seconds = timeout_seconds
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def send(self, prompt: str, provider: Union[str, ProviderConfig]) -> str:
        """
        Send a prompt to the given provider and return the raw body.

        Parameters
        ----------
        prompt : str
            The full prompt text.
        provider : str | ProviderConfig
            Provider name ("openai", "claude", "deepseek") or its config.

        Returns
        -------
        str
            Raw response body.
        """
        config = get_provider(provider) if isinstance(provider, str) else provider
        headers = build_headers(config)
        payload = build_request_body(config, prompt)

        http = await self._get_http()
        logger.info("Sending request to %s (model=%s)", config.name, config.model)
        try:
            resp = await http.post(config.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", config.name, e)
            raise LLMTransportError(config.name, e) from e

        if resp.status_code >= 400:
            logger.error("Provider %s answered HTTP %d", config.name, resp.status_code)
            raise LLMRequestError(config.name, resp.status_code, resp.text)

        logger.debug("Provider %s answered %d bytes", config.name, len(resp.text))
        return resp.text
