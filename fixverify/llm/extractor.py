"""
Response Payload Extractor
==========================
Pulls the plain-text answer out of a provider's raw HTTP response body.

Envelope shapes (first match wins):
    1. {choices:[{message:{content:str}}]}   chat-completion (OpenAI, DeepSeek)
    2. {content:[{text:str}, ...]}           messages (Claude), texts concatenated
    3. {response:str}                        plain completion gateways
    4. anything else                         raw body, unchanged

Contract:
    - Pure function, never raises.
    - Non-JSON input passes through untouched; the parser then reports
      "no blocks found" instead of an extraction error.
"""
import json
import logging

logger = logging.getLogger(__name__)


def _chat_completion_text(doc: dict):
    choices = doc.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    return None


def _content_array_text(doc: dict):
    content = doc.get("content")
    if not isinstance(content, list):
        return None
    texts = [
        item["text"]
        for item in content
        if isinstance(item, dict) and isinstance(item.get("text"), str)
    ]
    if not texts:
        return None
    return "".join(texts)


def extract_content(raw_body: str) -> str:
    """
    Return the model's text content from ``raw_body``.

    Parameters
    ----------
    raw_body : str
        Raw HTTP response body, usually JSON.

    Returns
    -------
    str
        The extracted text, or ``raw_body`` unchanged when no known
        envelope matches.
    """
    try:
        doc = json.loads(raw_body)
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.debug("Response body is not JSON, passing it through as text")
        return raw_body

    if not isinstance(doc, dict):
        return raw_body

    for extractor in (_chat_completion_text, _content_array_text):
        text = extractor(doc)
        if text is not None:
            return text

    if isinstance(doc.get("response"), str):
        return doc["response"]

    logger.warning("Unrecognised response envelope (keys: %s), using raw body", sorted(doc.keys()))
    return raw_body
