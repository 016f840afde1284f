"""
Groq AI Integration for Station Portal

This module sends chat-completion requests to the Groq API (OpenAI-compatible)
for the staff assistant, including tool definitions for function calling.
"""

import logging
import re
import time
import requests
from typing import List, Optional, Dict, Any

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 60
DEFAULT_MAX_RETRIES = 3
MAX_BACKOFF_SECONDS = 30
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"
TEMPERATURE = 0.3
MAX_TOKENS = 2048

# "Please try again in 2.5s" / "try again in 750ms" / "try again in 1m3.2s"
RETRY_HINT = re.compile(r'try again in (?:(\d+)m)?(\d+(?:\.\d+)?)(ms|s)', re.IGNORECASE)


class GroqError(Exception):
    """Raised when the Groq API returns an error"""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Groq API error ({status_code}): {body}")


def retry_delay(response: requests.Response, attempt: int) -> float:
    """
    Work out how long to wait before retrying a rate-limited request.

    Uses the retry-after header when present, then the "try again in Xs"
    hint in the error body, then exponential backoff. Capped at
    MAX_BACKOFF_SECONDS.
    """
    header = response.headers.get('retry-after')
    if header:
        try:
            return max(0.0, min(float(header), MAX_BACKOFF_SECONDS))
        except ValueError:
            logger.debug(f"Unparseable retry-after header: {header}")

    match = RETRY_HINT.search(response.text or '')
    if match:
        minutes, amount, unit = match.groups()
        seconds = float(amount) / 1000 if unit.lower() == 'ms' else float(amount)
        seconds += int(minutes or 0) * 60
        return min(seconds, MAX_BACKOFF_SECONDS)

    return min(2 ** attempt, MAX_BACKOFF_SECONDS)


def call_groq(
    messages: List[Dict[str, Any]],
    api_key: str,
    tools: Optional[List[Dict[str, Any]]] = None,
    model: Optional[str] = None,
    timeout: int = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES
) -> Dict[str, Any]:
    """
    Send a chat-completion request to Groq.

    Args:
        messages: Chat history (system/user/assistant/tool messages)
        api_key: Groq API key
        tools: Tool definitions; when given, tool_choice is "auto"
        model: Model name (default: llama-3.3-70b-versatile)
        timeout: Request timeout in seconds
        max_retries: Retries allowed after the first attempt on HTTP 429

    Returns:
        API response as dictionary

    Raises:
        ValueError: If API key is missing
        GroqError: On a non-OK response, or 429 after all retries
        requests.RequestException: If the request itself fails
    """
    if not api_key or not api_key.strip():
        raise ValueError("Groq API key is missing or empty")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    payload = {
        "model": model or GROQ_MODEL,
        "messages": messages,
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
    }
    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = "auto"

    for attempt in range(max_retries + 1):
        logger.debug(f"Sending request to Groq (attempt {attempt + 1}/{max_retries + 1}, "
                     f"{len(messages)} messages, tools={'yes' if tools else 'no'})")

        response = requests.post(GROQ_API_URL, headers=headers, json=payload, timeout=timeout)

        if response.status_code == 429 and attempt < max_retries:
            wait_time = retry_delay(response, attempt)
            logger.warning(f"Groq rate limit hit (attempt {attempt + 1}/{max_retries + 1}), "
                           f"waiting {wait_time:.1f}s before retry")
            time.sleep(wait_time)
            continue

        if not response.ok:
            logger.error(f"Groq API returned HTTP {response.status_code}")
            raise GroqError(response.status_code, response.text)

        result = response.json()

        usage = result.get('usage', {})
        if usage:
            logger.info(f"Groq API call successful - "
                        f"Prompt tokens: {usage.get('prompt_tokens', 0)}, "
                        f"Completion tokens: {usage.get('completion_tokens', 0)}")
        return result

    # Unreachable: the final attempt either returns or raises
    raise GroqError(429, "Rate limit retries exhausted")
