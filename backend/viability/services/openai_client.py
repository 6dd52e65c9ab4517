"""Centralized OpenAI chat client for the discovery agent and project Q&A.

All LLM calls MUST go through `call_openai_json_async()` (planner, ranker)
or `call_openai_text_async()` (Q&A answers). This ensures:
  - Model, timeout, and token limits are read from env.
  - JSON mode is enforced via response_format for structured calls.
  - 1 retry on failure (HTTP error, timeout or invalid JSON), then None.
  - Consistent logging across callers.

Callers decide what None means: the discovery agent turns it into a
GenerationFailure, Q&A degrades to an apology answer.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants — all read from environment with safe defaults
# ---------------------------------------------------------------------------
_OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
_MAX_RETRIES = 1

JsonPayload = Union[Dict[str, Any], List[Any]]


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_openai_key() -> str:
    """Read OPENAI_API_KEY from the environment. Raises EnvironmentError if missing."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        print("⚠️  [OPENAI] API key missing (OPENAI_API_KEY)")
        raise EnvironmentError("OPENAI_API_KEY environment variable not set")
    return key


def get_openai_model() -> str:
    """Model used for query planning and ranking (default: gpt-4o)."""
    return os.getenv("OPENAI_MODEL", "gpt-4o").strip()


def get_chat_model() -> str:
    """Model used for project Q&A (default: gpt-4o-mini)."""
    return os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini").strip()


def _get_timeout() -> float:
    return _env_float("OPENAI_REQUEST_TIMEOUT", 40.0)


def _get_default_max_tokens() -> int:
    return _env_int("OPENAI_MAX_COMPLETION_TOKENS", 4000)


# ---------------------------------------------------------------------------
# JSON sanitizer — extracts valid JSON from LLM output
# ---------------------------------------------------------------------------
def sanitize_json(raw: str) -> str:
    """Extract a JSON object or array from raw LLM output.

    Handles:
      - Markdown fences (```json ... ```)
      - Leading/trailing whitespace and BOM
      - Prose before/after JSON
      - Trailing commas before } or ]

    Raises ValueError if no JSON value is found.
    """
    text = raw.strip().lstrip("\ufeff")

    if text.startswith("```"):
        parts = text.split("```")
        text = parts[1] if len(parts) >= 3 else text[3:]

    text = text.strip()
    if text.lower().startswith("json"):
        text = text[4:].strip()

    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise ValueError("LLM did not return JSON — no '{' or '[' found")
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"

    end = text.rfind(closer)
    if end == -1 or end < start:
        raise ValueError(f"LLM did not return JSON — no closing '{closer}' found")
    text = text[start : end + 1]

    return re.sub(r",\s*([}\]])", r"\1", text)


def build_payload(
    *,
    model: str,
    messages: List[Dict[str, str]],
    max_completion_tokens: int,
    temperature: float,
    json_mode: bool,
) -> Dict[str, Any]:
    """Build an OpenAI chat completions payload."""
    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "max_tokens": max_completion_tokens,
        "temperature": temperature,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    return payload


async def _post_chat(
    *,
    payload: Dict[str, Any],
    api_key: str,
    client: Optional[httpx.AsyncClient],
) -> httpx.Response:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    if client is not None:
        return await client.post(_OPENAI_API_URL, headers=headers, json=payload)
    async with httpx.AsyncClient(timeout=_get_timeout()) as own_client:
        return await own_client.post(_OPENAI_API_URL, headers=headers, json=payload)


async def _complete(
    *,
    messages: List[Dict[str, str]],
    temperature: float,
    max_completion_tokens: int,
    model: str,
    json_mode: bool,
    client: Optional[httpx.AsyncClient],
) -> Optional[JsonPayload | str]:
    api_key = get_openai_key()
    if max_completion_tokens <= 0:
        max_completion_tokens = _get_default_max_tokens()

    payload = build_payload(
        model=model,
        messages=messages,
        max_completion_tokens=max_completion_tokens,
        temperature=temperature,
        json_mode=json_mode,
    )

    for attempt in range(_MAX_RETRIES + 1):
        t0 = time.time()
        try:
            print(f"🧠 [OPENAI] Calling {model} (attempt {attempt + 1}/{_MAX_RETRIES + 1})")
            response = await _post_chat(payload=payload, api_key=api_key, client=client)
            duration = time.time() - t0
            print(f"📦 [OPENAI] HTTP {response.status_code} ({duration:.1f}s)")

            if response.status_code != 200:
                logger.warning("OpenAI error %d: %s", response.status_code, response.text[:400])
                continue

            data = response.json()
            usage = data.get("usage")
            if usage:
                print(f"🧠 [OPENAI] Tokens used: total={usage.get('total_tokens', '?')}")

            raw_content = (data["choices"][0]["message"]["content"] or "").strip()
            if not raw_content:
                print(f"⚠️  [OPENAI] Empty response (attempt {attempt + 1})")
                continue

            if not json_mode:
                return raw_content

            try:
                return json.loads(sanitize_json(raw_content))
            except (ValueError, json.JSONDecodeError) as exc:
                logger.warning("OpenAI JSON parse failed: %s — raw: %s", exc, raw_content[:300])
                continue

        except httpx.TimeoutException:
            logger.warning("OpenAI timeout after %.1fs (attempt %d)", time.time() - t0, attempt + 1)
            continue
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("OpenAI unexpected response/error: %s", exc)
            return None

    return None


async def call_openai_json_async(
    *,
    messages: List[Dict[str, str]],
    temperature: float = 0.7,
    max_completion_tokens: int = 0,
    model: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[JsonPayload]:
    """Call chat completions in JSON mode and return the parsed value, or None.

    Raises EnvironmentError if OPENAI_API_KEY is not configured.
    """
    result = await _complete(
        messages=messages,
        temperature=temperature,
        max_completion_tokens=max_completion_tokens,
        model=model or get_openai_model(),
        json_mode=True,
        client=client,
    )
    if result is None:
        print("❌ [OPENAI] No usable JSON after retries")
    return result  # type: ignore[return-value]


async def call_openai_text_async(
    *,
    messages: List[Dict[str, str]],
    temperature: float = 0.3,
    max_completion_tokens: int = 1000,
    model: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """Call chat completions for a plain-text answer, or None on failure."""
    result = await _complete(
        messages=messages,
        temperature=temperature,
        max_completion_tokens=max_completion_tokens,
        model=model or get_chat_model(),
        json_mode=False,
        client=client,
    )
    return result  # type: ignore[return-value]
