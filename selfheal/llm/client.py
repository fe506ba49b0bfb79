from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any
from urllib import error, request

from selfheal.core.exceptions import SuggestionError, SuggestionTimeout
from selfheal.llm.parser import Suggestion, parse_suggestion_response
from selfheal.llm.prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)


class SuggestionClient(ABC):
    """Provider-neutral interface for AI element suggestions."""

    provider_name = "unknown"

    def suggest(self, description: str, markup: str, timeout: float) -> Suggestion:
        content = self.complete(build_user_prompt(description, markup), timeout)
        suggestion = parse_suggestion_response(content)
        logger.debug(
            "%s suggested %r with confidence %.2f",
            self.provider_name,
            suggestion.query,
            suggestion.confidence,
        )
        return suggestion

    @abstractmethod
    def complete(self, prompt: str, timeout: float) -> str:
        raise NotImplementedError


class OpenAISuggestionClient(SuggestionClient):
    provider_name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    def complete(self, prompt: str, timeout: float) -> str:
        body = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
        return response["choices"][0]["message"]["content"]


class AnthropicSuggestionClient(SuggestionClient):
    provider_name = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")

    def complete(self, prompt: str, timeout: float) -> str:
        body = {
            "model": self.model,
            "max_tokens": 256,
            "temperature": 0,
            "system": SYSTEM_PROMPT,
            "messages": [
                {"role": "user", "content": prompt},
            ],
        }
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
        return response["content"][0]["text"]


class GeminiSuggestionClient(SuggestionClient):
    provider_name = "gemini"
    endpoint_template = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    def complete(self, prompt: str, timeout: float) -> str:
        body = {
            "system_instruction": {
                "parts": [
                    {"text": SYSTEM_PROMPT},
                ]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": 0,
                "responseMimeType": "application/json",
            },
        }
        response = _post_json(
            self.endpoint_template.format(model=self.model),
            body,
            headers={
                "x-goog-api-key": self.api_key,
                "x-goog-api-client": "selfheal-locator/0.1.0",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
        candidates = response.get("candidates", [])
        if not candidates:
            raise SuggestionError("Gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        text_parts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        content = "".join(text_parts).strip()
        if not content:
            raise SuggestionError("Gemini returned an empty response")
        return content


def create_suggestion_client() -> SuggestionClient:
    provider = os.getenv("LLM_PROVIDER", "openai").lower()
    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is required when LLM_PROVIDER=openai")
        return OpenAISuggestionClient(api_key)
    if provider == "anthropic":
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise RuntimeError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
        return AnthropicSuggestionClient(api_key)
    if provider == "gemini":
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is required when LLM_PROVIDER=gemini")
        return GeminiSuggestionClient(api_key)
    raise RuntimeError(f"Unsupported LLM provider: {provider}")


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float) -> dict[str, Any]:
    encoded = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=encoded, headers=headers, method="POST")
    try:
        with request.urlopen(req, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise SuggestionError(f"LLM request failed with status {exc.code}: {detail}") from exc
    except error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise SuggestionTimeout(f"LLM request timed out after {timeout}s") from exc
        raise SuggestionError(f"LLM request could not be completed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise SuggestionTimeout(f"LLM request timed out after {timeout}s") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SuggestionError("LLM provider returned a non-JSON body") from exc
