"""
Text generation providers.

Each provider turns ``(context, kind, instructions)`` into text by calling
one model vendor's REST API with :mod:`requests`. The system prompt is
built from :mod:`coparrot.llm.prompts` and the configured conventions, so
callers never branch on the vendor: they get an :class:`LLMProvider` from
:func:`create_provider` and call :meth:`LLMProvider.generate`.

On error conditions (connection failures, timeouts, non-200 answers,
unexpected JSON) an :class:`LLMError` is raised.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Type

import requests

from coparrot.config.loader import AppConfig, ConfigError
from coparrot.llm.prompts import GenerationKind, build_system_prompt


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MAX_CONTEXT_CHARS = 60000


class LLMError(Exception):
    """Raised when communication with the model provider fails."""

    pass


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning sections such as ``<think>...</think>`` from a response.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    thinking_patterns = [
        r"<think>.*?</think>",
        r"<thinking>.*?</thinking>",
        r"<thought>.*?</thought>",
        r"<reasoning>.*?</reasoning>",
    ]
    result = text
    for pattern in thinking_patterns:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


def clean_response(text: str) -> str:
    """Strip reasoning tags, a wrapping code fence, and wrapping quotes."""
    result = strip_thinking_tags(text)
    fence = re.match(r"^```[\w-]*\n(.*?)\n?```$", result, flags=re.DOTALL)
    if fence:
        result = fence.group(1).strip()
    if len(result) >= 2 and result[0] == result[-1] and result[0] in ("'", '"', "`"):
        result = result[1:-1].strip()
    return result


def truncate_context(context: str, limit: int = MAX_CONTEXT_CHARS) -> str:
    if len(context) <= limit:
        return context
    return context[:limit] + f"\n\n[... diff truncated, {len(context) - limit} more characters ...]"


class LLMProvider:
    """Base class: builds prompts, cleans answers, delegates the HTTP call.

    Subclasses implement :meth:`_complete`.
    """

    name = "base"
    default_base_url = ""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.base_url = (config.base_url or self.default_base_url).rstrip("/")

    def _convention(self, kind: GenerationKind) -> str:
        return {
            GenerationKind.COMMIT: self.config.commit_convention,
            GenerationKind.BRANCH: self.config.branch_naming,
            GenerationKind.PR: self.config.pr_style,
            GenerationKind.REVIEW: self.config.review_style,
        }[kind]

    def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        logger.debug("Sending %s request to %s (model=%s)", self.name, url, self.config.model)
        try:
            response = requests.post(
                url,
                json=payload,
                headers=headers or {},
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to %s: %s", self.name, exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error("%s returned non-200 status %s: %s", self.name, response.status_code, response.text)
            raise LLMError(f"{self.name} returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse %s response: %s", self.name, exc)
            raise LLMError(f"Failed to parse {self.name} response") from exc
        if not isinstance(data, dict):
            raise LLMError(f"Unexpected response structure from {self.name}")
        return data

    def _complete(self, system: str, user: str) -> str:
        raise NotImplementedError

    def generate(self, context: str, kind: GenerationKind, instructions: Optional[str] = None) -> str:
        """Generate text of the given ``kind`` for ``context``.

        Parameters
        ----------
        context : str
            Diff, commit log or description the text is about.
        kind : GenerationKind
            What to produce (commit message, branch name, ...).
        instructions : str, optional
            One-off guidance from the user, e.g. after a rejected attempt.

        Raises
        ------
        LLMError
            If the request fails or the model returns nothing usable.
        """
        system = build_system_prompt(
            kind,
            convention=self._convention(kind),
            base_instructions=self.config.custom_instructions,
            instructions=instructions,
        )
        raw = self._complete(system, truncate_context(context))
        text = clean_response(raw or "")
        if not text:
            raise LLMError(f"{self.name} returned an empty response")
        return text


class OpenAIProvider(LLMProvider):
    name = "openai"
    default_base_url = "https://api.openai.com/v1"

    def _complete(self, system: str, user: str) -> str:
        data = self._post(
            f"{self.base_url}/chat/completions",
            {
                "model": self.config.model,
                "max_tokens": self.config.max_tokens,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            },
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError("Unexpected response structure from openai") from exc


class ClaudeProvider(LLMProvider):
    name = "claude"
    default_base_url = "https://api.anthropic.com"
    api_version = "2023-06-01"

    def _complete(self, system: str, user: str) -> str:
        data = self._post(
            f"{self.base_url}/v1/messages",
            {
                "model": self.config.model,
                "max_tokens": self.config.max_tokens,
                "system": system,
                "messages": [{"role": "user", "content": user}],
            },
            headers={
                "x-api-key": self.config.api_key or "",
                "anthropic-version": self.api_version,
            },
        )
        try:
            return "".join(block.get("text", "") for block in data["content"] if block.get("type") == "text")
        except (KeyError, TypeError, AttributeError) as exc:
            raise LLMError("Unexpected response structure from claude") from exc


class GeminiProvider(LLMProvider):
    name = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def _complete(self, system: str, user: str) -> str:
        data = self._post(
            f"{self.base_url}/models/{self.config.model}:generateContent",
            {
                "systemInstruction": {"parts": [{"text": system}]},
                "contents": [{"role": "user", "parts": [{"text": user}]}],
                "generationConfig": {"maxOutputTokens": self.config.max_tokens},
            },
            headers={"x-goog-api-key": self.config.api_key or ""},
        )
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise LLMError("Unexpected response structure from gemini") from exc


class OllamaProvider(LLMProvider):
    name = "ollama"
    default_base_url = "http://localhost:11434"

    def _complete(self, system: str, user: str) -> str:
        data = self._post(
            f"{self.base_url}/api/generate",
            {
                "model": self.config.model,
                "system": system,
                "prompt": user,
                "stream": False,
                "options": {"num_predict": self.config.max_tokens},
            },
        )
        # /api/generate answers with 'response'; /api/chat style with 'message'
        if "response" in data:
            return str(data.get("response") or "")
        if isinstance(data.get("message"), dict):
            return str(data["message"].get("content") or "")
        raise LLMError("Unexpected response structure from ollama")


PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}


def create_provider(config: AppConfig) -> LLMProvider:
    """Return the provider implementation selected by ``config.provider``."""
    try:
        provider_cls = PROVIDERS[config.provider.lower()]
    except KeyError:
        raise ConfigError(f"Unsupported provider: {config.provider}") from None
    return provider_cls(config)
