"""
Aiproval
LLM Gateway: single entry point for model calls.

    - One provider (OpenAI) behind the LLMProvider interface
    - Reports ``available=False`` when no API key is configured, so the
      summary feature degrades instead of failing the rest of the service
    - Provider errors surface as UpstreamError("openai"); no retries

Usage:
    from aiproval.ai.gateway import get_gateway
    gw = get_gateway()
    if gw.available:
        result = gw.chat([{"role": "user", "content": "Summarize ..."}])
"""

import logging
import time
from abc import ABC, abstractmethod

import openai
from flask import current_app

from aiproval.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens, etc.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    def __init__(self, api_key: str, timeout: int = 30):
        self.api_key = api_key
        self.timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 1024),
            temperature=kwargs.get("temperature", 0.3),
        )
        choice = response.choices[0]
        usage = response.usage
        return {
            "content": choice.message.content or "",
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "model": model,
        }


# ── Gateway ───────────────────────────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Usage:
        gw = LLMGateway(provider=OpenAIProvider(key), model="gpt-4o-mini")
        result = gw.chat(messages=[{"role": "user", "content": "..."}])
    """

    def __init__(self, provider: LLMProvider | None, model: str):
        self._provider = provider
        self.model = model

    @property
    def available(self) -> bool:
        return self._provider is not None

    def chat(self, messages: list, *, purpose: str = "", **kwargs) -> dict:
        """
        Send a chat completion request.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, latency_ms}

        Raises:
            RuntimeError: when the gateway is not available (callers check first).
            UpstreamError: when the provider call fails.
        """
        if self._provider is None:
            raise RuntimeError("LLM gateway is not configured")

        start_time = time.time()
        try:
            result = self._provider.chat(messages, self.model, **kwargs)
        except openai.OpenAIError as exc:
            logger.warning("LLM call failed (purpose=%s): %s", purpose, exc)
            raise UpstreamError("openai", "AI provider request failed") from exc

        result["latency_ms"] = int((time.time() - start_time) * 1000)
        logger.info(
            "LLM call ok purpose=%s model=%s tokens=%d/%d latency=%dms",
            purpose, self.model, result["prompt_tokens"], result["completion_tokens"],
            result["latency_ms"],
        )
        return result


def get_gateway() -> LLMGateway:
    """Build a gateway from app config; unavailable when OPENAI_API_KEY is empty."""
    cfg = current_app.config
    api_key = cfg.get("OPENAI_API_KEY")
    provider = OpenAIProvider(api_key, timeout=cfg.get("AI_REQUEST_TIMEOUT", 30)) if api_key else None
    return LLMGateway(provider, cfg.get("AI_SUMMARY_MODEL", "gpt-4o-mini"))
