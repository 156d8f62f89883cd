"""
LLM Router - unified multi-provider client with fallback, model routing, streaming and cost tracking.

Supports: Gemini (Google), Claude (Anthropic), GPT (OpenAI).
Each assistant mode maps to a preferred model; if that provider fails, the
router tries the next one in the fallback chain.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from loguru import logger

from src.config import Settings, get_settings


# ---------------------------------------------------------------------------
# Provider & role enums
# ---------------------------------------------------------------------------

class Provider(str, Enum):
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class AssistantRole(str, Enum):
    """Logical roles; each maps to a preferred model via MODEL_ROUTING."""
    ASSISTANT = "assistant"   # quick answers (speed matters)
    THINKING = "thinking"     # extended reasoning (quality matters)


# ---------------------------------------------------------------------------
# Model definitions
# ---------------------------------------------------------------------------

@dataclass
class ModelSpec:
    provider: Provider
    model_id: str
    input_cost_per_1k: float = 0.0   # USD per 1K input tokens
    output_cost_per_1k: float = 0.0  # USD per 1K output tokens
    thinking: bool = False           # request an extended thinking budget


MODELS: dict[str, ModelSpec] = {
    "gemini-flash-lite": ModelSpec(Provider.GEMINI, "gemini-2.5-flash-lite", 0.0001, 0.0004),
    "gemini-pro": ModelSpec(Provider.GEMINI, "gemini-2.5-pro", 0.00125, 0.01, thinking=True),
    "claude-haiku": ModelSpec(Provider.ANTHROPIC, "claude-3-5-haiku-latest", 0.0008, 0.004),
    "claude-sonnet": ModelSpec(Provider.ANTHROPIC, "claude-sonnet-4-20250514", 0.003, 0.015),
    "gpt-4o-mini": ModelSpec(Provider.OPENAI, "gpt-4o-mini", 0.00015, 0.0006),
    "gpt-4o": ModelSpec(Provider.OPENAI, "gpt-4o", 0.005, 0.015),
}

MODEL_ROUTING: dict[AssistantRole, list[str]] = {
    AssistantRole.ASSISTANT: ["gemini-flash-lite", "gpt-4o-mini", "claude-haiku"],
    AssistantRole.THINKING:  ["gemini-pro", "claude-sonnet", "gpt-4o"],
}


# ---------------------------------------------------------------------------
# Usage tracking
# ---------------------------------------------------------------------------

@dataclass
class UsageRecord:
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    call_count: int = 0
    errors: int = 0
    per_provider: dict[str, dict[str, float]] = field(default_factory=dict)

    def record(self, provider: str, model_key: str, input_tok: int, output_tok: int, cost: float):
        self.total_input_tokens += input_tok
        self.total_output_tokens += output_tok
        self.total_cost_usd += cost
        self.call_count += 1
        if provider not in self.per_provider:
            self.per_provider[provider] = {"input_tokens": 0, "output_tokens": 0, "cost": 0.0, "calls": 0}
        self.per_provider[provider]["input_tokens"] += input_tok
        self.per_provider[provider]["output_tokens"] += output_tok
        self.per_provider[provider]["cost"] += cost
        self.per_provider[provider]["calls"] += 1


# ---------------------------------------------------------------------------
# Provider clients (lazy-initialized per router)
# ---------------------------------------------------------------------------

class _Clients:
    """Lazy-initialized provider clients."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._gemini = None
        self._anthropic = None
        self._openai = None

    def gemini(self):
        if self._gemini is None:
            from google import genai
            self._gemini = genai.Client(api_key=self.settings.gemini_api_key)
        return self._gemini

    def anthropic(self):
        if self._anthropic is None:
            import anthropic
            self._anthropic = anthropic.Anthropic(api_key=self.settings.anthropic_api_key)
        return self._anthropic

    def openai(self):
        if self._openai is None:
            import openai
            self._openai = openai.OpenAI(api_key=self.settings.openai_api_key)
        return self._openai


def _provider_available(provider: Provider, settings: Settings) -> bool:
    """Check if provider has a valid API key configured."""
    key_map = {
        Provider.GEMINI: settings.gemini_api_key,
        Provider.ANTHROPIC: settings.anthropic_api_key,
        Provider.OPENAI: settings.openai_api_key,
    }
    return bool(key_map.get(provider, ""))


# ---------------------------------------------------------------------------
# Core call helpers (one per provider)
# ---------------------------------------------------------------------------

def _gemini_request(spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                    max_tokens: int, thinking_budget: int):
    from google.genai import types

    contents = []
    for msg in messages:
        role = "user" if msg["role"] == "user" else "model"
        contents.append(types.Content(role=role, parts=[types.Part(text=msg["content"])]))

    config = types.GenerateContentConfig(
        system_instruction=system,
        temperature=temperature,
        max_output_tokens=max_tokens + (thinking_budget if spec.thinking else 0),
        thinking_config=types.ThinkingConfig(thinking_budget=thinking_budget) if spec.thinking else None,
    )
    return contents, config


def _call_gemini(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                 max_tokens: int, thinking_budget: int) -> tuple[str, int, int]:
    """Returns (text, input_tokens, output_tokens)."""
    contents, config = _gemini_request(spec, system, messages, temperature, max_tokens, thinking_budget)
    resp = client.models.generate_content(model=spec.model_id, contents=contents, config=config)
    input_tok = resp.usage_metadata.prompt_token_count or 0
    output_tok = resp.usage_metadata.candidates_token_count or 0
    text = resp.text or ""
    if not text:
        raise ValueError("Gemini returned empty text")
    return text, input_tok, output_tok


def _stream_gemini(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                   max_tokens: int, thinking_budget: int) -> Iterator[str]:
    contents, config = _gemini_request(spec, system, messages, temperature, max_tokens, thinking_budget)
    for chunk in client.models.generate_content_stream(model=spec.model_id, contents=contents, config=config):
        if chunk.text:
            yield chunk.text


def _call_anthropic(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                    max_tokens: int) -> tuple[str, int, int]:
    resp = client.messages.create(
        model=spec.model_id,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        messages=messages,
    )
    if not resp.content:
        raise ValueError(f"Anthropic returned empty content (stop_reason={resp.stop_reason})")
    text = resp.content[0].text if hasattr(resp.content[0], 'text') else str(resp.content[0])
    return text, resp.usage.input_tokens, resp.usage.output_tokens


def _stream_anthropic(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                      max_tokens: int) -> Iterator[str]:
    with client.messages.stream(
        model=spec.model_id,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        messages=messages,
    ) as stream:
        for text in stream.text_stream:
            if text:
                yield text


def _call_openai(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                 max_tokens: int) -> tuple[str, int, int]:
    resp = client.chat.completions.create(
        model=spec.model_id,
        messages=[{"role": "system", "content": system}] + messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if not resp.choices:
        raise ValueError(f"OpenAI returned no choices (model={spec.model_id})")
    content = resp.choices[0].message.content or ""
    usage = resp.usage
    return content, usage.prompt_tokens, usage.completion_tokens


def _stream_openai(client, spec: ModelSpec, system: str, messages: list[dict], temperature: float,
                   max_tokens: int) -> Iterator[str]:
    stream = client.chat.completions.create(
        model=spec.model_id,
        messages=[{"role": "system", "content": system}] + messages,
        temperature=temperature,
        max_tokens=max_tokens,
        stream=True,
    )
    for chunk in stream:
        if chunk.choices and chunk.choices[0].delta.content:
            yield chunk.choices[0].delta.content


# ---------------------------------------------------------------------------
# LLMRouter: the public interface
# ---------------------------------------------------------------------------

class LLMRouter:
    """
    Unified LLM interface.  Usage:

        router = LLMRouter(settings)
        text = router.chat(
            role=AssistantRole.ASSISTANT,
            system="You are an organ donation assistant...",
            messages=[{"role": "user", "content": "Who can pledge?"}],
        )
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.clients = _Clients(self.settings)
        self.usage = UsageRecord()
        self._available_cache: dict[Provider, bool] = {}

    # ------------------------------------------------------------------
    def _is_available(self, provider: Provider) -> bool:
        if provider not in self._available_cache:
            self._available_cache[provider] = _provider_available(provider, self.settings)
        return self._available_cache[provider]

    def _chain(self, role: AssistantRole, preferred_model: Optional[str]) -> list[str]:
        if preferred_model and preferred_model in MODELS:
            return [preferred_model] + [m for m in MODEL_ROUTING.get(role, []) if m != preferred_model]
        return MODEL_ROUTING.get(role, MODEL_ROUTING[AssistantRole.ASSISTANT])

    # ------------------------------------------------------------------
    def chat(
        self,
        role: AssistantRole,
        system: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        preferred_model: Optional[str] = None,
    ) -> str:
        """
        Send a chat request with automatic fallback.

        Args:
            role: Assistant role (determines model routing).
            system: System prompt.
            messages: List of {"role": "user"|"assistant", "content": "..."}.
            temperature: Sampling temperature.
            max_tokens: Max output tokens.
            preferred_model: Override model key (e.g. "claude-sonnet").

        Returns:
            Generated text.

        Raises:
            RuntimeError: If all providers in the fallback chain fail.
        """
        errors: list[str] = []
        for model_key in self._chain(role, preferred_model):
            spec = MODELS[model_key]
            if not self._is_available(spec.provider):
                continue

            try:
                t0 = time.time()
                text, in_tok, out_tok = self._dispatch(spec, system, messages, temperature, max_tokens)
                elapsed = time.time() - t0

                cost = (in_tok / 1000) * spec.input_cost_per_1k + (out_tok / 1000) * spec.output_cost_per_1k
                self.usage.record(spec.provider.value, model_key, in_tok, out_tok, cost)

                logger.debug(
                    f"[LLMRouter] {model_key} ok | {in_tok}+{out_tok} tok | "
                    f"${cost:.5f} | {elapsed:.2f}s"
                )
                return text

            except Exception as e:
                self.usage.errors += 1
                errors.append(f"{model_key}: {e}")
                logger.warning(f"[LLMRouter] {model_key} failed: {e}")
                continue

        raise RuntimeError(f"All providers failed for role={role.value}: {errors}")

    # ------------------------------------------------------------------
    def stream_chat(
        self,
        role: AssistantRole,
        system: str,
        messages: list[dict],
        *,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        preferred_model: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Stream a chat response as text chunks.

        Falls back to the next model only while nothing has been yielded;
        a failure mid-stream is re-raised.

        Raises:
            RuntimeError: If all providers in the fallback chain fail.
        """
        errors: list[str] = []
        for model_key in self._chain(role, preferred_model):
            spec = MODELS[model_key]
            if not self._is_available(spec.provider):
                continue

            emitted = False
            try:
                for chunk in self._dispatch_stream(spec, system, messages, temperature, max_tokens):
                    emitted = True
                    yield chunk
                self.usage.call_count += 1
                logger.debug(f"[LLMRouter] {model_key} stream complete")
                return
            except Exception as e:
                self.usage.errors += 1
                if emitted:
                    logger.error(f"[LLMRouter] {model_key} failed mid-stream: {e}")
                    raise
                errors.append(f"{model_key}: {e}")
                logger.warning(f"[LLMRouter] {model_key} stream failed: {e}")

        raise RuntimeError(f"All providers failed for role={role.value}: {errors}")

    # ------------------------------------------------------------------
    def _dispatch(
        self, spec: ModelSpec, system: str, messages: list[dict],
        temperature: float, max_tokens: int,
    ) -> tuple[str, int, int]:
        """Route to the correct provider call."""
        if spec.provider == Provider.GEMINI:
            return _call_gemini(self.clients.gemini(), spec, system, messages, temperature,
                                max_tokens, self.settings.thinking_budget)
        elif spec.provider == Provider.ANTHROPIC:
            return _call_anthropic(self.clients.anthropic(), spec, system, messages, temperature, max_tokens)
        elif spec.provider == Provider.OPENAI:
            return _call_openai(self.clients.openai(), spec, system, messages, temperature, max_tokens)
        else:
            raise ValueError(f"Unknown provider: {spec.provider}")

    def _dispatch_stream(
        self, spec: ModelSpec, system: str, messages: list[dict],
        temperature: float, max_tokens: int,
    ) -> Iterator[str]:
        if spec.provider == Provider.GEMINI:
            return _stream_gemini(self.clients.gemini(), spec, system, messages, temperature,
                                  max_tokens, self.settings.thinking_budget)
        elif spec.provider == Provider.ANTHROPIC:
            return _stream_anthropic(self.clients.anthropic(), spec, system, messages, temperature, max_tokens)
        elif spec.provider == Provider.OPENAI:
            return _stream_openai(self.clients.openai(), spec, system, messages, temperature, max_tokens)
        else:
            raise ValueError(f"Unknown provider: {spec.provider}")

    # ------------------------------------------------------------------
    def get_usage_report(self) -> dict[str, Any]:
        """Return usage statistics."""
        return {
            "total_calls": self.usage.call_count,
            "total_errors": self.usage.errors,
            "total_input_tokens": self.usage.total_input_tokens,
            "total_output_tokens": self.usage.total_output_tokens,
            "total_cost_usd": round(self.usage.total_cost_usd, 6),
            "per_provider": self.usage.per_provider,
        }
