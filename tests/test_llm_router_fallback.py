"""Tests for LLM Router fallback and streaming"""

import pytest
from unittest.mock import patch

from src.agents.llm_router import (
    MODEL_ROUTING,
    AssistantRole,
    LLMRouter,
    Provider,
    UsageRecord,
    _provider_available,
)
from src.config import Settings


def make_settings(**keys):
    base = {"gemini_api_key": "", "anthropic_api_key": "", "openai_api_key": ""}
    return Settings(_env_file=None, **{**base, **keys})


class TestLLMRouterFallback:
    """Test LLM Router provider fallback"""

    @pytest.fixture
    def router(self):
        return LLMRouter(make_settings(gemini_api_key="g", openai_api_key="o"))

    def test_routing_prefers_gemini(self):
        assert MODEL_ROUTING[AssistantRole.ASSISTANT][0] == "gemini-flash-lite"
        assert MODEL_ROUTING[AssistantRole.THINKING][0] == "gemini-pro"

    def test_provider_availability_follows_keys(self):
        settings = make_settings(gemini_api_key="g")
        assert _provider_available(Provider.GEMINI, settings)
        assert not _provider_available(Provider.ANTHROPIC, settings)
        assert not _provider_available(Provider.OPENAI, settings)

    def test_primary_success(self, router):
        with patch.object(router, "_dispatch", return_value=("Hi", 10, 5)) as dispatch:
            text = router.chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "hello"}])

        assert text == "Hi"
        assert dispatch.call_args[0][0].model_id == "gemini-2.5-flash-lite"
        assert router.usage.call_count == 1
        assert router.usage.total_input_tokens == 10

    def test_automatic_fallback_to_backup(self, router):
        calls = []

        def dispatch(spec, *args):
            calls.append(spec.provider)
            if spec.provider == Provider.GEMINI:
                raise Exception("API Error")
            return "from openai", 3, 4

        with patch.object(router, "_dispatch", side_effect=dispatch):
            text = router.chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "hi"}])

        assert text == "from openai"
        # Anthropic has no key, so it is never tried
        assert calls == [Provider.GEMINI, Provider.OPENAI]
        assert router.usage.errors == 1

    def test_all_providers_failure(self, router):
        with patch.object(router, "_dispatch", side_effect=Exception("down")):
            with pytest.raises(RuntimeError, match="All providers failed"):
                router.chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "hi"}])

    def test_no_keys_configured(self):
        router = LLMRouter(make_settings())
        with pytest.raises(RuntimeError):
            router.chat(AssistantRole.THINKING, "sys", [{"role": "user", "content": "hi"}])

    def test_preferred_model_goes_first(self, router):
        with patch.object(router, "_dispatch", return_value=("ok", 1, 1)) as dispatch:
            router.chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "hi"}],
                        preferred_model="gpt-4o")
        assert dispatch.call_args[0][0].model_id == "gpt-4o"

    def test_usage_record_defaults(self):
        usage = UsageRecord()
        assert usage.total_input_tokens == 0
        assert usage.total_output_tokens == 0
        assert usage.total_cost_usd == 0.0
        assert usage.call_count == 0


class TestLLMRouterStreaming:

    @pytest.fixture
    def router(self):
        return LLMRouter(make_settings(gemini_api_key="g", anthropic_api_key="a"))

    def test_stream_yields_chunks(self, router):
        with patch.object(router, "_dispatch_stream", return_value=iter(["Organ ", "donation"])):
            chunks = list(router.stream_chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "?"}]))
        assert chunks == ["Organ ", "donation"]

    def test_stream_falls_back_before_first_chunk(self, router):
        def failing():
            raise Exception("connect error")
            yield  # pragma: no cover

        def dispatch(spec, *args):
            if spec.provider == Provider.GEMINI:
                return failing()
            return iter(["fallback"])

        with patch.object(router, "_dispatch_stream", side_effect=dispatch):
            chunks = list(router.stream_chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "?"}]))

        assert chunks == ["fallback"]

    def test_stream_failure_mid_response_is_raised(self, router):
        def partial():
            yield "half"
            raise Exception("dropped")

        with patch.object(router, "_dispatch_stream", return_value=partial()):
            stream = router.stream_chat(AssistantRole.ASSISTANT, "sys", [{"role": "user", "content": "?"}])
            assert next(stream) == "half"
            with pytest.raises(Exception, match="dropped"):
                next(stream)
