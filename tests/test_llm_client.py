"""
Tests for the Gemini client and the Redis rate limiter.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from google.genai.types import FinishReason

from clinica_ai_agent.core.enums import MessageRole
from clinica_ai_agent.core.exceptions import (
    LLMError,
    LLMTimeoutError,
    LLMUnavailableError,
    RateLimitExceededError,
    SafetyBlockedError,
)
from clinica_ai_agent.core.models import ConversationMessage
from clinica_ai_agent.services.llm import GeminiClient, RateLimiter, parse_json_text


def _response(text="Olá!", finish_reason=None, block_reason=None):
    candidates = [SimpleNamespace(finish_reason=finish_reason)] if finish_reason else []
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(
        text=text,
        candidates=candidates,
        prompt_feedback=feedback,
        usage_metadata=SimpleNamespace(
            prompt_token_count=10, candidates_token_count=5, total_token_count=15
        ),
    )


def _genai_client(response=None, side_effect=None):
    models = SimpleNamespace(
        generate_content=AsyncMock(return_value=response, side_effect=side_effect),
        generate_content_stream=AsyncMock(),
    )
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def _openai_client(content):
    client = Mock()
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    ))
    return client


class TestGenerateResponse:
    """Test plain text generation."""

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self, settings):
        client = _genai_client(_response("  Olá! Como posso ajudar?  "))
        llm = GeminiClient(settings, client=client)

        history = [ConversationMessage(role=MessageRole.ASSISTANT, content="Oi")]
        text = await llm.generate_response("Quero agendar", history=history)

        assert text == "Olá! Como posso ajudar?"
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == settings.gemini_model
        assert [c.role for c in kwargs["contents"]] == ["model", "user"]
        assert kwargs["contents"][-1].parts[0].text == "Quero agendar"

    @pytest.mark.asyncio
    async def test_safety_finish_reason_blocks(self, settings):
        llm = GeminiClient(settings, client=_genai_client(_response("x", finish_reason=FinishReason.SAFETY)))
        with pytest.raises(SafetyBlockedError):
            await llm.generate_response("...")

    @pytest.mark.asyncio
    async def test_blocked_prompt(self, settings):
        llm = GeminiClient(settings, client=_genai_client(_response(None, block_reason="SAFETY")))
        with pytest.raises(SafetyBlockedError):
            await llm.generate_response("...")

    @pytest.mark.asyncio
    async def test_empty_text_is_an_error(self, settings):
        llm = GeminiClient(settings, client=_genai_client(_response("")))
        with pytest.raises(LLMError):
            await llm.generate_response("Oi")

    @pytest.mark.asyncio
    async def test_without_client(self, settings):
        llm = GeminiClient(settings)
        assert llm.client is None
        with pytest.raises(LLMUnavailableError):
            await llm.generate_response("Oi")

    @pytest.mark.asyncio
    async def test_timeout(self, settings):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        fast_settings = settings.model_copy(update={"llm_timeout_seconds": 0.01, "llm_max_retries": 1})
        llm = GeminiClient(fast_settings, client=_genai_client(side_effect=slow))
        with pytest.raises(LLMTimeoutError):
            await llm.generate_response("Oi")

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_openai(self, settings):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        fast_settings = settings.model_copy(update={"llm_timeout_seconds": 0.01, "llm_max_retries": 1})
        openai_client = _openai_client(" Resposta alternativa ")
        llm = GeminiClient(fast_settings, client=_genai_client(side_effect=slow), openai_client=openai_client)

        assert await llm.generate_response("Oi") == "Resposta alternativa"
        messages = openai_client.chat.completions.create.await_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert messages[-1] == {"role": "user", "content": "Oi"}

    @pytest.mark.asyncio
    async def test_rate_limit_stops_before_provider(self, settings, fake_redis):
        client = _genai_client(_response("ok"))
        llm = GeminiClient(settings, rate_limiter=RateLimiter(fake_redis, max_requests=1), client=client)

        await llm.generate_response("Oi", user_id="u1")
        with pytest.raises(RateLimitExceededError):
            await llm.generate_response("Oi de novo", user_id="u1")
        assert client.aio.models.generate_content.await_count == 1


class TestJsonAndIntent:
    """Test JSON generation and intent analysis."""

    def test_parse_json_text(self):
        assert parse_json_text('```json\n{"a": 1}\n```') == {"a": 1}
        assert parse_json_text('[1, 2]') == [1, 2]
        with pytest.raises(LLMError):
            parse_json_text("não sei")

    @pytest.mark.asyncio
    async def test_analyze_intent_clamps_and_defaults(self, settings):
        raw = '```json\n{"intent": "AGENDAR_CONSULTA", "confidence": 1.7, "entities": []}\n```'
        client = _genai_client(_response(raw))
        llm = GeminiClient(settings, client=client)

        result = await llm.analyze_intent("Quero agendar")

        assert result == {"intent": "AGENDAR_CONSULTA", "confidence": 1.0, "entities": {}}
        config = client.aio.models.generate_content.await_args.kwargs["config"]
        assert config.response_mime_type == "application/json"
        assert config.temperature == 0.1

    @pytest.mark.asyncio
    async def test_analyze_intent_includes_history(self, settings):
        client = _genai_client(_response('{"intent": "UNKNOWN", "confidence": "x"}'))
        llm = GeminiClient(settings, client=client)
        history = [ConversationMessage(role=MessageRole.USER, content="Meu nome é Ana")]

        result = await llm.analyze_intent("e meu telefone é 11999887766", history=history)

        assert result["confidence"] == 0.0
        prompt = client.aio.models.generate_content.await_args.kwargs["contents"][-1].parts[0].text
        assert "Usuário: Meu nome é Ana" in prompt
        assert "11999887766" in prompt

    @pytest.mark.asyncio
    async def test_analyze_intent_rejects_non_object(self, settings):
        llm = GeminiClient(settings, client=_genai_client(_response("[1, 2]")))
        with pytest.raises(LLMError):
            await llm.analyze_intent("Oi")


class TestStreamingAndHealth:
    """Test streaming replies and the health probe."""

    @pytest.mark.asyncio
    async def test_streaming_accumulates(self, settings):
        closed = []

        async def chunks():
            try:
                for text in ["Olá", "", ", tudo bem?"]:
                    yield SimpleNamespace(text=text, candidates=[], prompt_feedback=None)
            finally:
                closed.append(True)

        client = _genai_client()
        client.aio.models.generate_content_stream.return_value = chunks()
        llm = GeminiClient(settings, client=client)

        received = [chunk async for chunk in llm.generate_streaming_response("Oi")]

        assert [c.content for c in received] == ["Olá", ", tudo bem?", "Olá, tudo bem?"]
        assert [c.is_complete for c in received] == [False, False, True]
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_health_check(self, settings):
        healthy = GeminiClient(settings, client=_genai_client(_response("OK")))
        assert (await healthy.health_check())["status"] == "healthy"

        failing = GeminiClient(settings, client=_genai_client(side_effect=RuntimeError("down")))
        assert await failing.health_check() == {"status": "unhealthy", "model": settings.gemini_model}


class TestRateLimiter:
    """Test the fixed-window counter."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, fake_redis):
        limiter = RateLimiter(fake_redis, window_seconds=60, max_requests=2)

        assert await limiter.check("u1") == 1
        assert await limiter.check("u1") == 2
        with pytest.raises(RateLimitExceededError):
            await limiter.check("u1")

        assert fake_redis.ttls[RateLimiter.key("u1")] == 60
        assert await limiter.check("u2") == 1
