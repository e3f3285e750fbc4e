"""
Gemini client with safety settings, rate limiting, timeouts and retries.

Uses the async surface of ``google-genai`` (``client.aio.models``). When the
Gemini call fails transiently and an OpenAI key is configured, plain text and
JSON generation fall back to OpenAI.
"""

import asyncio
import json
import logging
import re
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import tenacity
from google import genai
from google.genai import errors
from google.genai.types import (
    Content,
    FinishReason,
    GenerateContentConfig,
    HarmBlockThreshold,
    HarmCategory,
    HttpOptions,
    Part,
    SafetySetting,
)
from openai import AsyncOpenAI

from ...config import Settings, get_settings
from ...core.enums import MessageRole
from ...core.exceptions import (
    LLMError,
    LLMTimeoutError,
    LLMUnavailableError,
    SafetyBlockedError,
)
from ...core.models import ConversationMessage, StreamChunk
from ...utils.logging import get_logger
from .prompts import (
    DEFAULT_SYSTEM_PROMPT,
    HEALTH_CHECK_PROMPT,
    INTENT_ANALYSIS_PROMPT,
    JSON_SYSTEM_PROMPT,
)
from .rate_limiter import RateLimiter


logger = get_logger("clinica.llm")

SAFETY_SETTINGS = [
    SafetySetting(category=category, threshold=HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE)
    for category in (
        HarmCategory.HARM_CATEGORY_HARASSMENT,
        HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]

# Provider failures worth another attempt.
TRANSIENT_ERRORS = (errors.ServerError, LLMTimeoutError)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_json_text(text: str) -> Any:
    """Parse model output as JSON, tolerating a fenced code block."""
    cleaned = _JSON_FENCE.sub("", (text or "").strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LLMError(f"Invalid JSON from model: {e}") from e


class GeminiClient:
    """Thin async wrapper around Gemini for chat replies and NLP analysis."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[genai.Client] = None,
        openai_client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self.model_name = self.settings.gemini_model
        self.rate_limiter = rate_limiter

        if client is None and self.settings.gemini_api_key:
            client = genai.Client(
                api_key=self.settings.gemini_api_key,
                http_options=HttpOptions(api_version="v1"),
            )
        self.client = client

        if openai_client is None and self.settings.openai_api_key:
            openai_client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        self.openai_client = openai_client

        if self.client is None:
            logger.warning("llm: GEMINI_API_KEY not set, Gemini calls will fail")
        else:
            logger.info(f"llm: using Gemini model {self.model_name}")

    # Request building

    def _config(
        self,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> GenerateContentConfig:
        return GenerateContentConfig(
            system_instruction=system_prompt or DEFAULT_SYSTEM_PROMPT,
            temperature=self.settings.llm_temperature if temperature is None else temperature,
            top_k=self.settings.llm_top_k,
            top_p=self.settings.llm_top_p,
            max_output_tokens=min(
                max_output_tokens or self.settings.llm_max_output_tokens,
                self.settings.llm_max_output_tokens,
            ),
            safety_settings=SAFETY_SETTINGS,
            response_mime_type="application/json" if json_mode else None,
        )

    @staticmethod
    def _contents(
        prompt: str, history: Optional[Sequence[ConversationMessage]] = None
    ) -> List[Content]:
        contents = [
            Content(
                role="user" if message.role == MessageRole.USER else "model",
                parts=[Part(text=message.content)],
            )
            for message in history or []
        ]
        contents.append(Content(role="user", parts=[Part(text=prompt)]))
        return contents

    @staticmethod
    def _check_safety(response: Any) -> None:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise SafetyBlockedError(f"Prompt blocked: {feedback.block_reason}")

        for candidate in getattr(response, "candidates", None) or []:
            if getattr(candidate, "finish_reason", None) == FinishReason.SAFETY:
                raise SafetyBlockedError("Response blocked by safety filters")

    def _log_usage(self, response: Any) -> None:
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            logger.info(
                "llm: usage",
                input_tokens=usage.prompt_token_count,
                output_tokens=usage.candidates_token_count,
                total_tokens=usage.total_token_count,
            )

    # Provider calls

    def _require_client(self) -> genai.Client:
        if self.client is None:
            raise LLMUnavailableError("Gemini client is not configured")
        return self.client

    async def _generate_once(self, contents: List[Content], config: GenerateContentConfig) -> Any:
        client = self._require_client()
        try:
            return await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.model_name, contents=contents, config=config
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError(f"Gemini call exceeded {self.settings.llm_timeout_seconds}s")

    async def _generate(self, contents: List[Content], config: GenerateContentConfig) -> str:
        retrying = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception_type(TRANSIENT_ERRORS),
            stop=tenacity.stop_after_attempt(max(1, self.settings.llm_max_retries)),
            wait=tenacity.wait_exponential(multiplier=0.5, min=0.5, max=8),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._generate_once(contents, config)

        self._check_safety(response)
        self._log_usage(response)
        text = response.text
        if not text:
            raise LLMError("Empty response from Gemini")
        return text

    async def _openai_text(
        self,
        prompt: str,
        history: Optional[Sequence[ConversationMessage]],
        system_prompt: Optional[str],
        temperature: Optional[float],
        max_output_tokens: Optional[int],
        json_mode: bool = False,
    ) -> str:
        messages = [{"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT}]
        for message in history or []:
            messages.append({"role": message.role.value, "content": message.content})
        messages.append({"role": "user", "content": prompt})

        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await asyncio.wait_for(
            self.openai_client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                max_tokens=max_output_tokens or self.settings.llm_reply_max_tokens,
                temperature=self.settings.llm_temperature if temperature is None else temperature,
                **kwargs,
            ),
            timeout=self.settings.llm_timeout_seconds,
        )
        return (response.choices[0].message.content or "").strip()

    async def _generate_with_fallback(
        self,
        prompt: str,
        history: Optional[Sequence[ConversationMessage]],
        system_prompt: Optional[str],
        temperature: Optional[float],
        max_output_tokens: Optional[int],
        json_mode: bool = False,
    ) -> str:
        config = self._config(system_prompt, temperature, max_output_tokens, json_mode)
        try:
            return await self._generate(self._contents(prompt, history), config)
        except (LLMUnavailableError, *TRANSIENT_ERRORS) as e:
            if self.openai_client is None:
                if isinstance(e, LLMError):
                    raise
                raise LLMUnavailableError(f"Gemini unavailable: {e}") from e
            logger.warning(f"llm: Gemini failed ({e}), falling back to OpenAI")

        try:
            return await self._openai_text(
                prompt, history, system_prompt, temperature, max_output_tokens, json_mode
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError("OpenAI fallback timed out")
        except Exception as e:
            raise LLMUnavailableError(f"OpenAI fallback failed: {e}") from e

    async def _check_rate_limit(self, user_id: Optional[str]) -> None:
        if user_id and self.rate_limiter is not None:
            await self.rate_limiter.check(user_id)

    # Public API

    async def generate_response(
        self,
        prompt: str,
        history: Optional[Sequence[ConversationMessage]] = None,
        user_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a text reply.

        Raises:
            RateLimitExceededError: the user exhausted the window quota
            SafetyBlockedError: the prompt or reply was blocked
            LLMTimeoutError / LLMUnavailableError / LLMError: provider failures
        """
        await self._check_rate_limit(user_id)
        try:
            text = await self._generate_with_fallback(
                prompt, history, system_prompt, temperature, max_output_tokens
            )
        except errors.APIError as e:
            logger.error(f"llm: Gemini request failed: {e}", user_id=user_id)
            raise LLMError(f"Gemini request failed: {e}") from e
        return text.strip()

    async def generate_streaming_response(
        self,
        prompt: str,
        history: Optional[Sequence[ConversationMessage]] = None,
        user_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Yield partial chunks, then one final chunk with the accumulated text.

        Closing the iterator early closes the provider stream.
        """
        await self._check_rate_limit(user_id)
        client = self._require_client()
        config = self._config(system_prompt, temperature, max_output_tokens)

        try:
            stream = await asyncio.wait_for(
                client.aio.models.generate_content_stream(
                    model=self.model_name,
                    contents=self._contents(prompt, history),
                    config=config,
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError(f"Gemini stream exceeded {self.settings.llm_timeout_seconds}s")
        except errors.APIError as e:
            raise LLMError(f"Gemini stream failed: {e}") from e

        full_content = ""
        try:
            async for chunk in stream:
                self._check_safety(chunk)
                text = chunk.text or ""
                if not text:
                    continue
                full_content += text
                yield StreamChunk(content=text, is_complete=False)
            yield StreamChunk(content=full_content, is_complete=True)
        finally:
            await stream.aclose()

    async def generate_json(
        self,
        prompt: str,
        user_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> Any:
        """Generate and parse a JSON reply (low temperature)."""
        await self._check_rate_limit(user_id)
        try:
            text = await self._generate_with_fallback(
                prompt,
                None,
                system_prompt or JSON_SYSTEM_PROMPT,
                temperature=0.1,
                max_output_tokens=self.settings.llm_max_output_tokens,
                json_mode=True,
            )
        except errors.APIError as e:
            raise LLMError(f"Gemini JSON request failed: {e}") from e
        return parse_json_text(text)

    async def analyze_intent(
        self,
        text: str,
        history: Optional[Sequence[ConversationMessage]] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Classify ``text`` and extract entities in one JSON call.

        Returns ``{"intent": str, "confidence": float, "entities": dict}``;
        the intent label is returned as given by the model and validated by
        the caller.
        """
        history_block = ""
        if history:
            lines = "\n".join(
                f"{'Usuário' if m.role == MessageRole.USER else 'Assistente'}: {m.content}"
                for m in history
            )
            history_block = f"Contexto da conversa:\n{lines}\n\n"

        prompt = INTENT_ANALYSIS_PROMPT.format(
            today=date.today().isoformat(), history=history_block, message=text
        )
        result = await self.generate_json(prompt, user_id=user_id)
        if not isinstance(result, dict):
            raise LLMError("Intent analysis did not return an object")

        try:
            confidence = float(result.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0

        entities = result.get("entities")
        return {
            "intent": str(result.get("intent") or ""),
            "confidence": max(0.0, min(1.0, confidence)),
            "entities": entities if isinstance(entities, dict) else {},
        }

    async def health_check(self) -> Dict[str, str]:
        try:
            text = await self._generate(
                self._contents(HEALTH_CHECK_PROMPT),
                self._config(temperature=0.0, max_output_tokens=10),
            )
            status = "healthy" if "ok" in text.lower() else "degraded"
        except Exception as e:
            logger.error(f"llm: health check failed: {e}")
            status = "unhealthy"
        return {"status": status, "model": self.model_name}
