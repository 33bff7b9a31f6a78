"""
Gemini Provider - Google's GenAI SDK.

Used as the voice command oracle: JSON response mode, low temperature,
and a hard timeout on every request.
"""

import asyncio
import logging
import time
from typing import Optional

from google import genai
from google.genai import types

from homepilot.core.config import settings
from homepilot.ai.providers.base import (
    AIProvider,
    AIResponse,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger("homepilot.ai.gemini")


class GeminiProvider(AIProvider):
    provider_type = ProviderType.GEMINI

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.timeout = timeout if timeout is not None else settings.AI_REQUEST_TIMEOUT

        if self.api_key:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Gemini API key not configured")

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()
        if not self._client:
            return self._error("API key missing", start_time)

        try:
            config = types.GenerateContentConfig(
                temperature=kwargs.get("temperature", 0.2),
                max_output_tokens=kwargs.get("max_tokens", 1024),
                response_mime_type="application/json",
                system_instruction=system_prompt,
            )

            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=f"{prompt}\n\nIMPORTANT: Respond ONLY with valid JSON.",
                    config=config,
                ),
                timeout=self.timeout,
            )

            content = (response.text or "").strip()
            if content.startswith("```json"):
                content = content[7:]
                if content.endswith("```"):
                    content = content[:-3]
                content = content.strip()

            return AIResponse(
                content=content,
                provider=self.provider_type,
                model=self.model,
                usage=self._extract_usage(response),
                latency_ms=self._measure_latency(start_time),
                success=True,
            )

        except asyncio.TimeoutError:
            return self._error(f"Request timed out after {self.timeout}s", start_time, timeout=True)
        except Exception as e:
            return self._error(str(e), start_time)

    def _extract_usage(self, response) -> TokenUsage:
        # usage_metadata can be None when the API reports no usage
        metadata = response.usage_metadata
        prompt_t = (metadata.prompt_token_count or 0) if metadata else 0
        comp_t = (metadata.candidates_token_count or 0) if metadata else 0
        return TokenUsage(prompt_tokens=prompt_t, completion_tokens=comp_t)

    def _error(self, msg: str, start_time: float, timeout: bool = False) -> AIResponse:
        return self._create_error_response(
            error=msg,
            model=self.model,
            latency_ms=self._measure_latency(start_time),
            timeout=timeout,
        )


# Singleton instance
gemini_provider = GeminiProvider()
