"""
Base AI Provider - Abstract interface for the language-model oracle.

The interpreter only ever talks to this interface, so the real model can
be swapped for a deterministic stand-in (tests, offline development)
without touching the pipeline.

Design Pattern: Strategy Pattern
================================
    provider = GeminiProvider()
    response = await provider.generate_json(prompt, system_prompt=...)
    if response.success:
        data = json.loads(response.content)
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger("homepilot.ai")


class ProviderType(str, Enum):
    """Enum of supported AI providers."""
    GEMINI = "gemini"
    RULES = "rules"


@dataclass
class TokenUsage:
    """Token usage statistics for an AI request."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        """Calculate total if not provided."""
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class AIResponse:
    """
    Standardized response from any AI provider.

    Attributes:
        content: The generated text (a JSON string for generate_json)
        provider: Which provider generated this response
        model: The specific model used
        usage: Token usage statistics
        latency_ms: How long the request took
        success: Whether the request succeeded
        error: Error message if failed
        metadata: Extra data; "timeout": True when the request timed out
        created_at: Timestamp of the response
    """
    content: str
    provider: ProviderType
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def timed_out(self) -> bool:
        return bool(self.metadata.get("timeout"))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "content": self.content[:100] + "..." if len(self.content) > 100 else self.content,
            "provider": self.provider.value,
            "model": self.model,
            "tokens": {
                "prompt": self.usage.prompt_tokens,
                "completion": self.usage.completion_tokens,
                "total": self.usage.total_tokens,
            },
            "latency_ms": self.latency_ms,
            "success": self.success,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    Responsibilities:
    - Produce a JSON document for a prompt
    - Enforce a request timeout
    - Never raise: failures come back as AIResponse(success=False)
    """

    provider_type: ProviderType

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        """
        Generate a JSON response from the model.

        Args:
            prompt: The user's message with any context
            system_prompt: Instructions describing the JSON to produce
            **kwargs: Provider-specific options

        Returns:
            AIResponse with a JSON content string

        Raises:
            This method should NOT raise exceptions.
            Errors are captured in AIResponse.error
        """
        pass

    def _measure_latency(self, start_time: float) -> float:
        """Calculate latency in milliseconds."""
        return (time.time() - start_time) * 1000

    def _create_error_response(
        self,
        error: str,
        model: str,
        latency_ms: float = 0.0,
        timeout: bool = False,
    ) -> AIResponse:
        """Create a standardized error response."""
        logger.error(f"AI Provider Error [{self.provider_type.value}]: {error}")
        return AIResponse(
            content="",
            provider=self.provider_type,
            model=model,
            latency_ms=latency_ms,
            success=False,
            error=error,
            metadata={"timeout": True} if timeout else {},
        )
