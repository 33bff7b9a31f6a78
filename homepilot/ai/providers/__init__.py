"""
AI Providers Module - Clients for the language-model oracle.

Every provider has the same interface, making them interchangeable:
    response = await provider.generate_json(prompt, system_prompt=...)

Providers:
- gemini: Google Gemini (default)
- rules: Deterministic regex rules, no network
"""

from homepilot.ai.providers.base import AIProvider, AIResponse, ProviderType, TokenUsage
from homepilot.ai.providers.gemini import GeminiProvider, gemini_provider
from homepilot.ai.providers.rules import RuleBasedProvider, rule_based_provider


def get_provider(name: str) -> AIProvider:
    """
    Look up a provider singleton by name.

    Raises:
        ValueError: Unknown provider name
    """
    providers = {
        ProviderType.GEMINI.value: gemini_provider,
        ProviderType.RULES.value: rule_based_provider,
    }
    try:
        return providers[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown intent provider: {name!r}") from None


__all__ = [
    "AIProvider",
    "AIResponse",
    "ProviderType",
    "TokenUsage",
    "GeminiProvider",
    "gemini_provider",
    "RuleBasedProvider",
    "rule_based_provider",
    "get_provider",
]
