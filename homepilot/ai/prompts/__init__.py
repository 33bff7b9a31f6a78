"""Prompt templates for the voice command oracle."""

from homepilot.ai.prompts.intent_prompts import INTENT_EXTRACTION_PROMPT, INTENT_SYSTEM_PROMPT

__all__ = [
    "INTENT_SYSTEM_PROMPT",
    "INTENT_EXTRACTION_PROMPT",
]
