"""
Intent Interpreter - Turns voice command text into a validated intent.

The interpreter is a thin, strict boundary around the oracle:
1. Takes raw text ("Turn on the kitchen light and turn off the fan")
2. Sends it with the fixed instruction prompt to the AI provider
3. Decodes the JSON response
4. Validates it against the intent schemas

It trusts the oracle's content but verifies its shape. Nothing is
corrected or guessed: a response that doesn't validate is an
InterpretationError, and the action order from the oracle is kept.
"""

import json
import logging
import time
from datetime import datetime
from typing import Optional

from homepilot.ai.intent.schemas import InterpretedIntent, parse_intent
from homepilot.ai.prompts.intent_prompts import (
    INTENT_EXTRACTION_PROMPT,
    INTENT_SYSTEM_PROMPT,
)
from homepilot.ai.providers import AIProvider, get_provider
from homepilot.core.config import settings
from homepilot.core.exceptions import InterpretationError

logger = logging.getLogger("homepilot.ai.intent")


class IntentInterpreter:
    """
    Interprets natural language into a structured intent.

    Usage:
        interpreter = IntentInterpreter()
        intent = await interpreter.interpret("Turn on the kitchen light")

        if isinstance(intent, ActionIntent):
            for action in intent.actions:
                print(action.device_phrase, action.action_phrase)
    """

    def __init__(self, provider: Optional[AIProvider] = None):
        """
        Args:
            provider: Oracle to use, defaults to settings.INTENT_PROVIDER
        """
        self.provider = provider or get_provider(settings.INTENT_PROVIDER)
        logger.info(f"Intent interpreter initialized ({self.provider.provider_type.value})")

    async def interpret(self, text: str) -> InterpretedIntent:
        """
        Interpret a command.

        Args:
            text: The transcribed command (wake word already removed)

        Returns:
            ActionIntent, QueryIntent or GeneralIntent

        Raises:
            InterpretationError: Empty text, oracle unreachable or timed out,
                or output that is not a valid intent
        """
        if not text or not text.strip():
            raise InterpretationError("Empty command", reason="empty_input")

        start_time = time.time()
        logger.info(f"Interpreting command: {text[:50]}...")

        prompt = INTENT_EXTRACTION_PROMPT.format(
            command=text.strip(),
            current_time=datetime.now().strftime("%A %Y-%m-%d %I:%M %p"),
        )

        response = await self.provider.generate_json(
            prompt=prompt,
            system_prompt=INTENT_SYSTEM_PROMPT,
        )
        logger.debug(f"Oracle response: {response.to_dict()}")

        if not response.success:
            reason = "timeout" if response.timed_out else "oracle_unavailable"
            logger.warning(f"Oracle request failed ({reason}): {response.error}")
            raise InterpretationError(response.error or "Oracle request failed", reason=reason)

        try:
            data = json.loads(response.content)
        except json.JSONDecodeError as e:
            logger.warning(f"Oracle returned invalid JSON: {e}")
            raise InterpretationError(f"Invalid JSON from oracle: {e}", reason="invalid_json") from e

        try:
            intent = parse_intent(data)
        except InterpretationError as e:
            logger.warning(f"Oracle output rejected: {e.message}")
            raise

        processing_time = (time.time() - start_time) * 1000
        logger.info(f"Interpreted command in {processing_time:.0f}ms: {intent.intent_type}")
        return intent
