"""
Rule-Based Provider - Deterministic stand-in for the language model.

Understands the handful of phrasings that make up most voice commands:
- "turn on the kitchen light"
- "switch the fan off"
- "turn on the light and turn off the fan"
- "is the fan on?"

Anything else becomes a general reply. It returns the same JSON the
real oracle does, so the interpreter validates it the same way. Useful
offline (INTENT_PROVIDER=rules) and in tests.
"""

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from homepilot.ai.providers.base import AIProvider, AIResponse, ProviderType

logger = logging.getLogger("homepilot.ai.rules")


_COMMAND_RE = re.compile(r'Command:\s*"(?P<command>.*)"', re.DOTALL)

_VERB = r"(?:turn|switch|power)"

# "turn on the kitchen light"
_VERB_FIRST_RE = re.compile(rf"^{_VERB}\s+(?P<state>on|off)\s+(?P<device>.+)$")
# "turn the kitchen light on"
_VERB_LAST_RE = re.compile(rf"^{_VERB}\s+(?P<device>.+?)\s+(?P<state>on|off)$")
# "activate the fan" / "deactivate the fan"
_TOGGLE_WORD_RE = re.compile(r"^(?P<verb>activate|deactivate|enable|disable)\s+(?P<device>.+)$")
# "is the fan on?"
_QUERY_RE = re.compile(r"^(?:is|are)\s+(?P<device>.+?)\s+(?:on|off|online|offline)$")
# "what is the status of the fan"
_STATUS_RE = re.compile(r"^what(?:'s| is)\s+the\s+status\s+of\s+(?P<device>.+)$")

_SPLIT_RE = re.compile(r"\s*(?:,\s*and|,|\band then\b|\band\b)\s*")
_ARTICLE_RE = re.compile(r"^(?:the|my)\s+")


def _clean_device(device: str) -> str:
    return _ARTICLE_RE.sub("", device.strip())


def _parse_action(clause: str) -> Optional[Dict[str, str]]:
    match = _VERB_FIRST_RE.match(clause) or _VERB_LAST_RE.match(clause)
    if match:
        return {"device": _clean_device(match.group("device")), "action": f"turn {match.group('state')}"}

    match = _TOGGLE_WORD_RE.match(clause)
    if match:
        return {"device": _clean_device(match.group("device")), "action": match.group("verb")}
    return None


def interpret_command(command: str) -> Dict[str, Any]:
    """
    Apply the rules to one command.

    Returns:
        Oracle-shaped dict (intentType action, query or general)
    """
    text = command.strip().lower().rstrip("?.!").strip()

    for pattern in (_QUERY_RE, _STATUS_RE):
        match = pattern.match(text)
        if match:
            return {
                "intentType": "query",
                "queryTarget": _clean_device(match.group("device")),
                "queryType": "get status",
            }

    actions: List[Dict[str, str]] = []
    for clause in filter(None, _SPLIT_RE.split(text)):
        action = _parse_action(clause)
        if action is None:
            actions = []
            break
        actions.append(action)

    if actions:
        return {"intentType": "action", "actions": actions}

    return {
        "intentType": "general",
        "generalResponse": "Sorry, I can only control and check your devices right now.",
    }


class RuleBasedProvider(AIProvider):
    """Deterministic provider backed by regular expressions."""

    provider_type = ProviderType.RULES
    model = "rules-v1"

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()

        match = _COMMAND_RE.search(prompt)
        command = match.group("command") if match else prompt
        result = interpret_command(command)
        logger.debug(f"Rules interpreted '{command}' as {result['intentType']}")

        return AIResponse(
            content=json.dumps(result),
            provider=self.provider_type,
            model=self.model,
            latency_ms=self._measure_latency(start_time),
            success=True,
        )


rule_based_provider = RuleBasedProvider()
