"""
Intent Module - Natural Language Understanding for HomePilot.

Example Flow:
============
User says: "Turn on the kitchen light and turn off the living room fan"

IntentInterpreter extracts:
ActionIntent(actions=[
    DeviceAction(device_phrase="kitchen light", action_phrase="turn on"),
    DeviceAction(device_phrase="living room fan", action_phrase="turn off"),
])

DeviceResolver resolves:
"kitchen light" -> Device(id="light-1", name="Kitchen Light")
"""

from homepilot.ai.intent.schemas import (
    ActionIntent,
    DeviceAction,
    GeneralIntent,
    InterpretedIntent,
    QueryIntent,
    parse_intent,
)
from homepilot.ai.intent.device_resolver import (
    AmbiguousMatch,
    DeviceResolver,
    NoMatch,
    Resolution,
    ResolvedDevice,
    device_resolver,
)
from homepilot.ai.intent.parser import IntentInterpreter

__all__ = [
    "ActionIntent",
    "DeviceAction",
    "GeneralIntent",
    "InterpretedIntent",
    "QueryIntent",
    "parse_intent",
    "AmbiguousMatch",
    "DeviceResolver",
    "NoMatch",
    "Resolution",
    "ResolvedDevice",
    "device_resolver",
    "IntentInterpreter",
]
