"""
Intent Schemas - Pydantic models for interpreted voice commands.

These schemas define the only shapes the interpreter will forward.
Whatever the oracle returns is validated against them; anything that
does not fit is rejected, never patched up.

Oracle Wire Format:
==================
{
    "intentType": "action",
    "actions": [{"device": "kitchen light", "action": "turn on"}],
    "suggestedConfirmation": "Okay, turning on the kitchen light."
}

Field names on the wire follow the oracle's camelCase; the models expose
snake_case attributes and accept either form.

Design Philosophy:
=================
- Immutable models (frozen)
- Validation at construction time
- Whitespace stripped, required strings non-empty
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from homepilot.core.exceptions import InterpretationError

# Fallback confirmations when the oracle didn't suggest one
DEFAULT_ACTION_CONFIRMATION = "Okay."
DEFAULT_QUERY_CONFIRMATION = "Checking that now."


class _IntentModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class DeviceAction(_IntentModel):
    """
    One device/action pair from the utterance.

    Example:
        {"device": "kitchen light", "action": "turn on"}
    """
    device_phrase: str = Field(alias="device", min_length=1, description="Device name as spoken")
    action_phrase: str = Field(alias="action", min_length=1, description="Action as spoken, e.g. 'turn on'")


class ActionIntent(_IntentModel):
    """
    Intent to act on one or more devices.

    Examples:
    - "Turn on the kitchen light" -> 1 action
    - "Turn on the light and turn off the fan" -> 2 actions, in spoken order
    """
    intent_type: Literal["action"] = Field(default="action", alias="intentType")
    actions: List[DeviceAction] = Field(min_length=1)
    confirmation_text: Optional[str] = Field(default=None, alias="suggestedConfirmation")

    @property
    def confirmation(self) -> str:
        return self.confirmation_text or DEFAULT_ACTION_CONFIRMATION


class QueryIntent(_IntentModel):
    """
    Intent to ask about a device.

    Example:
    - "Is the fan on?" -> target_phrase="fan", query_kind="get status"
    """
    intent_type: Literal["query"] = Field(default="query", alias="intentType")
    target_phrase: str = Field(alias="queryTarget", min_length=1)
    query_kind: str = Field(alias="queryType", min_length=1)
    confirmation_text: Optional[str] = Field(default=None, alias="suggestedConfirmation")

    @property
    def confirmation(self) -> str:
        return self.confirmation_text or DEFAULT_QUERY_CONFIRMATION


class GeneralIntent(_IntentModel):
    """
    Conversational input that isn't about devices.

    Examples:
    - "Hello there" -> response_text="Hello! How can I help?"
    - "What time is it?" -> response_text="It's 3:45 PM."
    """
    intent_type: Literal["general"] = Field(default="general", alias="intentType")
    response_text: str = Field(alias="generalResponse", min_length=1)


InterpretedIntent = Union[ActionIntent, QueryIntent, GeneralIntent]

# intentType value -> model
INTENT_MODELS = {
    "action": ActionIntent,
    "query": QueryIntent,
    "general": GeneralIntent,
}


def parse_intent(data: Any) -> InterpretedIntent:
    """
    Validate decoded oracle output into a typed intent.

    Args:
        data: Decoded JSON from the oracle

    Returns:
        ActionIntent, QueryIntent or GeneralIntent

    Raises:
        InterpretationError: Not an object, unknown intentType, or a
            variant with missing/empty required fields
    """
    if not isinstance(data, dict):
        raise InterpretationError(
            f"Expected a JSON object, got {type(data).__name__}",
            reason="schema_invalid",
        )

    intent_type = str(data.get("intentType") or data.get("intent_type") or "").strip().lower()
    model = INTENT_MODELS.get(intent_type)
    if model is None:
        raise InterpretationError(
            f"Unknown intent type: {intent_type or '<missing>'}",
            reason="schema_invalid",
        )

    payload: Dict[str, Any] = {k: v for k, v in data.items() if k not in ("intentType", "intent_type")}
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InterpretationError(
            f"Invalid {intent_type} intent: {e.error_count()} validation error(s)",
            reason="schema_invalid",
        ) from e
