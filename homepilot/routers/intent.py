"""
Intent Router - API endpoint for voice command processing.

HTTP handling only; everything else is delegated to VoiceCommandService.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from homepilot.deps import get_voice_command_service, require_session
from homepilot.services.voice_command_service import VoiceCommandService

logger = logging.getLogger("homepilot.routers.intent")

router = APIRouter(prefix="/intent", tags=["intent"])


# ---------------------------------------------------------------------------
# REQUEST/RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class IntentRequest(BaseModel):
    """
    Request schema for the /intent endpoint.

    Example:
    {
        "text": "Jarvis, turn on the kitchen light"
    }
    """
    text: str = Field(..., min_length=1, max_length=500, description="Transcribed voice command")


class IntentResponse(BaseModel):
    """
    Response schema for the /intent endpoint.

    Example:
    {
        "success": true,
        "intent_type": "action",
        "message": "Okay. Turned on Kitchen Light.",
        "actions": [{"device_phrase": "kitchen light", "status": "succeeded", ...}],
        "refresh_completed": true
    }
    """
    success: bool
    intent_type: str
    message: str
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    outcomes: List[Dict[str, Any]] = Field(default_factory=list)
    device: Optional[Dict[str, Any]] = None
    refresh_completed: bool = False
    warnings: List[str] = Field(default_factory=list)
    response: Optional[str] = None
    error_reason: Optional[str] = None
    request_id: Optional[str] = None
    processing_time_ms: Optional[float] = None


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.post("", response_model=IntentResponse)
async def process_intent(
    request: IntentRequest,
    _session: str = Depends(require_session),
    service: VoiceCommandService = Depends(get_voice_command_service),
):
    """
    Process a voice command.

    **Examples:**
    - "Turn on the kitchen light"
    - "Jarvis, turn on the light and turn off the fan"
    - "Is the fan on?"
    """
    try:
        result = await service.process(request.text)
    except Exception as e:
        logger.error(f"Failed to process intent: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process intent: {str(e)}",
        )

    return IntentResponse(**result.to_dict())
