"""
Dependencies module - reusable FastAPI dependencies for route handlers.

Sessions are validated outside this service. All we check is that the
caller presented one: an "Authorization: Bearer <token>" header.
The service getters exist so tests can swap implementations through
app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from homepilot.services.device_directory import DeviceDirectory, device_directory
from homepilot.services.device_selection import InMemoryDeviceSelection, device_selection
from homepilot.services.reconciler import StateReconciler, state_reconciler
from homepilot.services.voice_command_service import VoiceCommandService, voice_command_service

# ---------------------------------------------------------------------------
# SECURITY SCHEME
# ---------------------------------------------------------------------------
# auto_error=False so a missing header is reported as 401 (not FastAPI's 403)
security = HTTPBearer(auto_error=False)


def require_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Require an authenticated session.

    Returns:
        The bearer token, unvalidated

    Raises:
        401 Unauthorized: No bearer token on the request
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_voice_command_service() -> VoiceCommandService:
    return voice_command_service


def get_device_directory() -> DeviceDirectory:
    return device_directory


def get_device_selection() -> InMemoryDeviceSelection:
    return device_selection


def get_state_reconciler() -> StateReconciler:
    return state_reconciler
