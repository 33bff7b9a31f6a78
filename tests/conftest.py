"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Sample devices (as the bridge reports them and as Device models)
- FakeBridge: an in-memory bridge served through httpx.MockTransport
- Wired-up services (client, directory, dispatcher, reconciler)
- Test client (FastAPI TestClient) with dependency overrides
"""

import copy
import json
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from homepilot.ai.intent.parser import IntentInterpreter
from homepilot.ai.providers.rules import RuleBasedProvider
from homepilot.bridge.client import SmartHomeBridgeClient
from homepilot.models.device import Device, DeviceCategory
from homepilot.services.commands import CommandDispatcher
from homepilot.services.device_directory import DeviceDirectory
from homepilot.services.device_selection import InMemoryDeviceSelection
from homepilot.services.reconciler import StateReconciler
from homepilot.services.voice_command_service import VoiceCommandService

BRIDGE_URL = "https://bridge.test/smarthome"

SYNC_INTENT = "action.devices.SYNC"
QUERY_INTENT = "action.devices.QUERY"
EXECUTE_INTENT = "action.devices.EXECUTE"


# ---------------------------------------------------------------------------
# SAMPLE DATA
# ---------------------------------------------------------------------------

BRIDGE_DEVICES: List[Dict[str, Any]] = [
    {"id": "light-1", "name": {"name": "Kitchen Light"}, "type": "action.devices.types.LIGHT"},
    {"id": "light-2", "name": {"name": "Living Room Light"}, "type": "action.devices.types.LIGHT"},
    {"id": "fan-1", "name": {"name": "Living Room Fan"}, "type": "action.devices.types.FAN"},
    {"id": "outlet-1", "name": {"name": "Desk Lamp Plug"}, "type": "action.devices.types.OUTLET"},
    {
        "id": "thermo-1",
        "name": {"name": "Hallway Thermostat"},
        "type": "action.devices.types.THERMOSTAT",
        "attributes": {"availableThermostatModes": ["off", "heat"], "unit": "C"},
    },
]

BRIDGE_STATES: Dict[str, Dict[str, Any]] = {
    "light-1": {"on": False, "online": True},
    "light-2": {"on": True, "online": True},
    "fan-1": {"on": True, "online": True},
    "outlet-1": {"on": False, "online": False},
    "thermo-1": {"online": True},
}


def make_device(
    device_id: str,
    name: str,
    category: DeviceCategory = DeviceCategory.LIGHT,
    **kwargs,
) -> Device:
    """Build a Device for resolver/model tests."""
    return Device(id=device_id, name=name, category=category, **kwargs)


# ---------------------------------------------------------------------------
# FAKE BRIDGE
# ---------------------------------------------------------------------------

def raise_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def raise_connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def respond(status_code: int, body: Any = None, text: Optional[str] = None) -> Callable[[httpx.Request], httpx.Response]:
    """Failure handler returning a fixed response."""
    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=body)
    return handler


class FakeBridge:
    """
    In-memory smart home bridge.

    - SYNC returns `devices`
    - QUERY returns `states` for the requested ids it knows
    - EXECUTE flips `states[id]["on"]`, or reports deviceNotFound for unknown ids
    - `failures[intent]` replaces the handler for that intent
    - `execute_results[id]` replaces the EXECUTE result entry for that device
    """

    def __init__(self):
        self.devices = copy.deepcopy(BRIDGE_DEVICES)
        self.states = copy.deepcopy(BRIDGE_STATES)
        self.failures: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.execute_results: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Dict[str, Any]] = []

    @property
    def intents(self) -> List[str]:
        return [request["intent"] for request in self.requests]

    def requests_for(self, intent: str) -> List[Dict[str, Any]]:
        return [request for request in self.requests if request["intent"] == intent]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        intent = body["inputs"][0]["intent"]
        self.requests.append({"path": request.url.path, "intent": intent, "body": body})

        failure = self.failures.get(intent)
        if failure is not None:
            return failure(request)

        if intent == SYNC_INTENT:
            return httpx.Response(200, json={
                "requestId": body["requestId"],
                "payload": {"agentUserId": "user-1", "devices": self.devices},
            })

        if intent == QUERY_INTENT:
            ids = [device["id"] for device in body["inputs"][0]["payload"]["devices"]]
            return httpx.Response(200, json={
                "requestId": body["requestId"],
                "payload": {"devices": {i: self.states[i] for i in ids if i in self.states}},
            })

        command = body["inputs"][0]["payload"]["commands"][0]
        device_id = command["devices"][0]["id"]
        params = command["execution"][0]["params"]

        if device_id in self.execute_results:
            entry = {"ids": [device_id], **self.execute_results[device_id]}
        elif device_id not in self.states:
            entry = {"ids": [device_id], "status": "ERROR", "errorCode": "deviceNotFound"}
        else:
            self.states[device_id]["on"] = params["on"]
            entry = {"ids": [device_id], "status": "SUCCESS", "states": {"on": params["on"], "online": True}}

        return httpx.Response(200, json={
            "requestId": body["requestId"],
            "payload": {"commands": [entry]},
        })


# ---------------------------------------------------------------------------
# SERVICE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def bridge(fake_bridge: FakeBridge) -> SmartHomeBridgeClient:
    """Bridge client talking to the fake bridge."""
    return SmartHomeBridgeClient(
        base_url=BRIDGE_URL,
        sync_path="/sync",
        timeout=5.0,
        request_id_prefix="test",
        transport=fake_bridge.transport(),
    )


@pytest.fixture
def directory(bridge: SmartHomeBridgeClient) -> DeviceDirectory:
    return DeviceDirectory(bridge)


@pytest.fixture
def dispatcher(bridge: SmartHomeBridgeClient) -> CommandDispatcher:
    return CommandDispatcher(bridge)


@pytest.fixture
def reconciler(directory: DeviceDirectory) -> StateReconciler:
    return StateReconciler(directory)


@pytest.fixture
def selection() -> InMemoryDeviceSelection:
    return InMemoryDeviceSelection()


@pytest.fixture
def interpreter() -> IntentInterpreter:
    """Interpreter backed by the deterministic rule-based provider."""
    return IntentInterpreter(provider=RuleBasedProvider())


@pytest.fixture
def voice_service(
    interpreter: IntentInterpreter,
    directory: DeviceDirectory,
    dispatcher: CommandDispatcher,
    reconciler: StateReconciler,
    selection: InMemoryDeviceSelection,
) -> VoiceCommandService:
    return VoiceCommandService(
        interpreter=interpreter,
        directory=directory,
        dispatcher=dispatcher,
        reconciler=reconciler,
        selection=selection,
        wake_word="jarvis",
        wake_word_required=False,
    )


# ---------------------------------------------------------------------------
# API FIXTURES
# ---------------------------------------------------------------------------

AUTH_HEADERS = {"Authorization": "Bearer test-session-token"}


@pytest.fixture
def client(
    voice_service: VoiceCommandService,
    directory: DeviceDirectory,
    selection: InMemoryDeviceSelection,
    reconciler: StateReconciler,
) -> Generator[TestClient, None, None]:
    """
    Test client with every service swapped for the fake-bridge versions.
    """
    from homepilot import deps
    from homepilot.main import app

    app.dependency_overrides[deps.get_voice_command_service] = lambda: voice_service
    app.dependency_overrides[deps.get_device_directory] = lambda: directory
    app.dependency_overrides[deps.get_device_selection] = lambda: selection
    app.dependency_overrides[deps.get_state_reconciler] = lambda: reconciler

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return dict(AUTH_HEADERS)
