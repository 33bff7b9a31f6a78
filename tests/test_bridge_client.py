"""
Tests for the Smart Home Bridge Client.

The bridge is served in-process through httpx.MockTransport (FakeBridge),
so every request body and every failure mode can be checked.
"""

import pytest

from homepilot.bridge.client import SmartHomeBridgeClient
from homepilot.core.exceptions import (
    BridgeConfigurationError,
    BridgeRequestError,
    QueryError,
    SyncError,
)
from homepilot.models.device import BRIDGE_TYPE_ATTRIBUTE, DeviceCategory, DeviceState

from conftest import (
    BRIDGE_URL,
    EXECUTE_INTENT,
    QUERY_INTENT,
    SYNC_INTENT,
    raise_connect_error,
    raise_timeout,
    respond,
)


class TestRequestIds:
    """Every call carries a unique request id."""

    def test_format(self, bridge):
        request_id = bridge.new_request_id()
        prefix, millis, suffix = request_id.split("-")

        assert prefix == "test"
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_unique(self, bridge):
        ids = {bridge.new_request_id() for _ in range(50)}

        assert len(ids) == 50


class TestSync:
    """Tests for sync_devices()."""

    @pytest.mark.asyncio
    async def test_sync_devices(self, bridge, fake_bridge):
        devices = await bridge.sync_devices()

        assert [d.id for d in devices] == ["light-1", "light-2", "fan-1", "outlet-1", "thermo-1"]
        kitchen = devices[0]
        assert kitchen.name == "Kitchen Light"
        assert kitchen.category == DeviceCategory.LIGHT
        assert kitchen.state == DeviceState.UNKNOWN
        assert kitchen.online is False
        assert kitchen.attributes[BRIDGE_TYPE_ATTRIBUTE] == "action.devices.types.LIGHT"

    @pytest.mark.asyncio
    async def test_sync_request_shape(self, bridge, fake_bridge):
        await bridge.sync_devices()

        request = fake_bridge.requests[0]
        assert request["path"] == "/smarthome/sync"
        assert request["intent"] == SYNC_INTENT
        assert request["body"]["requestId"].startswith("test-")

    @pytest.mark.asyncio
    async def test_unknown_type_degrades_to_unknown(self, bridge):
        devices = await bridge.sync_devices()
        thermostat = devices[-1]

        assert thermostat.category == DeviceCategory.UNKNOWN
        assert thermostat.attributes["availableThermostatModes"] == '["off", "heat"]'
        assert thermostat.attributes["unit"] == "C"

    @pytest.mark.asyncio
    async def test_missing_name_falls_back_to_id(self, bridge, fake_bridge):
        fake_bridge.devices = [{"id": "mystery-1", "type": "action.devices.types.SWITCH"}]

        devices = await bridge.sync_devices()

        assert devices[0].name == "mystery-1"
        assert devices[0].category == DeviceCategory.SWITCH

    @pytest.mark.asyncio
    async def test_duplicate_ids_keep_first(self, bridge, fake_bridge):
        fake_bridge.devices = [
            {"id": "a", "name": {"name": "First"}, "type": "action.devices.types.LIGHT"},
            {"id": "a", "name": {"name": "Second"}, "type": "action.devices.types.LIGHT"},
        ]

        devices = await bridge.sync_devices()

        assert [d.name for d in devices] == ["First"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler,reason", [
        (raise_timeout, "timeout"),
        (raise_connect_error, "network_error"),
        (respond(500, {"error": "boom"}), "http_error"),
        (respond(200, text="<html>"), "malformed_response"),
        (respond(200, {"payload": {"devices": "nope"}}), "malformed_response"),
        (respond(200, {"unexpected": True}), "malformed_response"),
    ])
    async def test_sync_failures(self, bridge, fake_bridge, handler, reason):
        fake_bridge.failures[SYNC_INTENT] = handler

        with pytest.raises(SyncError) as exc_info:
            await bridge.sync_devices()

        assert exc_info.value.reason == reason

    @pytest.mark.asyncio
    async def test_invalid_endpoint_is_sync_error(self):
        client = SmartHomeBridgeClient(base_url="not a url", sync_path="/sync")

        with pytest.raises(SyncError) as exc_info:
            await client.sync_devices()

        assert exc_info.value.reason == "invalid_endpoint"


class TestQuery:
    """Tests for query_devices()."""

    @pytest.mark.asyncio
    async def test_query_states(self, bridge, fake_bridge):
        states = await bridge.query_devices(["light-1", "light-2", "outlet-1"])

        assert states["light-1"].state == DeviceState.OFF
        assert states["light-1"].online is True
        assert states["light-2"].state == DeviceState.ON
        assert states["outlet-1"].online is False

        request = fake_bridge.requests_for(QUERY_INTENT)[0]
        assert request["path"] == "/smarthome"
        assert request["body"]["inputs"][0]["payload"]["devices"] == [
            {"id": "light-1"}, {"id": "light-2"}, {"id": "outlet-1"},
        ]

    @pytest.mark.asyncio
    async def test_round_trip_with_synced_ids(self, bridge):
        devices = await bridge.sync_devices()

        states = await bridge.query_devices([d.id for d in devices])

        for device in devices:
            assert device.id in states

    @pytest.mark.asyncio
    async def test_partial_response(self, bridge):
        states = await bridge.query_devices(["light-1", "ghost"])

        assert list(states) == ["light-1"]

    @pytest.mark.asyncio
    async def test_missing_on_is_unknown(self, bridge):
        states = await bridge.query_devices(["thermo-1"])

        assert states["thermo-1"].state == DeviceState.UNKNOWN
        assert states["thermo-1"].online is True

    @pytest.mark.asyncio
    async def test_empty_ids_makes_no_call(self, bridge, fake_bridge):
        assert await bridge.query_devices([]) == {}
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_duplicate_ids_sent_once(self, bridge, fake_bridge):
        await bridge.query_devices(["light-1", "light-1"])

        request = fake_bridge.requests_for(QUERY_INTENT)[0]
        assert request["body"]["inputs"][0]["payload"]["devices"] == [{"id": "light-1"}]

    @pytest.mark.asyncio
    async def test_timeout(self, bridge, fake_bridge):
        fake_bridge.failures[QUERY_INTENT] = raise_timeout

        with pytest.raises(QueryError) as exc_info:
            await bridge.query_devices(["light-1"])

        assert exc_info.value.reason == "timeout"


class TestExecute:
    """Tests for execute()."""

    @pytest.mark.asyncio
    async def test_execute_success(self, bridge, fake_bridge):
        result = await bridge.execute("light-1", "action.devices.commands.OnOff", {"on": True})

        assert result.succeeded is True
        assert result.states.on is True

        body = fake_bridge.requests_for(EXECUTE_INTENT)[0]["body"]
        command = body["inputs"][0]["payload"]["commands"][0]
        assert command["devices"] == [{"id": "light-1"}]
        assert command["execution"] == [{"command": "action.devices.commands.OnOff", "params": {"on": True}}]

    @pytest.mark.asyncio
    async def test_bridge_reported_error(self, bridge):
        result = await bridge.execute("ghost", "action.devices.commands.OnOff", {"on": True})

        assert result.succeeded is False
        assert result.error_code == "deviceNotFound"

    @pytest.mark.asyncio
    async def test_picks_entry_for_device(self, bridge, fake_bridge):
        fake_bridge.failures[EXECUTE_INTENT] = respond(200, {"payload": {"commands": [
            {"ids": ["other"], "status": "ERROR", "errorCode": "offline"},
            {"ids": ["light-1"], "status": "SUCCESS", "states": {"on": False}},
        ]}})

        result = await bridge.execute("light-1", "action.devices.commands.OnOff", {"on": False})

        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_http_error_carries_error_code(self, bridge, fake_bridge):
        fake_bridge.failures[EXECUTE_INTENT] = respond(404, {"payload": {"errorCode": "deviceNotFound"}})

        with pytest.raises(BridgeRequestError) as exc_info:
            await bridge.execute("light-1", "action.devices.commands.OnOff", {"on": True})

        assert exc_info.value.status_code == 404
        assert exc_info.value.error_code == "deviceNotFound"

    @pytest.mark.asyncio
    async def test_empty_command_list_is_malformed(self, bridge, fake_bridge):
        fake_bridge.failures[EXECUTE_INTENT] = respond(200, {"payload": {"commands": []}})

        with pytest.raises(BridgeRequestError) as exc_info:
            await bridge.execute("light-1", "action.devices.commands.OnOff", {"on": True})

        assert exc_info.value.reason == "malformed_response"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("base_url", ["not a url", "ftp://bridge.test/smarthome", ""])
    async def test_invalid_endpoint(self, base_url):
        client = SmartHomeBridgeClient(base_url=base_url)

        with pytest.raises(BridgeConfigurationError):
            await client.execute("light-1", "action.devices.commands.OnOff", {"on": True})

    def test_base_url_trailing_slash(self):
        client = SmartHomeBridgeClient(base_url=f"{BRIDGE_URL}/", sync_path="/sync")

        assert client.sync_url == f"{BRIDGE_URL}/sync"
