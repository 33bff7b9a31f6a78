"""
Smart Home Bridge Client - JSON-over-HTTP client for the device bridge.

The bridge speaks the smart home intent protocol:
- SYNC:    list every device the bridge knows about
- QUERY:   live on/online state for some devices
- EXECUTE: run a command (e.g. OnOff) on a device

Every request is a POST with a unique requestId and carries a timeout.
Nothing is retried: EXECUTE has side effects and QUERY/SYNC callers
decide for themselves whether to try again.

Errors:
=======
- SyncError / QueryError: SYNC or QUERY failed (transport, HTTP, payload)
- BridgeRequestError: EXECUTE failed (transport, HTTP, payload)
- BridgeConfigurationError: the configured endpoint isn't a usable URL
Each error's `reason` is one of: timeout, network_error, http_error,
malformed_response, invalid_endpoint.
"""

import logging
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Type

import httpx
from pydantic import ValidationError

from homepilot.bridge.schemas import (
    BridgeCommandResult,
    ExecuteResponse,
    QueryResponse,
    SyncResponse,
)
from homepilot.core.config import settings
from homepilot.core.exceptions import (
    BridgeConfigurationError,
    BridgeError,
    BridgeRequestError,
    QueryError,
    SyncError,
)
from homepilot.models.device import (
    BRIDGE_TYPE_ATTRIBUTE,
    Device,
    DeviceStatus,
    category_for_bridge_type,
    flatten_attributes,
    state_from_on_flag,
)

logger = logging.getLogger("homepilot.bridge")


class SmartHomeBridgeClient:
    """
    Client for the smart home bridge.

    Example Usage:
        client = SmartHomeBridgeClient()

        devices = await client.sync_devices()
        states = await client.query_devices([d.id for d in devices])
        result = await client.execute(
            devices[0].id,
            "action.devices.commands.OnOff",
            {"on": True},
        )
    """

    SYNC_INTENT = "action.devices.SYNC"
    QUERY_INTENT = "action.devices.QUERY"
    EXECUTE_INTENT = "action.devices.EXECUTE"

    def __init__(
        self,
        base_url: Optional[str] = None,
        sync_path: Optional[str] = None,
        timeout: Optional[float] = None,
        request_id_prefix: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the bridge client.

        Args:
            base_url: QUERY/EXECUTE endpoint (defaults to settings)
            sync_path: Path appended to base_url for SYNC (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
            request_id_prefix: Prefix for generated request ids
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = (base_url if base_url is not None else settings.SMART_HOME_API_URL).rstrip("/")
        self.sync_path = sync_path if sync_path is not None else settings.BRIDGE_SYNC_PATH
        self.timeout = timeout if timeout is not None else settings.BRIDGE_TIMEOUT_SECONDS
        self.request_id_prefix = request_id_prefix or settings.REQUEST_ID_PREFIX
        self._transport = transport

    @property
    def sync_url(self) -> str:
        return f"{self.base_url}{self.sync_path}"

    def new_request_id(self) -> str:
        """Unique id per call: prefix, epoch milliseconds and a random suffix."""
        return f"{self.request_id_prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"

    # -------------------------------------------------------------------------
    # SYNC
    # -------------------------------------------------------------------------

    async def sync_devices(self) -> List[Device]:
        """
        Fetch the full device list.

        Returns:
            Devices with state UNKNOWN and online False (not queried yet)

        Raises:
            SyncError: Transport failure or malformed payload
        """
        body = {
            "requestId": self.new_request_id(),
            "inputs": [{"intent": self.SYNC_INTENT}],
        }
        data = await self._post(self.sync_url, body, SyncError)

        try:
            parsed = SyncResponse.model_validate(data)
        except ValidationError as e:
            raise SyncError(
                f"Invalid SYNC response format: {e.error_count()} error(s)",
                reason="malformed_response",
            ) from e

        devices: List[Device] = []
        seen = set()
        for bridge_device in parsed.payload.devices:
            if bridge_device.id in seen:
                logger.warning(f"SYNC returned duplicate device id {bridge_device.id}, keeping the first")
                continue
            seen.add(bridge_device.id)

            attributes = flatten_attributes(bridge_device.attributes)
            attributes[BRIDGE_TYPE_ATTRIBUTE] = bridge_device.type or ""
            devices.append(Device(
                id=bridge_device.id,
                name=bridge_device.display_name,
                category=category_for_bridge_type(bridge_device.type),
                attributes=attributes,
            ))

        logger.info(f"SYNC returned {len(devices)} devices")
        return devices

    # -------------------------------------------------------------------------
    # QUERY
    # -------------------------------------------------------------------------

    async def query_devices(self, device_ids: Iterable[str]) -> Dict[str, DeviceStatus]:
        """
        Fetch live state for some devices.

        Ids the bridge leaves out are simply absent from the result.

        Raises:
            QueryError: Transport failure or malformed payload
        """
        ids = list(dict.fromkeys(device_ids))
        if not ids:
            return {}

        body = {
            "requestId": self.new_request_id(),
            "inputs": [{
                "intent": self.QUERY_INTENT,
                "payload": {"devices": [{"id": device_id} for device_id in ids]},
            }],
        }
        data = await self._post(self.base_url, body, QueryError)

        try:
            parsed = QueryResponse.model_validate(data)
        except ValidationError as e:
            raise QueryError(
                f"Invalid QUERY response format: {e.error_count()} error(s)",
                reason="malformed_response",
            ) from e

        states = {
            device_id: DeviceStatus(
                state=state_from_on_flag(device_state.on),
                online=bool(device_state.online),
            )
            for device_id, device_state in parsed.payload.devices.items()
        }

        missing = [device_id for device_id in ids if device_id not in states]
        if missing:
            logger.info(f"QUERY response missing {len(missing)} of {len(ids)} devices: {missing}")
        return states

    # -------------------------------------------------------------------------
    # EXECUTE
    # -------------------------------------------------------------------------

    async def execute(
        self,
        device_id: str,
        command: str,
        params: Dict[str, Any],
    ) -> BridgeCommandResult:
        """
        Execute one command on one device.

        Returns:
            The bridge's result for the device (status may be non-SUCCESS)

        Raises:
            BridgeRequestError: Transport failure, HTTP error or malformed payload
            BridgeConfigurationError: Endpoint is not a usable URL
        """
        body = {
            "requestId": self.new_request_id(),
            "inputs": [{
                "intent": self.EXECUTE_INTENT,
                "payload": {
                    "commands": [{
                        "devices": [{"id": device_id}],
                        "execution": [{"command": command, "params": params}],
                    }],
                },
            }],
        }
        data = await self._post(self.base_url, body, BridgeRequestError)

        try:
            parsed = ExecuteResponse.model_validate(data)
        except ValidationError as e:
            raise BridgeRequestError(
                f"Invalid EXECUTE response format: {e.error_count()} error(s)",
                reason="malformed_response",
            ) from e

        if not parsed.payload.commands:
            raise BridgeRequestError("EXECUTE response has no command results", reason="malformed_response")

        for result in parsed.payload.commands:
            if device_id in result.ids:
                return result
        return parsed.payload.commands[0]

    # -------------------------------------------------------------------------
    # TRANSPORT
    # -------------------------------------------------------------------------

    def _check_endpoint(self, url: str) -> None:
        """Raise BridgeConfigurationError unless url is an absolute http(s) URL."""
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise BridgeConfigurationError(f"Invalid bridge endpoint '{url}': {e}", reason="invalid_endpoint") from e

        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise BridgeConfigurationError(
                f"Invalid bridge endpoint '{url}': expected an http(s) URL",
                reason="invalid_endpoint",
            )

    async def _post(
        self,
        url: str,
        body: Dict[str, Any],
        error_cls: Type[BridgeError],
    ) -> Any:
        """
        POST a JSON body and return the decoded JSON response.

        Transport, HTTP and decoding failures are raised as error_cls.
        An unusable endpoint is raised as BridgeConfigurationError for
        EXECUTE and as error_cls for SYNC/QUERY.
        """
        try:
            self._check_endpoint(url)
        except BridgeConfigurationError as e:
            if error_cls is BridgeRequestError:
                raise
            raise error_cls(e.message, reason=e.reason) from e

        intent = body["inputs"][0]["intent"]
        request_id = body["requestId"]
        logger.debug(f"[{request_id}] POST {url} ({intent})")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body)
        except httpx.TimeoutException as e:
            logger.warning(f"[{request_id}] {intent} timed out after {self.timeout}s")
            raise error_cls(f"{intent} timed out after {self.timeout}s", reason="timeout") from e
        except httpx.RequestError as e:
            logger.error(f"[{request_id}] {intent} request failed: {e}")
            raise error_cls(f"{intent} request failed: {e}", reason="network_error") from e

        if response.is_error:
            logger.error(f"[{request_id}] {intent} failed: {response.status_code} {response.text[:200]}")
            raise error_cls(
                f"{intent} failed: {response.status_code} {response.reason_phrase}",
                reason="http_error",
                status_code=response.status_code,
                error_code=self._extract_error_code(response),
            )

        try:
            return response.json()
        except ValueError as e:
            raise error_cls(f"{intent} response is not JSON", reason="malformed_response") from e

    @staticmethod
    def _extract_error_code(response: httpx.Response) -> Optional[str]:
        """Pull an errorCode out of an error response body, if there is one."""
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None

        payload = data.get("payload")
        if isinstance(payload, dict) and isinstance(payload.get("errorCode"), str):
            return payload["errorCode"]
        if isinstance(data.get("errorCode"), str):
            return data["errorCode"]
        return None


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
bridge_client = SmartHomeBridgeClient()
