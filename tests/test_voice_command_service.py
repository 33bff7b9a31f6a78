"""
Tests for the Voice Command Service - the whole pipeline for one utterance.

Interpretation uses the rule-based provider and the bridge is the
in-process FakeBridge, so these run the real resolver, dispatcher and
reconciler end to end.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from homepilot.ai.providers.base import AIResponse, ProviderType
from homepilot.models.device import DeviceState
from homepilot.services.voice_command_service import (
    NOT_UNDERSTOOD_MESSAGE,
    ActionStatus,
    VoiceCommandService,
    VoiceIntentType,
)

from conftest import (
    EXECUTE_INTENT,
    QUERY_INTENT,
    SYNC_INTENT,
    raise_connect_error,
    raise_timeout,
)


class TestWakeWord:
    """Tests for wake word handling."""

    @pytest.mark.parametrize("text,expected", [
        ("Jarvis, turn on the fan", (True, "turn on the fan")),
        ("jarvis turn on the fan", (True, "turn on the fan")),
        ("JARVIS: is the fan on?", (True, "is the fan on?")),
        ("turn on the fan", (False, "turn on the fan")),
        ("jarvisville lights", (False, "jarvisville lights")),
        ("Jarvis", (True, "")),
    ])
    def test_strip(self, voice_service, text, expected):
        assert voice_service.strip_wake_word(text) == expected

    @pytest.mark.asyncio
    async def test_wake_word_is_stripped_before_interpretation(self, voice_service):
        result = await voice_service.process("Jarvis, turn on the kitchen light")

        assert result.success is True
        assert result.actions[0].device_phrase == "kitchen light"

    @pytest.mark.asyncio
    async def test_required_wake_word_missing(self, voice_service, fake_bridge):
        voice_service.wake_word_required = True

        with patch.object(voice_service.interpreter, "interpret", new_callable=AsyncMock) as mock_interpret:
            result = await voice_service.process("turn on the kitchen light")

        assert result.intent_type == VoiceIntentType.ERROR
        assert result.error_reason == "wake_word_missing"
        mock_interpret.assert_not_called()
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_wake_word_only(self, voice_service):
        result = await voice_service.process("Jarvis")

        assert result.success is False
        assert result.error_reason == "empty_input"


class TestActionCommands:
    """Tests for action intents."""

    @pytest.mark.asyncio
    async def test_two_actions(self, voice_service, directory, fake_bridge):
        result = await voice_service.process("turn on the kitchen light and turn off the living room fan")

        assert result.success is True
        assert result.intent_type == VoiceIntentType.ACTION
        assert [r.status for r in result.actions] == [ActionStatus.SUCCEEDED, ActionStatus.SUCCEEDED]
        assert [o.device_id for o in result.outcomes] == ["light-1", "fan-1"]
        assert result.message == "Okay. Turned on Kitchen Light. Turned off Living Room Fan."
        assert result.refresh_completed is True

        assert directory.get("light-1").state == DeviceState.ON
        assert directory.get("fan-1").state == DeviceState.OFF
        assert fake_bridge.intents == [SYNC_INTENT, EXECUTE_INTENT, EXECUTE_INTENT, QUERY_INTENT]

    @pytest.mark.asyncio
    async def test_existing_directory_is_not_resynced(self, voice_service, directory, fake_bridge):
        await directory.sync()

        await voice_service.process("turn on the kitchen light")

        assert fake_bridge.intents.count(SYNC_INTENT) == 1

    @pytest.mark.asyncio
    async def test_ambiguous_device_is_not_dispatched(self, voice_service, fake_bridge):
        result = await voice_service.process("turn on the light")

        report = result.actions[0]
        assert report.status == ActionStatus.AMBIGUOUS
        assert [d.id for d in report.candidates] == ["light-1", "light-2"]
        assert result.message == "Okay. Which light did you mean: Kitchen Light or Living Room Light?"
        assert result.success is False
        assert EXECUTE_INTENT not in fake_bridge.intents

    @pytest.mark.asyncio
    async def test_unknown_device(self, voice_service):
        result = await voice_service.process("turn on the garage door")

        assert result.actions[0].status == ActionStatus.NOT_FOUND
        assert "I couldn't find a device called garage door." in result.message

    @pytest.mark.asyncio
    async def test_unsupported_device_category(self, voice_service, fake_bridge):
        result = await voice_service.process("turn on the hallway thermostat")

        assert result.actions[0].status == ActionStatus.UNSUPPORTED_DEVICE
        assert "Hallway Thermostat can't be switched on or off." in result.message
        assert EXECUTE_INTENT not in fake_bridge.intents

    @pytest.mark.asyncio
    async def test_partial_failure_reports_each_action(self, voice_service, fake_bridge):
        fake_bridge.execute_results["fan-1"] = {"status": "ERROR", "errorCode": "deviceOffline"}

        result = await voice_service.process("turn on the kitchen light and turn off the fan")

        assert [r.status for r in result.actions] == [ActionStatus.SUCCEEDED, ActionStatus.FAILED]
        assert result.outcomes[1].error_code == "deviceOffline"
        assert result.message == (
            "Okay. Turned on Kitchen Light. Couldn't turn off Living Room Fan (deviceOffline)."
        )
        assert result.success is False

    @pytest.mark.asyncio
    async def test_mixed_resolution_and_dispatch(self, voice_service, fake_bridge):
        result = await voice_service.process("turn on the kitchen light and turn on the garage door")

        assert [r.status for r in result.actions] == [ActionStatus.SUCCEEDED, ActionStatus.NOT_FOUND]
        assert len(result.outcomes) == 1
        assert fake_bridge.intents.count(EXECUTE_INTENT) == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_is_a_warning(self, voice_service, fake_bridge):
        fake_bridge.failures[QUERY_INTENT] = raise_timeout

        result = await voice_service.process("turn on the kitchen light")

        assert result.success is True
        assert result.refresh_completed is False
        assert len(result.warnings) == 1

    @pytest.mark.asyncio
    async def test_sync_failure_is_a_warning(self, voice_service, fake_bridge):
        fake_bridge.failures[SYNC_INTENT] = raise_connect_error

        result = await voice_service.process("turn on the kitchen light")

        assert result.intent_type == VoiceIntentType.ACTION
        assert result.actions[0].status == ActionStatus.NOT_FOUND
        assert any("Couldn't load your devices" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_selection_limits_candidates(self, voice_service, selection):
        selection.replace(["light-1"])

        result = await voice_service.process("turn on the light")

        assert result.actions[0].status == ActionStatus.SUCCEEDED
        assert result.actions[0].device.id == "light-1"

    @pytest.mark.asyncio
    async def test_directory_replaced_during_dispatch(self, voice_service, directory, dispatcher, monkeypatch):
        original = dispatcher.dispatch_all

        async def dispatch_then_resync(targets):
            outcomes = await original(targets)
            await directory.sync()
            return outcomes

        monkeypatch.setattr(dispatcher, "dispatch_all", dispatch_then_resync)

        result = await voice_service.process("turn on the kitchen light")

        assert result.outcomes[0].success is True
        assert result.refresh_completed is False
        assert directory.get("light-1").state == DeviceState.UNKNOWN

    @pytest.mark.asyncio
    async def test_cancelled_command_lets_dispatch_finish(self, voice_service, dispatcher, fake_bridge, monkeypatch):
        started = asyncio.Event()
        release = asyncio.Event()
        finished = asyncio.Event()
        original = dispatcher.dispatch_all

        async def gated(targets):
            started.set()
            await release.wait()
            outcomes = await original(targets)
            finished.set()
            return outcomes

        monkeypatch.setattr(dispatcher, "dispatch_all", gated)

        task = asyncio.create_task(voice_service.process("turn on the kitchen light"))
        await started.wait()
        task.cancel()
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.wait_for(finished.wait(), timeout=1.0)

        assert EXECUTE_INTENT in fake_bridge.intents
        assert QUERY_INTENT not in fake_bridge.intents


class TestQueryCommands:
    """Tests for query intents."""

    @pytest.mark.asyncio
    async def test_device_is_on(self, voice_service):
        result = await voice_service.process("is the living room fan on?")

        assert result.intent_type == VoiceIntentType.QUERY
        assert result.success is True
        assert result.message == "Checking that now. Living Room Fan is on."
        assert result.device.state == DeviceState.ON
        assert result.refresh_completed is True

    @pytest.mark.asyncio
    async def test_device_is_offline(self, voice_service):
        result = await voice_service.process("is the desk lamp plug on")

        assert result.message.endswith("Desk Lamp Plug is offline.")

    @pytest.mark.asyncio
    async def test_device_missing_from_query_answer(self, voice_service, fake_bridge):
        del fake_bridge.states["light-1"]

        result = await voice_service.process("is the kitchen light on?")

        assert "offline" not in result.message
        assert result.message == "Checking that now. I don't know whether Kitchen Light is on or off."

    @pytest.mark.asyncio
    async def test_refresh_failure_answers_from_last_known_state(self, voice_service, fake_bridge):
        fake_bridge.failures[QUERY_INTENT] = raise_timeout

        result = await voice_service.process("is the fan on?")

        assert result.refresh_completed is False
        assert result.warnings
        assert "I don't know whether Living Room Fan is on or off." in result.message

    @pytest.mark.asyncio
    async def test_ambiguous_target(self, voice_service, fake_bridge):
        result = await voice_service.process("is the light on?")

        assert result.success is False
        assert "Which light did you mean" in result.message
        assert QUERY_INTENT not in fake_bridge.intents


class TestGeneralAndErrors:
    """Tests for conversational replies and interpretation failures."""

    @pytest.mark.asyncio
    async def test_general_reply(self, voice_service, fake_bridge):
        result = await voice_service.process("hello there")

        assert result.intent_type == VoiceIntentType.GENERAL
        assert result.success is True
        assert result.response == result.message
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_interpretation_failure(self, voice_service, fake_bridge):
        bad = AIResponse(content="not json", provider=ProviderType.GEMINI, model="gemini-2.0-flash")

        with patch.object(voice_service.interpreter.provider, "generate_json", new_callable=AsyncMock) as mock_gen:
            mock_gen.return_value = bad
            result = await voice_service.process("turn on the kitchen light")

        assert result.success is False
        assert result.intent_type == VoiceIntentType.ERROR
        assert result.message == NOT_UNDERSTOOD_MESSAGE
        assert result.error_reason == "invalid_json"
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_result_to_dict(self, voice_service):
        result = await voice_service.process("turn on the kitchen light")

        data = result.to_dict()

        assert data["intent_type"] == "action"
        assert data["actions"][0]["status"] == "succeeded"
        assert data["outcomes"][0]["device_id"] == "light-1"
        assert data["request_id"]

    def test_default_construction(self):
        service = VoiceCommandService()

        assert service.wake_word
        assert service.interpreter is not None
