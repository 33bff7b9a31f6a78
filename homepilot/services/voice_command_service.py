"""
Voice Command Service - Runs one utterance through the whole pipeline.

Responsibilities:
=================
- Strip the wake word
- Interpret the text into an intent
- Resolve spoken device names against the directory
- Fan out device actions and collect per-device outcomes
- Reconcile device state afterwards
- Build the final confirmation message

NOT Responsible For:
====================
- HTTP request/response handling (router's job)
- Session checks (deps.py's job)

Architecture:
=============
```
text ──▶ Interpreter ──▶ intent
                           │
              ┌────────────┼─────────────┐
              ▼            ▼             ▼
           action        query        general
              │            │             │
     Resolver per action  Resolver     reply
              │            │
     Dispatcher (fan-out)  │
              │            │
              └─▶ Reconciler ◀┘
```

Only an interpretation failure aborts a command. Everything that can go
wrong for one device is reported for that device, and a failed sync or
refresh becomes a warning on the result.
"""

import asyncio
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from homepilot.ai.intent.device_resolver import (
    AmbiguousMatch,
    DeviceResolver,
    NoMatch,
    device_resolver,
)
from homepilot.ai.intent.parser import IntentInterpreter
from homepilot.ai.intent.schemas import (
    ActionIntent,
    DeviceAction,
    GeneralIntent,
    QueryIntent,
)
from homepilot.core.config import settings
from homepilot.core.exceptions import InterpretationError, SyncError
from homepilot.models.device import Device, DeviceState
from homepilot.services.commands import (
    CommandDispatcher,
    DispatchOutcome,
    ErrorCode,
    command_dispatcher,
    resolve_action,
)
from homepilot.services.device_directory import DeviceDirectory, device_directory
from homepilot.services.device_selection import DeviceSelection, device_selection
from homepilot.services.reconciler import StateReconciler

logger = logging.getLogger("homepilot.services.voice")

NOT_UNDERSTOOD_MESSAGE = "I didn't understand that."


class VoiceIntentType(str, Enum):
    """Kinds of voice command results."""
    ACTION = "action"
    QUERY = "query"
    GENERAL = "general"
    ERROR = "error"


class ActionStatus(str, Enum):
    """What happened to one requested action."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    UNSUPPORTED_DEVICE = "unsupported_device"


def _device_summary(device: Device) -> Dict[str, Any]:
    return {
        "id": device.id,
        "name": device.name,
        "state": device.state.value,
        "online": device.online,
    }


def _join_names(names: Sequence[str]) -> str:
    """["A", "B", "C"] -> "A, B or C"."""
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} or {names[-1]}"


@dataclass
class ActionReport:
    """
    Result of one DeviceAction from the intent.

    Attributes:
        device_phrase: Device as spoken
        action_phrase: Action as spoken
        status: What happened
        device: The resolved device, if any
        candidates: Devices the phrase could mean (ambiguous only)
        outcome: Dispatch outcome, if the action was sent
        message: Human-readable summary of this action
    """
    device_phrase: str
    action_phrase: str
    status: ActionStatus
    device: Optional[Device] = None
    candidates: List[Device] = field(default_factory=list)
    outcome: Optional[DispatchOutcome] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_phrase": self.device_phrase,
            "action_phrase": self.action_phrase,
            "status": self.status.value,
            "device": _device_summary(self.device) if self.device else None,
            "candidates": [_device_summary(d) for d in self.candidates],
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "message": self.message,
        }


@dataclass
class VoiceCommandResult:
    """
    Result of processing one voice command.

    This is a service-layer result that the router converts
    to an HTTP response.

    Attributes:
        success: Interpretation worked and every requested action succeeded
        intent_type: action, query, general or error
        message: Final confirmation for the user, one sentence per action
        actions: Per-action reports, in spoken order
        outcomes: Dispatch outcomes, in spoken order
        device: Queried device (query intents)
        refresh_completed: Device state was refreshed from the bridge
        warnings: Non-fatal problems (sync or refresh failures)
        response: Conversational reply (general intents)
        error_reason: Why the command failed (error results)
        request_id: Unique request identifier for tracing
        processing_time_ms: Processing time in milliseconds
    """
    success: bool
    intent_type: VoiceIntentType
    message: str = ""
    actions: List[ActionReport] = field(default_factory=list)
    outcomes: List[DispatchOutcome] = field(default_factory=list)
    device: Optional[Device] = None
    refresh_completed: bool = False
    warnings: List[str] = field(default_factory=list)
    response: Optional[str] = None
    error_reason: Optional[str] = None
    request_id: str = ""
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for response."""
        result = {
            "success": self.success,
            "intent_type": self.intent_type.value,
            "message": self.message,
            "actions": [report.to_dict() for report in self.actions],
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "refresh_completed": self.refresh_completed,
            "warnings": list(self.warnings),
            "response": self.response,
            "error_reason": self.error_reason,
            "request_id": self.request_id,
            "processing_time_ms": self.processing_time_ms,
        }

        if self.device:
            result["device"] = _device_summary(self.device)

        return result


class VoiceCommandService:
    """
    Orchestrates interpretation, resolution, dispatch and reconciliation.

    Usage:
        from homepilot.services.voice_command_service import voice_command_service

        result = await voice_command_service.process(
            "Jarvis, turn on the kitchen light and turn off the fan"
        )
        print(result.message)
        # "Okay. Turned on Kitchen Light. Turned off Living Room Fan."
    """

    def __init__(
        self,
        interpreter: Optional[IntentInterpreter] = None,
        directory: Optional[DeviceDirectory] = None,
        dispatcher: Optional[CommandDispatcher] = None,
        reconciler: Optional[StateReconciler] = None,
        resolver: Optional[DeviceResolver] = None,
        selection: Optional[DeviceSelection] = None,
        wake_word: Optional[str] = None,
        wake_word_required: Optional[bool] = None,
    ):
        self.interpreter = interpreter or IntentInterpreter()
        self.directory = directory or device_directory
        self.dispatcher = dispatcher or command_dispatcher
        self.reconciler = reconciler or StateReconciler(self.directory)
        self.resolver = resolver or device_resolver
        self.selection = selection if selection is not None else device_selection
        self.wake_word = settings.WAKE_WORD if wake_word is None else wake_word
        self.wake_word_required = (
            settings.WAKE_WORD_REQUIRED if wake_word_required is None else wake_word_required
        )

    # -------------------------------------------------------------------------
    # ENTRY POINT
    # -------------------------------------------------------------------------

    async def process(self, text: str) -> VoiceCommandResult:
        """
        Process one voice command.

        Args:
            text: Transcribed command, optionally starting with the wake word

        Returns:
            VoiceCommandResult (never raises for per-device failures)
        """
        start_time = time.time()
        request_id = str(uuid.uuid4())
        logger.info(f"[{request_id}] Processing command: {(text or '')[:80]}")

        has_wake_word, command = self.strip_wake_word(text)
        if self.wake_word_required and not has_wake_word:
            return self._error(
                request_id, start_time,
                message=f"Say \"{self.wake_word}\" first.",
                reason="wake_word_missing",
            )
        if not command:
            return self._error(
                request_id, start_time,
                message="I didn't hear a command.",
                reason="empty_input",
            )

        try:
            intent = await self.interpreter.interpret(command)
        except InterpretationError as e:
            logger.warning(f"[{request_id}] Interpretation failed ({e.reason}): {e.message}")
            return self._error(request_id, start_time, message=NOT_UNDERSTOOD_MESSAGE, reason=e.reason)

        if isinstance(intent, GeneralIntent):
            result = VoiceCommandResult(
                success=True,
                intent_type=VoiceIntentType.GENERAL,
                message=intent.response_text,
                response=intent.response_text,
            )
        else:
            warnings: List[str] = []
            await self._ensure_synced(request_id, warnings)

            if isinstance(intent, ActionIntent):
                result = await self._handle_action(request_id, intent)
            else:
                result = await self._handle_query(request_id, intent)
            result.warnings = warnings + result.warnings

        result.request_id = request_id
        result.processing_time_ms = round((time.time() - start_time) * 1000, 1)
        logger.info(
            f"[{request_id}] Completed {result.intent_type.value} in "
            f"{result.processing_time_ms:.0f}ms: {result.message}"
        )
        return result

    # -------------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------------

    def strip_wake_word(self, text: str) -> Tuple[bool, str]:
        """
        Remove a leading wake word ("Jarvis, turn on ...").

        Returns:
            (whether the wake word was present, remaining command)
        """
        cleaned = (text or "").strip()
        if not self.wake_word:
            return False, cleaned

        pattern = re.compile(rf"^{re.escape(self.wake_word)}\b[\s,.!:]*", re.IGNORECASE)
        match = pattern.match(cleaned)
        if not match:
            return False, cleaned
        return True, cleaned[match.end():].strip()

    def candidates(self) -> List[Device]:
        """Directory devices, limited to the selection when one is set."""
        devices = self.directory.devices
        if self.selection is None or not self.selection.selected_ids():
            return devices
        return [device for device in devices if self.selection.is_selected(device.id)]

    async def _ensure_synced(self, request_id: str, warnings: List[str]) -> None:
        if self.directory.is_synced:
            return
        try:
            await self.directory.sync()
        except SyncError as e:
            logger.warning(f"[{request_id}] Device sync failed: {e.message}")
            warnings.append(f"Couldn't load your devices: {e.message}")

    def _error(self, request_id: str, start_time: float, message: str, reason: str) -> VoiceCommandResult:
        return VoiceCommandResult(
            success=False,
            intent_type=VoiceIntentType.ERROR,
            message=message,
            error_reason=reason,
            request_id=request_id,
            processing_time_ms=round((time.time() - start_time) * 1000, 1),
        )

    # -------------------------------------------------------------------------
    # ACTION INTENTS
    # -------------------------------------------------------------------------

    async def _handle_action(self, request_id: str, intent: ActionIntent) -> VoiceCommandResult:
        candidates = self.candidates()
        reports: List[ActionReport] = []
        to_dispatch: List[ActionReport] = []

        for action in intent.actions:
            report = self._resolve_action(action, candidates)
            reports.append(report)
            if report.device is not None and report.status == ActionStatus.SUCCEEDED:
                to_dispatch.append(report)

        outcomes: List[DispatchOutcome] = []
        warnings: List[str] = []
        refresh_completed = False

        if to_dispatch:
            generation = self.directory.generation
            targets = [(report.device.id, report.action_phrase) for report in to_dispatch]
            logger.info(f"[{request_id}] Dispatching {len(targets)} action(s)")

            # Dispatches already sent finish even if the caller goes away;
            # their outcomes are then dropped with the cancelled caller.
            outcomes = await asyncio.shield(self.dispatcher.dispatch_all(targets))

            for report, outcome in zip(to_dispatch, outcomes):
                report.outcome = outcome
                if not outcome.success:
                    report.status = ActionStatus.FAILED

            reconcile = await self.reconciler.reconcile(outcomes, expected_generation=generation)
            refresh_completed = reconcile.refreshed
            if not reconcile.refreshed:
                warnings.append(f"Couldn't refresh device states: {reconcile.error}")

            for report in to_dispatch:
                report.device = self.directory.get(report.device.id) or report.device

        for report in reports:
            report.message = self._describe(report)

        message = " ".join([intent.confirmation] + [report.message for report in reports])
        return VoiceCommandResult(
            success=all(report.status == ActionStatus.SUCCEEDED for report in reports),
            intent_type=VoiceIntentType.ACTION,
            message=message,
            actions=reports,
            outcomes=outcomes,
            refresh_completed=refresh_completed,
            warnings=warnings,
        )

    def _resolve_action(self, action: DeviceAction, candidates: Sequence[Device]) -> ActionReport:
        resolution = self.resolver.resolve(action.device_phrase, candidates)

        if isinstance(resolution, NoMatch):
            return ActionReport(
                device_phrase=action.device_phrase,
                action_phrase=action.action_phrase,
                status=ActionStatus.NOT_FOUND,
            )

        if isinstance(resolution, AmbiguousMatch):
            return ActionReport(
                device_phrase=action.device_phrase,
                action_phrase=action.action_phrase,
                status=ActionStatus.AMBIGUOUS,
                candidates=list(resolution.candidates),
            )

        device = resolution.device
        if not device.supports_on_off:
            return ActionReport(
                device_phrase=action.device_phrase,
                action_phrase=action.action_phrase,
                status=ActionStatus.UNSUPPORTED_DEVICE,
                device=device,
            )

        # Provisionally succeeded; dispatch decides.
        return ActionReport(
            device_phrase=action.device_phrase,
            action_phrase=action.action_phrase,
            status=ActionStatus.SUCCEEDED,
            device=device,
        )

    @staticmethod
    def _describe(report: ActionReport) -> str:
        """One sentence describing what happened to an action."""
        if report.status == ActionStatus.NOT_FOUND:
            return f"I couldn't find a device called {report.device_phrase}."

        if report.status == ActionStatus.AMBIGUOUS:
            names = _join_names([device.name for device in report.candidates])
            return f"Which {report.device_phrase} did you mean: {names}?"

        name = report.device.name if report.device else report.device_phrase
        if report.status == ActionStatus.UNSUPPORTED_DEVICE:
            return f"{name} can't be switched on or off."

        command = resolve_action(report.action_phrase)
        direction = ("on" if command.on else "off") if command else None

        if report.status == ActionStatus.SUCCEEDED:
            return f"Turned {direction} {name}."

        verb = f"turn {direction}" if direction else report.action_phrase

        error_code = report.outcome.error_code if report.outcome else None
        if error_code == ErrorCode.UNSUPPORTED_ACTION:
            return f"I don't know how to {report.action_phrase} {name}."
        if error_code == ErrorCode.TIMEOUT:
            return f"{name} didn't respond in time."
        return f"Couldn't {verb} {name} ({error_code or ErrorCode.UNKNOWN_ERROR})."

    # -------------------------------------------------------------------------
    # QUERY INTENTS
    # -------------------------------------------------------------------------

    async def _handle_query(self, request_id: str, intent: QueryIntent) -> VoiceCommandResult:
        resolution = self.resolver.resolve(intent.target_phrase, self.candidates())

        if isinstance(resolution, NoMatch):
            return VoiceCommandResult(
                success=False,
                intent_type=VoiceIntentType.QUERY,
                message=f"I couldn't find a device called {intent.target_phrase}.",
            )

        if isinstance(resolution, AmbiguousMatch):
            names = _join_names(resolution.candidate_names)
            return VoiceCommandResult(
                success=False,
                intent_type=VoiceIntentType.QUERY,
                message=f"Which {intent.target_phrase} did you mean: {names}?",
            )

        device = resolution.device
        warnings: List[str] = []
        report = await self.reconciler.refresh([device.id], expected_generation=self.directory.generation)
        if not report.refreshed:
            logger.warning(f"[{request_id}] Refresh of {device.id} failed: {report.error}")
            warnings.append(f"Couldn't refresh {device.name}: {report.error}")

        logger.debug(f"[{request_id}] Query refresh: {report.to_dict()}")

        # The bridge may leave the device out of its answer
        fresh = report.refreshed and device.id in report.updated_ids

        device = self.directory.get(device.id) or device
        answer = self._describe_state(device, fresh)

        return VoiceCommandResult(
            success=True,
            intent_type=VoiceIntentType.QUERY,
            message=f"{intent.confirmation} {answer}",
            device=device,
            refresh_completed=report.refreshed,
            warnings=warnings,
        )

    @staticmethod
    def _describe_state(device: Device, refreshed: bool) -> str:
        if device.state == DeviceState.UNKNOWN:
            if refreshed and not device.online:
                return f"{device.name} is offline."
            return f"I don't know whether {device.name} is on or off."

        if not device.online:
            return f"{device.name} is offline."

        suffix = "" if refreshed else " as far as I know"
        return f"{device.name} is {device.state.value}{suffix}."


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
voice_command_service = VoiceCommandService()
