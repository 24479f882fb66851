"""Replay driver correlating asynchronous agent results with dispatched actions.

Every command sent over the transport registers a pending entry keyed by a
generated id and backed by an ``asyncio.Future``. Whoever owns the transport
feeds inbound messages to ``handle_message``; the correlator resolves the
matching future, or drops the message with a warning when nothing is
waiting for it.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import (
    ACTION_TIMEOUT_SECONDS,
    SCREENSHOT_TIMEOUT_SECONDS,
    SETTLE_DELAY_SECONDS,
)
from .error_handler import (
    CorrelationCancelled,
    DispatchTimeout,
    ErrorCode,
    ReplayInProgressError,
    TransportUnavailable,
)
from .interfaces import Transport
from .models import (
    ActionKind,
    CorrelationState,
    ExecutionResult,
    FailurePolicy,
    PortableAction,
    ReplayState,
    now_ms,
)

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timeout"
TRANSPORT_ERROR = "transport unavailable"
CANCELLED_ERROR = "cancelled"


@dataclass
class PendingCorrelation:
    request_id: str
    future: asyncio.Future
    kind: str = "action"
    order: Optional[int] = None
    state: CorrelationState = CorrelationState.QUEUED
    created_at: float = field(default_factory=time.monotonic)


class ExecutionCorrelator:
    """Drives replay of portable actions against one target device.

    Only one replay may run per correlator at a time, since a single pending
    table serves the whole device.
    """

    def __init__(
        self,
        transport: Optional[Transport],
        device_id: str = "default",
        settle_delay: float = SETTLE_DELAY_SECONDS,
        action_timeout: float = ACTION_TIMEOUT_SECONDS,
        screenshot_timeout: float = SCREENSHOT_TIMEOUT_SECONDS,
    ) -> None:
        self.transport = transport
        self.device_id = device_id
        self.settle_delay = settle_delay
        self.action_timeout = action_timeout
        self.screenshot_timeout = screenshot_timeout
        self.state = ReplayState.IDLE
        self._pending: Dict[str, PendingCorrelation] = {}
        self._counter = 0
        self._stop_requested = False

    @property
    def is_running(self) -> bool:
        return self.state is ReplayState.RUNNING

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return (
            f"{prefix}_{self.device_id}_{int(now_ms())}_{self._counter}_"
            f"{uuid.uuid4().hex[:6]}"
        )

    def build_command(self, action: PortableAction, action_id: str) -> Dict[str, Any]:
        """Wire command understood by the device agent."""
        return {
            "type": "executeAction",
            "timestamp": time.time(),
            "payload": {
                "actionId": action_id,
                "actionType": action.kind.value,
                "selector": action.target_reference,
                "value": action.value,
                "swipeDirection": action.direction,
                "swipeDistance": action.distance,
            },
        }

    def _register(
        self, request_id: str, kind: str, order: Optional[int] = None
    ) -> PendingCorrelation:
        future = asyncio.get_running_loop().create_future()
        entry = PendingCorrelation(request_id=request_id, future=future, kind=kind, order=order)
        self._pending[request_id] = entry
        return entry

    async def execute_action(self, action: PortableAction) -> ExecutionResult:
        """Dispatch one action and wait for its correlated result.

        Never raises for dispatch problems: timeouts, a missing transport and
        cancellation all come back as a failed ``ExecutionResult``.
        """
        if action.kind is ActionKind.NOOP:
            logger.info(f"Skipping placeholder action {action.order}: {action.description}")
            return ExecutionResult(
                action_id=self._next_id("noop"),
                success=True,
                order=action.order,
                skipped=True,
            )

        action_id = self._next_id("action")
        started = time.monotonic()

        if self.transport is None:
            logger.error(f"[{ErrorCode.TRANSPORT_UNAVAILABLE.value}] Cannot send {action_id}")
            return ExecutionResult(action_id, False, TRANSPORT_ERROR, order=action.order)

        entry = self._register(action_id, "action", action.order)
        try:
            try:
                await self.transport.send(self.build_command(action, action_id))
            except Exception as e:
                logger.error(
                    f"[{ErrorCode.TRANSPORT_UNAVAILABLE.value}] Send failed for {action_id}: {e}"
                )
                return ExecutionResult(
                    action_id,
                    False,
                    TRANSPORT_ERROR,
                    duration_ms=_elapsed_ms(started),
                    order=action.order,
                )

            entry.state = CorrelationState.DISPATCHED
            logger.info(
                f"Dispatched {action.kind.value} on '{action.target_reference}' as {action_id}"
            )

            try:
                async with asyncio.timeout(self.action_timeout):
                    payload = await entry.future
            except (asyncio.TimeoutError, TimeoutError):
                entry.state = CorrelationState.TIMED_OUT
                logger.error(
                    f"[{ErrorCode.DISPATCH_TIMEOUT.value}] No result for {action_id} "
                    f"after {self.action_timeout}s"
                )
                return ExecutionResult(
                    action_id,
                    False,
                    TIMEOUT_ERROR,
                    duration_ms=_elapsed_ms(started),
                    order=action.order,
                )
            except CorrelationCancelled as e:
                logger.warning(f"{e}: {action_id}")
                return ExecutionResult(
                    action_id,
                    False,
                    CANCELLED_ERROR,
                    duration_ms=_elapsed_ms(started),
                    order=action.order,
                )
        finally:
            self._pending.pop(action_id, None)

        success = bool(payload.get("success"))
        try:
            duration_ms = float(payload.get("durationMs", payload.get("duration")))
        except (TypeError, ValueError):
            duration_ms = _elapsed_ms(started)
        error = None
        if not success:
            error = payload.get("error") or "Action failed"
            logger.error(f"[{ErrorCode.ACTION_FAILED.value}] {action_id} failed: {error}")
        return ExecutionResult(
            action_id,
            success,
            error,
            duration_ms=duration_ms,
            order=action.order,
        )

    async def run(
        self, actions: Sequence[PortableAction], policy: FailurePolicy
    ) -> List[ExecutionResult]:
        """Replay ``actions`` strictly one at a time.

        Each action waits out the settle delay before it is dispatched and is
        resolved or timed out before the next one starts.

        Raises:
            ReplayInProgressError: if a replay is already running here.
        """
        if self.is_running:
            raise ReplayInProgressError(self.device_id)

        self.state = ReplayState.RUNNING
        self._stop_requested = False
        results: List[ExecutionResult] = []
        aborted = False
        logger.info(
            f"Replaying {len(actions)} actions on {self.device_id} ({policy.value} on failure)"
        )

        try:
            for action in actions:
                if self.settle_delay > 0:
                    await asyncio.sleep(self.settle_delay)
                if self._stop_requested:
                    logger.warning(f"Replay on {self.device_id} stopped before action {action.order}")
                    aborted = True
                    break

                result = await self.execute_action(action)
                results.append(result)

                if self._stop_requested:
                    aborted = True
                    break
                if not result.success:
                    if policy is FailurePolicy.ABORT_ON_FIRST_FAILURE:
                        logger.error(f"Aborting replay at action {action.order}: {result.error}")
                        aborted = True
                        break
                    logger.warning(
                        f"Action {action.order} failed ({result.error}), continuing"
                    )
        except BaseException:
            self.state = ReplayState.ABORTED
            raise

        self.state = ReplayState.ABORTED if aborted else ReplayState.COMPLETED
        logger.info(
            f"Replay on {self.device_id} {self.state.value}: "
            f"{sum(1 for r in results if r.success)}/{len(results)} succeeded"
        )
        return results

    def handle_result(self, payload: Dict[str, Any]) -> bool:
        """Apply an ``actionResult`` payload. Returns False when it was dropped."""
        if not isinstance(payload, dict):
            logger.warning(f"Dropping action result with malformed payload: {payload!r}")
            return False
        action_id = payload.get("actionId")
        entry = self._pending.get(action_id) if action_id else None
        if entry is None or entry.kind != "action" or entry.future.done():
            logger.warning(f"Dropping result for unknown or finished action: {action_id}")
            return False

        entry.state = CorrelationState.RESOLVED
        entry.future.set_result(payload)
        return True

    def handle_screenshot(self, payload: Dict[str, Any]) -> bool:
        """Apply a ``screenshotResponse`` payload.

        Agents may omit the request id; the oldest waiting request gets it.
        """
        if not isinstance(payload, dict):
            logger.warning(f"Dropping screenshot response with malformed payload: {payload!r}")
            return False
        request_id = payload.get("requestId")
        if request_id:
            entry = self._pending.get(request_id)
        else:
            entry = next(
                (
                    e
                    for e in self._pending.values()
                    if e.kind == "screenshot" and not e.future.done()
                ),
                None,
            )

        if entry is None or entry.kind != "screenshot" or entry.future.done():
            logger.warning(f"Dropping screenshot response with no pending request: {request_id}")
            return False

        entry.state = CorrelationState.RESOLVED
        entry.future.set_result(payload)
        return True

    def handle_message(self, message: Dict[str, Any]) -> bool:
        """Route one inbound agent message."""
        if not isinstance(message, dict):
            logger.warning(f"Dropping malformed message: {message!r}")
            return False
        message_type = message.get("type")
        payload = message.get("payload")
        if payload is None:
            payload = {}
        if message_type == "actionResult":
            return self.handle_result(payload)
        if message_type == "screenshotResponse":
            return self.handle_screenshot(payload)
        logger.debug(f"Ignoring message of type {message_type!r}")
        return False

    async def request_screenshot(self) -> Dict[str, Any]:
        """Ask the agent for a screenshot and wait for the response payload.

        Raises:
            TransportUnavailable: if there is no transport.
            DispatchTimeout: if no response arrives within the screenshot budget.
            CorrelationCancelled: if pending requests are cleared meanwhile.
        """
        if self.transport is None:
            raise TransportUnavailable()

        request_id = self._next_id("screenshot")
        entry = self._register(request_id, "screenshot")
        try:
            await self.transport.send(
                {"type": "requestScreenshot", "payload": {"requestId": request_id}}
            )
            entry.state = CorrelationState.DISPATCHED
            try:
                async with asyncio.timeout(self.screenshot_timeout):
                    return await entry.future
            except (asyncio.TimeoutError, TimeoutError):
                entry.state = CorrelationState.TIMED_OUT
                raise DispatchTimeout(request_id, self.screenshot_timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def clear_pending(self, reason: str = "Executor cleared") -> int:
        """Fail every outstanding correlation now and stop a running replay.

        Returns the number of entries cancelled. The transport call itself is
        not interrupted.
        """
        cancelled = 0
        for request_id, entry in list(self._pending.items()):
            if entry.future.done():
                continue
            entry.state = CorrelationState.CANCELLED
            entry.future.set_exception(CorrelationCancelled(request_id, reason))
            cancelled += 1
        self._pending.clear()

        if self.is_running:
            self._stop_requested = True
        if cancelled:
            logger.info(f"Cleared {cancelled} pending correlation(s) on {self.device_id}: {reason}")
        return cancelled


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 1)


class CorrelatorRegistry:
    """One correlator, and therefore one pending table, per device."""

    def __init__(self, **correlator_options: Any) -> None:
        self._options = correlator_options
        self._correlators: Dict[str, ExecutionCorrelator] = {}

    def __len__(self) -> int:
        return len(self._correlators)

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._correlators

    def get(self, device_id: str) -> Optional[ExecutionCorrelator]:
        return self._correlators.get(device_id)

    def get_or_create(
        self, device_id: str, transport: Optional[Transport]
    ) -> ExecutionCorrelator:
        correlator = self._correlators.get(device_id)
        if correlator is None:
            correlator = ExecutionCorrelator(transport, device_id=device_id, **self._options)
            self._correlators[device_id] = correlator
        elif transport is not None and correlator.transport is not transport:
            correlator.transport = transport
        return correlator

    def route_result(self, device_id: str, payload: Dict[str, Any]) -> bool:
        correlator = self._correlators.get(device_id)
        if correlator is None:
            logger.warning(f"Result for unknown device {device_id} dropped")
            return False
        return correlator.handle_result(payload)

    def route_message(self, device_id: str, message: Dict[str, Any]) -> bool:
        correlator = self._correlators.get(device_id)
        if correlator is None:
            logger.warning(f"Message for unknown device {device_id} dropped")
            return False
        return correlator.handle_message(message)

    def remove(self, device_id: str, reason: str = "Device disconnected") -> None:
        correlator = self._correlators.pop(device_id, None)
        if correlator is not None:
            correlator.clear_pending(reason)

    def clear_all(self, reason: str = "Executor cleared") -> None:
        for correlator in self._correlators.values():
            correlator.clear_pending(reason)
        self._correlators.clear()


def summarize_results(results: Sequence[ExecutionResult]) -> Dict[str, Any]:
    """Per-action ledger for a finished replay."""
    skipped = [r for r in results if r.skipped]
    succeeded = [r for r in results if r.success and not r.skipped]
    failed = [r for r in results if not r.success]
    return {
        "total": len(results),
        "succeeded": len(succeeded),
        "failed": len(failed),
        "skipped": len(skipped),
        "total_duration_ms": round(sum(r.duration_ms for r in results), 1),
        "failures": [
            {
                "order": r.order,
                "action_id": r.action_id,
                "error": r.error,
                "duration_ms": r.duration_ms,
            }
            for r in failed
        ],
        "results": [r.to_dict() for r in results],
    }
