"""Mock device agent infrastructure for testing without a live device."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from gesture_replay.models import (
    ActionKind,
    BoundedElement,
    Bounds,
    GestureKind,
    Point,
    PortableAction,
    RawInteractionEvent,
    SwipeDirection,
)

Responder = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


class MockTransport:
    """Records sent commands and optionally answers them like an agent would.

    Replies are delivered on the next loop iteration through the attached
    correlator's ``handle_message``, so they arrive after the correlator has
    started waiting.
    """

    def __init__(
        self,
        responder: Optional[Responder] = None,
        fail_with: Optional[Exception] = None,
    ):
        self.responder = responder
        self.fail_with = fail_with
        self.correlator = None
        self.sent: List[Dict[str, Any]] = []
        self.pending_at_send: List[int] = []
        self.delivered: List[bool] = []

    def attach(self, correlator) -> None:
        self.correlator = correlator

    async def send(self, command: Dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(command)
        if self.correlator is not None:
            self.pending_at_send.append(self.correlator.pending_count)
        if self.responder is None or self.correlator is None:
            return
        reply = self.responder(command)
        if reply is not None:
            asyncio.get_running_loop().call_soon(self._deliver, reply)

    def _deliver(self, message: Dict[str, Any]) -> None:
        self.delivered.append(self.correlator.handle_message(message))

    @property
    def sent_action_ids(self) -> List[str]:
        return [c["payload"]["actionId"] for c in self.sent if c["type"] == "executeAction"]


class MockAgentScenarios:
    """Canned agent behaviours usable as ``MockTransport`` responders."""

    @staticmethod
    def result_for(
        command: Dict[str, Any], success: bool = True, error: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {
            "actionId": command["payload"]["actionId"],
            "success": success,
            "durationMs": 42,
        }
        if error:
            payload["error"] = error
        return {"type": "actionResult", "payload": payload}

    @staticmethod
    def always_succeed(command: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if command["type"] == "requestScreenshot":
            return {"type": "screenshotResponse", "payload": {"data": "iVBORw0KGgo="}}
        return MockAgentScenarios.result_for(command)

    @staticmethod
    def never_answer(command: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return None

    @staticmethod
    def fail_selector(selector: str, error: str = "Element not found") -> Responder:
        def responder(command: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            failed = command["payload"].get("selector") == selector
            return MockAgentScenarios.result_for(command, not failed, error if failed else None)

        return responder

    @staticmethod
    def ignore_selector(selector: str) -> Responder:
        """Answer everything except actions on ``selector``."""

        def responder(command: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            if command["payload"].get("selector") == selector:
                return None
            return MockAgentScenarios.result_for(command)

        return responder


class MockHierarchySource:
    """Serves a fixed hierarchy document and counts fetches."""

    def __init__(self, document: Any, screenshot: bytes = b"\x89PNG\r\n\x1a\n"):
        self.document = document
        self.screenshot = screenshot
        self.hierarchy_calls = 0
        self.screenshot_calls = 0

    async def fetch_hierarchy(self) -> Any:
        self.hierarchy_calls += 1
        return self.document

    async def fetch_screenshot(self) -> bytes:
        self.screenshot_calls += 1
        return self.screenshot


def make_element(
    stable_id: Optional[str] = None,
    path: Optional[str] = None,
    bounds: Bounds = Bounds(20, 20, 100, 50),
    element_type: str = "XCUIElementTypeTextField",
) -> BoundedElement:
    return BoundedElement(
        type=element_type,
        bounds=bounds,
        stable_id=stable_id,
        path_reference=path,
    )


def make_event(
    kind: GestureKind = GestureKind.TAP,
    timestamp: float = 0,
    x: float = 50,
    y: float = 40,
    stable_id: Optional[str] = None,
    path: Optional[str] = None,
    value: Optional[str] = None,
    direction: Optional[SwipeDirection] = None,
    bounds: Optional[Bounds] = Bounds(20, 20, 100, 50),
) -> RawInteractionEvent:
    element = None
    if stable_id or path:
        element = make_element(stable_id, path, bounds or Bounds())
    return RawInteractionEvent(
        timestamp=timestamp,
        gesture_kind=kind,
        coordinates=Point(x, y),
        resolved_element=element,
        value=value,
        direction=direction,
    )


def make_action(
    kind: ActionKind = ActionKind.TAP,
    target: str = "button",
    value: str = "",
    order: int = 0,
    timestamp: Optional[float] = None,
) -> PortableAction:
    return PortableAction(
        kind=kind,
        target_reference=target,
        value=value,
        order=order,
        timestamp=timestamp,
    )
