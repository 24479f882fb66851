"""Recording sessions and raw interaction capture."""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import SWIPE_MIN_MOVEMENT
from .coordinate_resolver import CoordinateResolver
from .error_handler import CaptureInactiveError, ErrorCode, ParseError
from .hierarchy_parser import HierarchyParser
from .interfaces import HierarchySource
from .models import (
    BoundedElement,
    Bounds,
    GestureKind,
    Point,
    RawInteractionEvent,
    SwipeDirection,
    now_ms,
)

logger = logging.getLogger(__name__)

TIMESTAMP_UNITS = ("auto", "s", "ms")

_GESTURE_ALIASES = {
    "tap": GestureKind.TAP,
    "click": GestureKind.TAP,
    "doubleTap": GestureKind.DOUBLE_TAP,
    "double_tap": GestureKind.DOUBLE_TAP,
    "longPress": GestureKind.LONG_PRESS,
    "long_press": GestureKind.LONG_PRESS,
    "swipe": GestureKind.SWIPE,
    "scroll": GestureKind.SCROLL,
    "pinch": GestureKind.PINCH,
    "textEntry": GestureKind.TEXT_ENTRY,
    "type": GestureKind.TEXT_ENTRY,
    "text": GestureKind.TEXT_ENTRY,
}


class RecordingStatus(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass
class RecordingSession:
    """Explicit recording state for one capture run against one device."""

    device_id: Optional[str] = None
    device_name: Optional[str] = None
    platform: Optional[str] = None
    name: Optional[str] = None
    id: str = field(default_factory=lambda: f"session-{uuid.uuid4().hex[:12]}")
    status: RecordingStatus = RecordingStatus.IDLE
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self.status is RecordingStatus.RECORDING

    @property
    def duration_ms(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def start(self) -> None:
        logger.info(f"Starting recording {self.id} on {self.device_name or self.device_id}")
        self.status = RecordingStatus.RECORDING
        self.start_time = now_ms()
        self.end_time = None

    def pause(self) -> None:
        if self.status is not RecordingStatus.RECORDING:
            logger.warning(f"Cannot pause recording {self.id} in state {self.status.value}")
            return
        self.status = RecordingStatus.PAUSED

    def resume(self) -> None:
        if self.status is not RecordingStatus.PAUSED:
            logger.warning(f"Cannot resume recording {self.id} in state {self.status.value}")
            return
        self.status = RecordingStatus.RECORDING

    def stop(self) -> bool:
        """Finish the session. Returns False when there was nothing to stop."""
        if self.status not in (RecordingStatus.RECORDING, RecordingStatus.PAUSED):
            logger.warning(f"No active recording to stop for session {self.id}")
            return False
        self.status = RecordingStatus.COMPLETED
        self.end_time = now_ms()
        logger.info(f"Recording {self.id} completed after {self.duration_ms:.0f}ms")
        return True

    def cancel(self) -> None:
        logger.info(f"Cancelling recording {self.id}")
        self.status = RecordingStatus.IDLE
        self.start_time = None
        self.end_time = None


class EventCaptureBuffer:
    """Append-only accumulation of raw events for one recording session."""

    def __init__(self, session: Optional[RecordingSession] = None) -> None:
        self.session = session or RecordingSession()
        self._events: List[RawInteractionEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: RawInteractionEvent) -> bool:
        """Append an event; ignored with a warning outside an active recording."""
        if not self.session.is_recording:
            logger.warning(
                f"[{ErrorCode.CAPTURE_INACTIVE.value}] Dropping {event.gesture_kind.value} "
                f"event: session {self.session.id} is {self.session.status.value}"
            )
            return False

        self._events.append(event)
        logger.info(
            f"Event captured: {event.gesture_kind.value} at "
            f"({event.coordinates.x}, {event.coordinates.y})"
        )
        return True

    def append_agent_message(
        self, payload: Dict[str, Any], timestamp_unit: str = "auto"
    ) -> Optional[RawInteractionEvent]:
        """Normalize and append a touch message pushed by a live device agent."""
        event = event_from_agent_message(payload, timestamp_unit)
        return event if self.append(event) else None

    def snapshot(self) -> Tuple[RawInteractionEvent, ...]:
        return tuple(self._events)

    def clear(self) -> None:
        self._events.clear()


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _element_from_agent(element: Dict[str, Any]) -> BoundedElement:
    bounds = element.get("bounds") or {}
    return BoundedElement(
        type=element.get("className") or element.get("type") or "Unknown",
        bounds=Bounds(
            x=_number(bounds.get("x")),
            y=_number(bounds.get("y")),
            width=_number(bounds.get("width")),
            height=_number(bounds.get("height")),
        ),
        name=element.get("name"),
        label=element.get("accessibilityLabel") or element.get("contentDescription"),
        value=element.get("text") or element.get("value"),
        stable_id=(
            element.get("accessibilityIdentifier")
            or element.get("accessibilityId")
            or element.get("resourceId")
            or None
        ),
        enabled=element.get("isEnabled", True) is not False,
        visible=element.get("isVisible", True) is not False,
        path_reference=element.get("xpath") or None,
    )


def event_from_agent_message(
    payload: Dict[str, Any], timestamp_unit: str = "auto"
) -> RawInteractionEvent:
    """Build a ``RawInteractionEvent`` from an agent touch message.

    ``timestamp_unit`` is "s", "ms" or "auto". Agents report epoch seconds,
    so "auto" reads values below 1e11 as seconds and converts them to
    milliseconds. Relative millisecond clocks starting near zero must pass
    "ms" or they are inflated a thousandfold.

    Raises:
        ValueError: if ``timestamp_unit`` is not one of the three units.
    """
    if timestamp_unit not in TIMESTAMP_UNITS:
        raise ValueError(f"Unknown timestamp unit {timestamp_unit!r}")

    gesture = str(payload.get("gestureType") or payload.get("gesture") or "")
    kind = _GESTURE_ALIASES.get(gesture, GestureKind.UNKNOWN)

    timestamp = payload.get("timestamp")
    if timestamp is None:
        timestamp = now_ms()
    else:
        timestamp = _number(timestamp, now_ms())
        if timestamp_unit == "s" or (timestamp_unit == "auto" and timestamp < 1e11):
            timestamp *= 1000

    coordinates = payload.get("coordinates") or {}
    element = payload.get("element")

    direction = None
    raw_direction = payload.get("swipeDirection") or payload.get("direction")
    if raw_direction:
        try:
            direction = SwipeDirection(str(raw_direction).lower())
        except ValueError:
            logger.warning(f"Ignoring unknown swipe direction {raw_direction!r}")

    distance = payload.get("swipeDistance", payload.get("distance"))
    duration = payload.get("duration")

    return RawInteractionEvent(
        timestamp=timestamp,
        gesture_kind=kind,
        coordinates=Point(_number(coordinates.get("x")), _number(coordinates.get("y"))),
        resolved_element=_element_from_agent(element) if isinstance(element, dict) else None,
        value=payload.get("value"),
        direction=direction,
        distance=_number(distance) if distance is not None else None,
        duration_ms=int(_number(duration)) if duration is not None else None,
        raw_gesture=gesture if kind is GestureKind.UNKNOWN else None,
        description=payload.get("description"),
    )


def detect_swipe_direction(
    start: Point, end: Point, min_movement: float = SWIPE_MIN_MOVEMENT
) -> Optional[SwipeDirection]:
    """Direction of finger travel, or None when the movement is too small."""
    dx = end.x - start.x
    dy = end.y - start.y

    if abs(dx) < min_movement and abs(dy) < min_movement:
        return None

    if abs(dx) > abs(dy):
        return SwipeDirection.RIGHT if dx > 0 else SwipeDirection.LEFT
    return SwipeDirection.DOWN if dy > 0 else SwipeDirection.UP


class ScreenshotClickRecorder:
    """Record clicks made on a screenshot by resolving them on demand.

    A fresh hierarchy is fetched once per click rather than polled, since
    each fetch can take seconds on a real device.
    """

    def __init__(
        self,
        buffer: EventCaptureBuffer,
        hierarchy_source: HierarchySource,
        parser: Optional[HierarchyParser] = None,
    ) -> None:
        self.buffer = buffer
        self.hierarchy_source = hierarchy_source
        self.parser = parser or HierarchyParser()
        self._pending_swipe: Optional[Tuple[Point, float]] = None

    async def capture_screenshot(self) -> bytes:
        return await self.hierarchy_source.fetch_screenshot()

    async def match_click(
        self, x: float, y: float, gesture: GestureKind = GestureKind.TAP
    ) -> RawInteractionEvent:
        """Resolve a click to an element and append the resulting event.

        Raises:
            CaptureInactiveError: if the session is not recording.
        """
        if not self.buffer.session.is_recording:
            raise CaptureInactiveError("Recorder is not active")

        element = await self._resolve(x, y)
        verb = "Long press" if gesture is GestureKind.LONG_PRESS else "Tap"
        target = element.display_name() if element else f"({x}, {y})"

        event = RawInteractionEvent(
            timestamp=now_ms(),
            gesture_kind=gesture,
            coordinates=Point(x, y),
            resolved_element=element,
            duration_ms=1000 if gesture is GestureKind.LONG_PRESS else 100,
            description=f"{verb} on {target}",
        )
        self.buffer.append(event)
        return event

    async def _resolve(self, x: float, y: float) -> Optional[BoundedElement]:
        document = await self.hierarchy_source.fetch_hierarchy()
        try:
            elements = self.parser.parse(document)
        except ParseError as e:
            logger.error(f"Hierarchy unusable for click at ({x}, {y}), using coordinates: {e}")
            return None

        resolver = CoordinateResolver(elements)
        element = resolver.resolve(x, y)
        if element is None:
            logger.info(
                f"No element at ({x}, {y}) among {len(elements)} elements, "
                f"falling back to coordinates"
            )
            for line in resolver.describe_elements():
                logger.debug(f"  - {line}")
        else:
            logger.info(f"Matched element: {element.type} {element.display_name()!r}")
        return element

    def begin_swipe(self, x: float, y: float) -> None:
        self._pending_swipe = (Point(x, y), now_ms())

    def end_swipe(
        self, x: float, y: float, as_scroll: bool = False
    ) -> Optional[RawInteractionEvent]:
        """Close a swipe started with ``begin_swipe`` and append it."""
        if self._pending_swipe is None:
            logger.warning("end_swipe called without a matching begin_swipe")
            return None

        start, started_at = self._pending_swipe
        self._pending_swipe = None
        end = Point(x, y)

        direction = detect_swipe_direction(start, end)
        if direction is None:
            logger.info(f"Movement from ({start.x}, {start.y}) to ({x}, {y}) too small for a swipe")
            return None

        kind = GestureKind.SCROLL if as_scroll else GestureKind.SWIPE
        distance = start.distance_to(end)
        event = RawInteractionEvent(
            timestamp=now_ms(),
            gesture_kind=kind,
            coordinates=start,
            direction=direction,
            distance=distance,
            duration_ms=int(now_ms() - started_at),
            description=f"{kind.value.capitalize()} {direction.value} ({round(distance)}px)",
        )
        return event if self.buffer.append(event) else None
