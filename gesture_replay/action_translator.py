"""Translation of optimized events into portable actions."""

import logging
from typing import List, Sequence, Tuple

from .models import (
    TAP_FAMILY,
    ActionKind,
    GestureKind,
    PortableAction,
    RawInteractionEvent,
)

logger = logging.getLogger(__name__)

COORDINATES_PREFIX = "coordinates:"

# Gestures whose replay can fall back to raw screen coordinates.
_COORDINATE_FALLBACK = TAP_FAMILY + (GestureKind.PINCH, GestureKind.UNKNOWN)


def coordinates_reference(x: float, y: float) -> str:
    return f"{COORDINATES_PREFIX}{round(x)},{round(y)}"


def parse_coordinates_reference(reference: str) -> Tuple[int, int]:
    """Inverse of ``coordinates_reference``.

    Raises:
        ValueError: if the reference is not a coordinates reference.
    """
    if not reference.startswith(COORDINATES_PREFIX):
        raise ValueError(f"Not a coordinates reference: {reference!r}")
    x, y = reference[len(COORDINATES_PREFIX):].split(",")
    return int(float(x)), int(float(y))


def select_target_reference(event: RawInteractionEvent) -> str:
    """Stable identifier, else path reference, else coordinates.

    Only tap-like gestures fall back to coordinates. Text entry and scrolls
    need an element, and swipes are screen-level.
    """
    if event.gesture_kind is GestureKind.SWIPE:
        return ""
    if event.stable_id and event.stable_id.strip():
        return event.stable_id
    if event.path_reference and event.path_reference.strip():
        return event.path_reference
    if event.gesture_kind in _COORDINATE_FALLBACK:
        return coordinates_reference(event.coordinates.x, event.coordinates.y)
    return ""


def translate_event(event: RawInteractionEvent, order: int = 0) -> PortableAction:
    """Map one optimized event to exactly one portable action."""
    target = select_target_reference(event)
    x, y = round(event.coordinates.x), round(event.coordinates.y)
    kind = event.gesture_kind

    if kind is GestureKind.TAP:
        return PortableAction(
            kind=ActionKind.TAP,
            target_reference=target,
            order=order,
            description=event.description or f"Tap at ({x}, {y})",
            timestamp=event.timestamp,
        )

    if kind is GestureKind.DOUBLE_TAP:
        return PortableAction(
            kind=ActionKind.TAP,
            target_reference=target,
            value="doubleTap",
            order=order,
            description=event.description or f"Double tap at ({x}, {y})",
            timestamp=event.timestamp,
        )

    if kind is GestureKind.LONG_PRESS:
        return PortableAction(
            kind=ActionKind.LONG_PRESS,
            target_reference=target,
            value="longPress",
            order=order,
            description=event.description or f"Long press at ({x}, {y})",
            timestamp=event.timestamp,
        )

    if kind is GestureKind.TEXT_ENTRY:
        value = event.value or ""
        return PortableAction(
            kind=ActionKind.TEXT_ENTRY,
            target_reference=target,
            value=value,
            order=order,
            description=event.description or f'Type "{value}"',
            timestamp=event.timestamp,
        )

    if kind in (GestureKind.SWIPE, GestureKind.SCROLL):
        action_kind = ActionKind.SWIPE if kind is GestureKind.SWIPE else ActionKind.SCROLL
        default_direction = "up" if kind is GestureKind.SWIPE else "down"
        direction = event.direction.value if event.direction else default_direction
        return PortableAction(
            kind=action_kind,
            target_reference=target,
            direction=direction,
            distance=event.distance,
            order=order,
            description=event.description
            or f"{kind.value.capitalize()} {direction} ({round(event.distance or 0)}px)",
            timestamp=event.timestamp,
        )

    gesture_name = event.raw_gesture or kind.value
    logger.warning(f"Unsupported gesture '{gesture_name}' at ({x}, {y}), emitting placeholder")
    return PortableAction(
        kind=ActionKind.NOOP,
        target_reference=target,
        order=order,
        description=f"Unsupported gesture '{gesture_name}' at ({x}, {y})",
        timestamp=event.timestamp,
    )


def translate_events(events: Sequence[RawInteractionEvent]) -> List[PortableAction]:
    return [translate_event(event, order) for order, event in enumerate(events)]


def generate_flow_summary(actions: Sequence[PortableAction]) -> str:
    """Human-readable summary such as '2 taps, 1 input'."""
    if not actions:
        return "Empty flow"

    labels = [
        ((ActionKind.TAP, ActionKind.LONG_PRESS), "tap"),
        ((ActionKind.TEXT_ENTRY,), "input"),
        ((ActionKind.SWIPE,), "swipe"),
        ((ActionKind.SCROLL,), "scroll"),
        ((ActionKind.NOOP,), "unsupported gesture"),
    ]
    parts = []
    for kinds, label in labels:
        count = sum(1 for action in actions if action.kind in kinds)
        if count:
            parts.append(f"{count} {label}{'s' if count > 1 else ''}")
    return ", ".join(parts)


def estimate_execution_time(actions: Sequence[PortableAction], gap_ms: int = 300) -> int:
    """Rough replay duration in milliseconds, excluding settle delays."""
    total = 0
    for action in actions:
        if action.kind is ActionKind.TAP:
            total += 500
        elif action.kind is ActionKind.LONG_PRESS:
            total += 1000
        elif action.kind is ActionKind.TEXT_ENTRY:
            total += 100 + len(action.value) * 50
        elif action.kind in (ActionKind.SWIPE, ActionKind.SCROLL):
            total += 800
        else:
            total += 300
        total += gap_ms
    return total
