"""Event optimization: a single forward pass with one look-back slot."""

import logging
from typing import List, Sequence

from .action_translator import select_target_reference
from .config import DUPLICATE_TAP_WINDOW_MS
from .models import TAP_FAMILY, GestureKind, RawInteractionEvent

logger = logging.getLogger(__name__)


def are_events_similar(
    previous: RawInteractionEvent,
    current: RawInteractionEvent,
    window_ms: float = DUPLICATE_TAP_WINDOW_MS,
) -> bool:
    """Duplicate or noise: same tap gesture on the same target inside the window."""
    if previous.gesture_kind is not current.gesture_kind:
        return False
    if select_target_reference(previous) != select_target_reference(current):
        return False
    if current.gesture_kind in TAP_FAMILY:
        return abs(current.timestamp - previous.timestamp) < window_ms
    return False


def optimize_events(
    events: Sequence[RawInteractionEvent],
    duplicate_window_ms: float = DUPLICATE_TAP_WINDOW_MS,
) -> List[RawInteractionEvent]:
    """Collapse a repaired event sequence into the minimal intention-preserving one.

    Rules, in order, against the last kept event:
    1. drop a tap-family event similar to it (see ``are_events_similar``);
    2. merge consecutive text entries on the same target, keeping the last
       non-empty value;
    3. merge consecutive scrolls in the same direction, keeping the later one.
    """
    optimized: List[RawInteractionEvent] = []

    for index, event in enumerate(events):
        last = optimized[-1] if optimized else None

        if last is not None and are_events_similar(last, event, duplicate_window_ms):
            logger.debug(f"Event {index} ({event.gesture_kind.value}) skipped - similar to last")
            continue

        if (
            last is not None
            and last.gesture_kind is GestureKind.TEXT_ENTRY
            and event.gesture_kind is GestureKind.TEXT_ENTRY
            and select_target_reference(last) == select_target_reference(event)
        ):
            # A keyboard dismissal reports an empty value; it must not erase text.
            # Whitespace is typed text and does replace it.
            if event.value:
                optimized[-1] = last.with_value(event.value)
                logger.debug(f"Event {index} merged, text value now {event.value!r}")
            else:
                logger.debug(f"Event {index} merged, empty value ignored")
            continue

        if (
            last is not None
            and last.gesture_kind is GestureKind.SCROLL
            and event.gesture_kind is GestureKind.SCROLL
            and last.direction == event.direction
        ):
            logger.debug(f"Event {index} (scroll) replaces previous scroll")
            optimized[-1] = event
            continue

        optimized.append(event)

    logger.info(
        f"Optimized {len(events)} events to {len(optimized)} "
        f"(removed {len(events) - len(optimized)})"
    )
    return optimized
