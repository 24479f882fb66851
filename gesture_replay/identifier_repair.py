"""Identifier repair pass.

A tap and the text entry that follows it can reach the capture buffer
before the platform publishes the field's stable identifier, so the early
events only carry a positional path. A later event on the same field
usually does carry the identifier. This pass copies it back onto the
earlier events when their element centers coincide.
"""

import logging
from typing import List, Optional, Sequence

from .config import REPAIR_DISTANCE_TOLERANCE, REPAIR_LOOKAHEAD_WINDOW
from .error_handler import ErrorCode
from .models import RawInteractionEvent

logger = logging.getLogger(__name__)


def find_repair_identifier(
    events: Sequence[RawInteractionEvent],
    index: int,
    tolerance: float = REPAIR_DISTANCE_TOLERANCE,
    window: int = REPAIR_LOOKAHEAD_WINDOW,
) -> Optional[str]:
    """Stable identifier for ``events[index]`` found in the lookahead window.

    Returns None when the event does not need repair or no candidate within
    ``window`` following events lies closer than ``tolerance`` pixels.
    """
    event = events[index]
    if event.stable_id or not event.path_reference:
        return None

    center = event.center()
    for candidate in events[index + 1 : index + 1 + window]:
        if not candidate.stable_id:
            continue
        distance = center.distance_to(candidate.center())
        logger.debug(
            f"Comparing event {index} with '{candidate.stable_id}': distance = {distance:.1f}px"
        )
        if distance < tolerance:
            return candidate.stable_id
    return None


def repair_identifiers(
    events: Sequence[RawInteractionEvent],
    tolerance: float = REPAIR_DISTANCE_TOLERANCE,
    window: int = REPAIR_LOOKAHEAD_WINDOW,
) -> List[RawInteractionEvent]:
    """Return a copy of ``events`` with weak path references upgraded.

    Best effort: events with no match keep their path reference. The input
    sequence is not modified, and running the pass twice changes nothing.

    Events are visited last to first so that an identifier repaired onto a
    later event is already visible to the events before it.
    """
    repaired = list(events)
    fixed_count = 0

    for index in range(len(repaired) - 1, -1, -1):
        event = repaired[index]
        if event.stable_id or not event.path_reference:
            continue

        stable_id = find_repair_identifier(repaired, index, tolerance, window)
        if stable_id is None:
            logger.debug(
                f"[{ErrorCode.REPAIR_MISS.value}] Event {index}: no matching identifier, "
                f"keeping path {event.path_reference}"
            )
            continue

        logger.info(f"Event {index}: replacing path with '{stable_id}'")
        repaired[index] = event.with_stable_id(stable_id)
        fixed_count += 1

    if fixed_count:
        logger.info(f"Repaired {fixed_count} event(s) with stable identifiers")
    return repaired
