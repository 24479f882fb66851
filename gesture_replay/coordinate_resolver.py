"""Hit-testing a screen point against parsed hierarchy elements."""

import logging
from typing import List, Optional, Sequence

from .error_handler import ErrorCode
from .models import BoundedElement

logger = logging.getLogger(__name__)


def candidates_at(x: float, y: float, elements: Sequence[BoundedElement]) -> List[BoundedElement]:
    """All hit-test candidates containing the point, smallest area first.

    The sort is stable, so equal areas keep document order.
    """
    containing = [
        element
        for element in elements
        if element.is_hit_candidate and element.bounds.contains(x, y)
    ]
    return sorted(containing, key=lambda element: element.bounds.area)


def resolve_element(
    x: float, y: float, elements: Sequence[BoundedElement]
) -> Optional[BoundedElement]:
    """Return the most specific element containing (x, y), or None.

    Among containing elements the smallest area wins; ties go to the
    element seen first in document order.
    """
    best: Optional[BoundedElement] = None
    for element in elements:
        if not element.is_hit_candidate or not element.bounds.contains(x, y):
            continue
        if best is None or element.bounds.area < best.bounds.area:
            best = element

    if best is None:
        logger.debug(
            f"[{ErrorCode.RESOLUTION_MISS.value}] No element at ({x}, {y}) "
            f"among {len(elements)} candidates"
        )
    return best


class CoordinateResolver:
    """Resolve clicks against a fixed element snapshot."""

    def __init__(self, elements: Sequence[BoundedElement]) -> None:
        self.elements = list(elements)

    def resolve(self, x: float, y: float) -> Optional[BoundedElement]:
        return resolve_element(x, y, self.elements)

    def candidates(self, x: float, y: float) -> List[BoundedElement]:
        return candidates_at(x, y, self.elements)

    def describe_elements(self, limit: int = 5) -> List[str]:
        """Bounds of the first few elements, logged when a click misses."""
        return [
            f"{element.type} '{element.display_name()}': "
            f"x={element.bounds.x}, y={element.bounds.y}, "
            f"w={element.bounds.width}, h={element.bounds.height}"
            for element in self.elements[:limit]
        ]
