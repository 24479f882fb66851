"""Hierarchy parsing and hit-testing tools for MCP server."""

import logging
from typing import Any, Dict

from ..action_translator import select_target_reference
from ..config import MAX_HIERARCHY_DEPTH
from ..coordinate_resolver import CoordinateResolver
from ..decorators import timeout_wrapper
from ..error_handler import ReplayPipelineError, error_handler
from ..hierarchy_parser import HierarchyParser
from ..models import GestureKind, Point, RawInteractionEvent, now_ms
from ..tool_models import ParseHierarchyParams, ResolvePointParams

logger = logging.getLogger(__name__)

# Module-level components reference
_components = {}


def _get_parser(max_depth: int) -> HierarchyParser:
    parser = _components.get("parser")
    if parser is None or parser.max_depth != max_depth:
        return HierarchyParser(max_depth=max_depth)
    return parser


def _get_error_handler():
    return _components.get("error_handler") or error_handler


@timeout_wrapper()
async def parse_hierarchy(params: ParseHierarchyParams) -> Dict[str, Any]:
    """Flatten a UI hierarchy into hit-test candidates.

    When to use:
    - To inspect which elements a click could resolve to.
    - To check that a hierarchy dump is usable before recording against it.

    Tips:
    - XCUITest XML, uiautomator XML, agent JSON trees and view debug
      descriptions are all accepted; bounds come back absolute.
    - Invisible and zero-size nodes are not candidates and are omitted.
    """
    try:
        elements = _get_parser(params.max_depth).parse(params.document)
    except ReplayPipelineError as e:
        return _get_error_handler().handle_error(e, context={"operation": "parse_hierarchy"})

    shown = elements[: params.limit] if params.limit else elements
    logger.info(f"parse_hierarchy returned {len(shown)}/{len(elements)} elements")
    return _get_error_handler().create_success_response(
        {
            "count": len(elements),
            "returned": len(shown),
            "elements": [element.to_dict() for element in shown],
        }
    )


@timeout_wrapper()
async def resolve_point(params: ResolvePointParams) -> Dict[str, Any]:
    """Resolve a screen point to its innermost element.

    The answer always carries a ``target_reference``: the element's stable
    identifier or path when something was hit, else a coordinates reference.
    """
    try:
        elements = _get_parser(MAX_HIERARCHY_DEPTH).parse(params.document)
    except ReplayPipelineError as e:
        return _get_error_handler().handle_error(e, context={"operation": "resolve_point"})

    resolver = CoordinateResolver(elements)
    element = resolver.resolve(params.x, params.y)
    event = RawInteractionEvent(
        timestamp=now_ms(),
        gesture_kind=GestureKind.TAP,
        coordinates=Point(params.x, params.y),
        resolved_element=element,
    )

    data: Dict[str, Any] = {
        "found": element is not None,
        "element": element.to_dict() if element else None,
        "target_reference": select_target_reference(event),
    }
    if params.include_candidates:
        data["candidates"] = [c.to_dict() for c in resolver.candidates(params.x, params.y)]
    if element is None:
        data["sample_elements"] = resolver.describe_elements()

    return _get_error_handler().create_success_response(data)


def register_hierarchy_tools(mcp, components):
    """Register hierarchy tools with the MCP server.

    Args:
        mcp: FastMCP server instance
        components: Dictionary containing initialized components
    """
    global _components
    _components = components

    mcp.tool(
        description=(
            "Parse a UI hierarchy document (XCUITest XML, uiautomator XML, agent JSON "
            "or a view debug description) into a flat list of visible elements with "
            "absolute bounds, stable identifiers and path references."
        )
    )(parse_hierarchy)

    mcp.tool(
        description=(
            "Hit-test a point against a UI hierarchy. Returns the smallest element "
            "containing the point and the target reference a recorded tap there would "
            "replay against. Falls back to a coordinates reference when nothing is hit."
        )
    )(resolve_point)
