"""Flow assembly and validation tools for MCP server."""

import logging
from collections import Counter
from typing import Any, Dict, List

from ..action_translator import estimate_execution_time, generate_flow_summary
from ..capture import RecordingSession, event_from_agent_message
from ..decorators import timeout_wrapper
from ..error_handler import (
    ErrorCode,
    ReplayPipelineError,
    ValidationRejected,
    error_handler,
)
from ..flow_builder import FlowBuilder
from ..flow_validator import FlowValidator
from ..models import PortableAction
from ..tool_models import BuildFlowParams, FlowActionsParams

logger = logging.getLogger(__name__)

# Module-level components reference
_components = {}


def _get_error_handler():
    return _components.get("error_handler") or error_handler


def _actions_from_dicts(raw_actions: List[Dict[str, Any]]) -> List[PortableAction]:
    """Rebuild portable actions; raises ValueError naming the bad entry."""
    actions = []
    for position, raw in enumerate(raw_actions):
        try:
            actions.append(PortableAction.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Action {position + 1} is not a valid portable action: {e}")
    return actions


def _invalid_parameter(message: str) -> Dict[str, Any]:
    return _get_error_handler().create_error_response(
        ErrorCode.INVALID_PARAMETER,
        message=message,
        recovery_suggestion="Pass actions in the shape returned by build_flow",
    )


@timeout_wrapper()
async def build_flow(params: BuildFlowParams) -> Dict[str, Any]:
    """Turn captured touch messages into a validated flow.

    When to use:
    - After a recording session, to get the replayable action list.

    Tips:
    - Events run through identifier repair, deduplication and merging before
      translation, so the flow is usually much shorter than the raw capture.
    - Taps with no identifiable target replay against coordinates; text
      entries without a target are dropped and reported in `dropped`.
    - Timestamps below 1e11 are read as epoch seconds by default. Events
      stamped with a relative millisecond clock need `timestamp_unit="ms"`,
      otherwise the duplicate-tap window no longer matches them.
    """
    session = RecordingSession(
        device_id=params.device_id,
        device_name=params.device_name,
        platform=params.platform,
        name=params.name,
    )
    events = [
        event_from_agent_message(message, params.timestamp_unit) for message in params.events
    ]

    builder = _components.get("flow_builder")
    if (
        builder is None
        or builder.repair_tolerance != params.repair_tolerance
        or builder.repair_window != params.repair_window
    ):
        builder = FlowBuilder(
            repair_tolerance=params.repair_tolerance,
            repair_window=params.repair_window,
        )

    try:
        report = builder.build(
            events,
            params.name,
            session=session,
            description=params.description,
            tags=params.tags,
        )
    except ReplayPipelineError as e:
        return _get_error_handler().handle_error(e, context={"operation": "build_flow"})

    data = report.to_dict()
    data["estimated_duration_ms"] = estimate_execution_time(report.flow.actions)
    return _get_error_handler().create_success_response(
        data, message=f"Built flow '{params.name}' with {len(report.flow)} actions"
    )


@timeout_wrapper()
async def validate_flow(params: FlowActionsParams) -> Dict[str, Any]:
    """Validate an (edited) action list as a whole.

    Actions without a locatable target are filtered out and listed in
    `dropped`; an empty result is a rejection.
    """
    try:
        actions = _actions_from_dicts(params.actions)
    except ValueError as e:
        return _invalid_parameter(str(e))

    validator = _components.get("validator") or FlowValidator()
    result = validator.validate(actions)
    if not result.is_valid:
        return _get_error_handler().handle_error(
            ValidationRejected(result.errors, result.warnings),
            context={"operation": "validate_flow"},
        )
    return _get_error_handler().create_success_response(result.to_dict())


@timeout_wrapper()
async def summarize_flow(params: FlowActionsParams) -> Dict[str, Any]:
    """Summarize an action list and estimate its replay time."""
    try:
        actions = _actions_from_dicts(params.actions)
    except ValueError as e:
        return _invalid_parameter(str(e))

    counts = Counter(action.kind.value for action in actions)
    return _get_error_handler().create_success_response(
        {
            "summary": generate_flow_summary(actions),
            "action_count": len(actions),
            "kinds": dict(counts),
            "estimated_duration_ms": estimate_execution_time(actions),
        }
    )


def register_flow_tools(mcp, components):
    """Register flow tools with the MCP server.

    Args:
        mcp: FastMCP server instance
        components: Dictionary containing initialized components
    """
    global _components
    _components = components

    mcp.tool(
        description=(
            "Build a replayable flow from captured touch messages. Runs identifier "
            "repair, duplicate removal, text and scroll merging, translation into "
            "portable actions and validation. Returns the flow, warnings and any "
            "dropped actions."
        )
    )(build_flow)

    mcp.tool(
        description=(
            "Validate a list of portable actions before saving or replaying it. "
            "Drops actions without a locatable target and reports warnings such as "
            "empty text entries or near-duplicate taps."
        )
    )(validate_flow)

    mcp.tool(
        description=(
            "Summarize a list of portable actions (for example '2 taps, 1 input') "
            "and estimate how long replay will take."
        )
    )(summarize_flow)
