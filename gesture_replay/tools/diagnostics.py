"""Error diagnostics tools for MCP server."""

import logging
from typing import Any, Dict

from ..decorators import timeout_wrapper
from ..error_handler import error_handler
from ..tool_models import ErrorReportParams

logger = logging.getLogger(__name__)

# Module-level components reference
_components = {}


def _get_error_handler():
    return _components.get("error_handler") or error_handler


def _history_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    entry["code"] = entry["code"].value
    entry["timestamp"] = entry["timestamp"].isoformat()
    return entry


@timeout_wrapper()
async def error_report(params: ErrorReportParams) -> Dict[str, Any]:
    """Report the errors the pipeline tools have returned so far.

    When to use:
    - A build or validation keeps failing and you want to see which error
      code dominates and what the last occurrence of each said.

    Tips:
    - Pass `clear=True` to start counting afresh, for example before
      retrying a recording.
    """
    handler = _get_error_handler()

    statistics = handler.get_error_statistics()
    most_common = statistics["most_common_error"]
    if most_common:
        statistics["most_common_error"] = {
            "error_code": most_common["error_code"].value,
            "count": most_common["count"],
        }

    data = {
        "statistics": statistics,
        "error_counts": {code.value: count for code, count in handler.error_counts.items()},
        "last_errors": {code.value: error.message for code, error in handler.last_errors.items()},
        "history": [_history_entry(e) for e in handler.get_error_history(params.history_limit)],
        "cleared": params.clear,
    }

    if params.clear:
        handler.clear_error_history()
        logger.info("Error history cleared")

    return handler.create_success_response(
        data, message=f"{statistics['total_errors']} error(s) recorded"
    )


def register_diagnostics_tools(mcp, components):
    """Register diagnostics tools with the MCP server.

    Args:
        mcp: FastMCP server instance
        components: Dictionary containing initialized components
    """
    global _components
    _components = components

    mcp.tool(
        description=(
            "Report errors returned by the other tools: totals, the most common "
            "error code, the last message per code and the recent history. "
            "Optionally clear the counters afterwards."
        )
    )(error_report)
