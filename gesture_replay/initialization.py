"""Component initialization for MCP server."""

import logging
from typing import Any, Dict

from .error_handler import ErrorHandler
from .flow_builder import FlowBuilder
from .flow_validator import FlowValidator
from .hierarchy_parser import HierarchyParser

logger = logging.getLogger(__name__)


async def initialize_components() -> Dict[str, Any]:
    """Initialize all server components.

    Returns:
        Dictionary containing the parser, validator, flow builder and error handler
    """
    try:
        parser = HierarchyParser()
        validator = FlowValidator()
        flow_builder = FlowBuilder(validator=validator)
        handler = ErrorHandler(logger=logging.getLogger("gesture_replay.tools"))

        logger.info("All components initialized successfully")

        return {
            "parser": parser,
            "validator": validator,
            "flow_builder": flow_builder,
            "error_handler": handler,
        }

    except Exception as e:
        logger.error(f"Component initialization failed: {e}")
        raise
