"""Configuration constants for the gesture replay pipeline."""

import logging

# Configure logging to stderr (not stdout for STDIO transport)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

# Replay timing (in seconds)
SETTLE_DELAY_SECONDS = 1.0
ACTION_TIMEOUT_SECONDS = 5.0
SCREENSHOT_TIMEOUT_SECONDS = 10.0

# Identifier repair tuning. Empirical values, verify against device pixel density.
REPAIR_DISTANCE_TOLERANCE = 10.0  # device pixels
REPAIR_LOOKAHEAD_WINDOW = 5  # events

# Event optimization and validation thresholds (in milliseconds)
DUPLICATE_TAP_WINDOW_MS = 500
NEAR_DUPLICATE_TAP_MS = 100
LONG_FLOW_THRESHOLD = 100

# Minimum finger travel (px) before two clicks count as a swipe
SWIPE_MIN_MOVEMENT = 30

# Hierarchy traversal
MAX_HIERARCHY_DEPTH = 30

# Timeout configuration for MCP tools (in seconds)
TOOL_TIMEOUTS = {
    "parse_hierarchy": 10,
    "resolve_point": 10,
    "build_flow": 15,
    "validate_flow": 5,
    "summarize_flow": 5,
    "error_report": 5,
}

DEFAULT_TOOL_TIMEOUT = 30  # Default timeout for tools not in the list
