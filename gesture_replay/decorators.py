"""Decorators for MCP tools."""

import asyncio
import functools
import logging
import time
from typing import Optional

from .config import DEFAULT_TOOL_TIMEOUT, TOOL_TIMEOUTS
from .error_handler import ErrorCode

logger = logging.getLogger(__name__)


def timeout_wrapper(timeout_seconds: Optional[float] = None):
    """Decorator to enforce a per-tool time limit with asyncio.timeout.

    A tool that overruns its budget or raises answers with an error
    dictionary instead of propagating, so the MCP client always gets a
    structured reply.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            tool_name = func.__name__
            total_budget = float(
                timeout_seconds or TOOL_TIMEOUTS.get(tool_name, DEFAULT_TOOL_TIMEOUT)
            )
            started = time.monotonic()
            try:
                async with asyncio.timeout(total_budget):
                    return await func(*args, **kwargs)
            except (asyncio.TimeoutError, TimeoutError):
                elapsed = round(time.monotonic() - started, 2)
                logger.warning(f"Tool {tool_name} timed out after ~{elapsed}/{total_budget}s")
                return {
                    "success": False,
                    "error": f"Operation timed out after {total_budget} seconds",
                    "error_code": ErrorCode.DISPATCH_TIMEOUT.value,
                    "timeout_seconds": total_budget,
                    "elapsed_seconds": elapsed,
                    "tool_name": tool_name,
                    "recovery_suggestions": [
                        "Try again with a smaller hierarchy or event list",
                        "Check that the input document is complete",
                    ],
                }
            except Exception as e:
                logger.error(f"Tool {tool_name} failed: {e}")
                return {
                    "success": False,
                    "error": f"Tool execution failed: {str(e)}",
                    "error_code": ErrorCode.UNKNOWN_ERROR.value,
                    "tool_name": tool_name,
                }

        return wrapper

    return decorator
