"""MCP tools for the gesture replay pipeline."""

from . import diagnostics, flows, hierarchy

__all__ = ["hierarchy", "flows", "diagnostics"]
