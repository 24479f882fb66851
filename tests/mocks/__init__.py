"""Mock infrastructure for gesture replay testing."""

from .agent_mock import (
    MockAgentScenarios,
    MockHierarchySource,
    MockTransport,
    make_action,
    make_element,
    make_event,
)

__all__ = [
    "MockAgentScenarios",
    "MockHierarchySource",
    "MockTransport",
    "make_action",
    "make_element",
    "make_event",
]
