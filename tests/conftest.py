"""Test configuration and fixtures for gesture replay tests."""

from typing import Any, Dict, List
from unittest.mock import Mock

import pytest

from gesture_replay.capture import EventCaptureBuffer, RecordingSession
from gesture_replay.error_handler import ErrorHandler
from gesture_replay.execution_correlator import ExecutionCorrelator
from gesture_replay.flow_builder import FlowBuilder
from gesture_replay.flow_validator import FlowValidator
from gesture_replay.hierarchy_parser import HierarchyParser
from gesture_replay.models import ActionKind, GestureKind
from tests.data.sample_hierarchies import NESTED_BUTTON_XML
from tests.mocks import (
    MockAgentScenarios,
    MockHierarchySource,
    MockTransport,
    make_action,
    make_event,
)

MOCK_DEVICE_ID = "iphone-15-sim"


@pytest.fixture
def parser() -> HierarchyParser:
    return HierarchyParser()


@pytest.fixture
def recording_session() -> RecordingSession:
    """Active recording session for a simulator."""
    session = RecordingSession(
        device_id=MOCK_DEVICE_ID,
        device_name="iPhone 15",
        platform="ios",
        name="Checkout",
    )
    session.start()
    return session


@pytest.fixture
def capture_buffer(recording_session) -> EventCaptureBuffer:
    return EventCaptureBuffer(recording_session)


@pytest.fixture
def hierarchy_source() -> MockHierarchySource:
    return MockHierarchySource(NESTED_BUTTON_XML)


@pytest.fixture
def flow_builder() -> FlowBuilder:
    return FlowBuilder()


@pytest.fixture
def flow_validator() -> FlowValidator:
    return FlowValidator()


@pytest.fixture
def error_handler() -> ErrorHandler:
    return ErrorHandler()


@pytest.fixture
def transport() -> MockTransport:
    """Transport whose agent answers every command successfully."""
    return MockTransport(MockAgentScenarios.always_succeed)


@pytest.fixture
def correlator(transport) -> ExecutionCorrelator:
    """Correlator with no settle delay and short budgets."""
    correlator = ExecutionCorrelator(
        transport,
        device_id=MOCK_DEVICE_ID,
        settle_delay=0,
        action_timeout=0.2,
        screenshot_timeout=0.2,
    )
    transport.attach(correlator)
    return correlator


@pytest.fixture
def login_events():
    """Tap on a field, then two text entries; only the last carries the identifier."""
    return [
        make_event(GestureKind.TAP, timestamp=0, path="/A"),
        make_event(GestureKind.TEXT_ENTRY, timestamp=200, path="/A", value="j"),
        make_event(GestureKind.TEXT_ENTRY, timestamp=400, stable_id="field1", value="john"),
    ]


@pytest.fixture
def replay_actions():
    return [
        make_action(ActionKind.TAP, "usernameField", order=0),
        make_action(ActionKind.TEXT_ENTRY, "usernameField", value="john", order=1),
        make_action(ActionKind.TAP, "loginButton", order=2),
    ]


@pytest.fixture
def agent_touch_messages() -> List[Dict[str, Any]]:
    """Touch messages as pushed by an embedded agent (timestamps in seconds)."""
    return [
        {
            "gestureType": "tap",
            "timestamp": 1700000000.0,
            "coordinates": {"x": 70, "y": 45},
            "element": {
                "className": "UITextField",
                "xpath": "/UIWindow[1]/UITextField[1]",
                "bounds": {"x": 20, "y": 20, "width": 100, "height": 50},
            },
        },
        {
            "gestureType": "type",
            "timestamp": 1700000001.0,
            "coordinates": {"x": 70, "y": 45},
            "value": "john",
            "element": {
                "className": "UITextField",
                "accessibilityIdentifier": "usernameField",
                "bounds": {"x": 20, "y": 20, "width": 100, "height": 50},
            },
        },
        {
            "gestureType": "type",
            "timestamp": 1700000002.0,
            "coordinates": {"x": 70, "y": 45},
            "value": "",
            "element": {
                "className": "UITextField",
                "accessibilityIdentifier": "usernameField",
                "bounds": {"x": 20, "y": 20, "width": 100, "height": 50},
            },
        },
        {
            "gestureType": "tap",
            "timestamp": 1700000003.0,
            "coordinates": {"x": 200, "y": 365},
            "element": {
                "className": "UIButton",
                "accessibilityIdentifier": "loginButton",
                "bounds": {"x": 20, "y": 340, "width": 350, "height": 50},
            },
        },
    ]


@pytest.fixture
def mock_error_handler() -> Mock:
    """Mock error handler system."""
    handler_mock = Mock(spec=ErrorHandler)

    handler_mock.handle_error.return_value = {
        "success": False,
        "error_code": "TEST_ERROR",
        "error": "Test error occurred",
        "recovery_suggestions": ["Retry the operation"],
    }
    handler_mock.create_success_response.side_effect = lambda data, message=None: {
        "success": True,
        **data,
    }

    return handler_mock
