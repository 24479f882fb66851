"""Recording-to-replay pipeline for device UI gestures."""

from .action_translator import (
    estimate_execution_time,
    generate_flow_summary,
    translate_event,
    translate_events,
)
from .capture import (
    EventCaptureBuffer,
    RecordingSession,
    RecordingStatus,
    ScreenshotClickRecorder,
    event_from_agent_message,
)
from .coordinate_resolver import CoordinateResolver, resolve_element
from .error_handler import (
    CaptureInactiveError,
    CorrelationCancelled,
    DispatchTimeout,
    ErrorCode,
    ParseError,
    ReplayInProgressError,
    ReplayPipelineError,
    TransportUnavailable,
    ValidationRejected,
)
from .event_optimizer import optimize_events
from .execution_correlator import (
    CorrelatorRegistry,
    ExecutionCorrelator,
    summarize_results,
)
from .flow_builder import FlowBuildReport, FlowBuilder
from .flow_validator import FlowValidator, ValidationResult
from .hierarchy_parser import HierarchyParser, parse_hierarchy
from .identifier_repair import repair_identifiers
from .interfaces import HierarchySource, Transport
from .models import (
    ActionKind,
    BoundedElement,
    Bounds,
    ExecutionResult,
    FailurePolicy,
    Flow,
    GestureKind,
    Point,
    PortableAction,
    RawInteractionEvent,
    ReplayState,
    SwipeDirection,
)

__version__ = "0.1.0"

__all__ = [
    "ActionKind",
    "BoundedElement",
    "Bounds",
    "CaptureInactiveError",
    "CoordinateResolver",
    "CorrelationCancelled",
    "CorrelatorRegistry",
    "DispatchTimeout",
    "ErrorCode",
    "EventCaptureBuffer",
    "ExecutionCorrelator",
    "ExecutionResult",
    "FailurePolicy",
    "Flow",
    "FlowBuildReport",
    "FlowBuilder",
    "FlowValidator",
    "GestureKind",
    "HierarchyParser",
    "HierarchySource",
    "ParseError",
    "Point",
    "PortableAction",
    "RawInteractionEvent",
    "RecordingSession",
    "RecordingStatus",
    "ReplayInProgressError",
    "ReplayPipelineError",
    "ReplayState",
    "ScreenshotClickRecorder",
    "SwipeDirection",
    "Transport",
    "TransportUnavailable",
    "ValidationRejected",
    "ValidationResult",
    "estimate_execution_time",
    "event_from_agent_message",
    "generate_flow_summary",
    "optimize_events",
    "parse_hierarchy",
    "repair_identifiers",
    "resolve_element",
    "summarize_results",
    "translate_event",
    "translate_events",
]
