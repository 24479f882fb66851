"""Assembly of a captured event sequence into a validated Flow."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .action_translator import generate_flow_summary, translate_events
from .capture import RecordingSession
from .config import (
    DUPLICATE_TAP_WINDOW_MS,
    REPAIR_DISTANCE_TOLERANCE,
    REPAIR_LOOKAHEAD_WINDOW,
)
from .error_handler import ValidationRejected
from .event_optimizer import optimize_events
from .flow_validator import FlowValidator, ValidationResult
from .identifier_repair import repair_identifiers
from .models import Flow, PortableAction, RawInteractionEvent

logger = logging.getLogger(__name__)


@dataclass
class FlowBuildReport:
    flow: Flow
    warnings: List[str] = field(default_factory=list)
    dropped: List[PortableAction] = field(default_factory=list)
    raw_event_count: int = 0
    repaired_count: int = 0
    optimized_count: int = 0

    @property
    def removed_count(self) -> int:
        return self.raw_event_count - self.optimized_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow": self.flow.to_dict(),
            "summary": generate_flow_summary(self.flow.actions),
            "warnings": list(self.warnings),
            "dropped": [action.to_dict() for action in self.dropped],
            "raw_event_count": self.raw_event_count,
            "repaired_count": self.repaired_count,
            "optimized_count": self.optimized_count,
        }


class FlowBuilder:
    """Run repair, optimization, translation and validation in order."""

    def __init__(
        self,
        repair_tolerance: float = REPAIR_DISTANCE_TOLERANCE,
        repair_window: int = REPAIR_LOOKAHEAD_WINDOW,
        duplicate_window_ms: float = DUPLICATE_TAP_WINDOW_MS,
        validator: Optional[FlowValidator] = None,
    ) -> None:
        self.repair_tolerance = repair_tolerance
        self.repair_window = repair_window
        self.duplicate_window_ms = duplicate_window_ms
        self.validator = validator or FlowValidator()

    def build(
        self,
        events: Sequence[RawInteractionEvent],
        name: str,
        session: Optional[RecordingSession] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> FlowBuildReport:
        """Turn raw events into a Flow.

        Raises:
            ValidationRejected: if no action survives validation.
        """
        logger.info(f"Building flow '{name}' from {len(events)} raw events")

        repaired = repair_identifiers(events, self.repair_tolerance, self.repair_window)
        repaired_count = sum(
            1 for before, after in zip(events, repaired) if before is not after
        )
        optimized = optimize_events(repaired, self.duplicate_window_ms)
        actions = translate_events(optimized)

        result = self.validator.validate(actions)
        if not result.is_valid:
            logger.error(f"Flow '{name}' rejected: {'; '.join(result.errors)}")
            raise ValidationRejected(result.errors, result.warnings)

        flow = Flow(
            name=name,
            actions=list(result.sanitized_value),
            description=description,
            tags=list(tags or []),
        )
        if session is not None:
            flow.device_id = session.device_id
            flow.device_name = session.device_name
            flow.platform = session.platform

        for warning in result.warnings:
            logger.warning(f"Flow '{name}': {warning}")
        logger.info(f"Flow '{name}' built: {generate_flow_summary(flow.actions)}")

        return FlowBuildReport(
            flow=flow,
            warnings=list(result.warnings),
            dropped=list(result.dropped),
            raw_event_count=len(events),
            repaired_count=repaired_count,
            optimized_count=len(optimized),
        )

    def revalidate(self, flow: Flow) -> ValidationResult:
        """Re-check an edited flow as a whole; the flow itself is not modified."""
        result = self.validator.validate(flow.actions)
        if not result.is_valid:
            logger.warning(f"Edited flow '{flow.name}' is no longer replayable")
        return result
