"""Structural validation of a translated action sequence.

Actions that cannot be located on replay are filtered out rather than
reported; everything else that looks suspicious only produces warnings.
"""

import logging
from typing import Any, List, Optional, Sequence

from .config import LONG_FLOW_THRESHOLD, NEAR_DUPLICATE_TAP_MS
from .error_handler import ValidationRejected
from .models import TARGETED_ACTIONS, ActionKind, PortableAction

logger = logging.getLogger(__name__)


class ValidationResult:
    """Validation result with detailed feedback."""

    def __init__(
        self,
        is_valid: bool,
        sanitized_value: Any = None,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ):
        """Initialize validation result with status and optional details.

        Args:
            is_valid: Whether the validation passed
            sanitized_value: The filtered action list
            errors: List of validation error messages
            warnings: List of validation warning messages
        """
        self.is_valid = is_valid
        self.sanitized_value = sanitized_value
        self.errors = errors or []
        self.warnings = warnings or []
        self.dropped: List[PortableAction] = []

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "dropped": [action.to_dict() for action in self.dropped],
            "actions": [action.to_dict() for action in self.sanitized_value or []],
        }


def has_locatable_target(action: PortableAction) -> bool:
    if action.kind not in TARGETED_ACTIONS:
        return True
    return bool(action.target_reference and action.target_reference.strip())


class FlowValidator:
    """Check an action list before it is treated as replayable."""

    def __init__(
        self,
        long_flow_threshold: int = LONG_FLOW_THRESHOLD,
        near_duplicate_ms: float = NEAR_DUPLICATE_TAP_MS,
    ) -> None:
        self.long_flow_threshold = long_flow_threshold
        self.near_duplicate_ms = near_duplicate_ms

    def validate(self, actions: Sequence[PortableAction]) -> ValidationResult:
        """Validate and filter ``actions``.

        ``sanitized_value`` holds the usable actions. When nothing had to be
        dropped it is the input unchanged; otherwise the survivors are
        renumbered so that ``order`` stays contiguous.
        """
        result = ValidationResult(True, sanitized_value=[])

        if not actions:
            result.add_error("Flow has no actions")
            return result

        kept: List[PortableAction] = []
        for position, action in enumerate(actions):
            if has_locatable_target(action):
                kept.append(action)
                continue
            result.dropped.append(action)
            message = (
                f"Dropped action {position + 1} ({action.kind.value}): no target reference"
            )
            logger.warning(message)
            result.add_warning(message)

        if not kept:
            result.add_error("Flow has no actions with a locatable target")
            return result

        if result.dropped:
            kept = [action.renumbered(order) for order, action in enumerate(kept)]
            result.sanitized_value = kept
        else:
            result.sanitized_value = list(actions)

        self._collect_warnings(result.sanitized_value, result)
        return result

    def validate_or_raise(self, actions: Sequence[PortableAction]) -> List[PortableAction]:
        """Return the usable actions or raise ``ValidationRejected``."""
        result = self.validate(actions)
        if not result.is_valid:
            raise ValidationRejected(result.errors, result.warnings)
        return result.sanitized_value

    def _collect_warnings(
        self, actions: Sequence[PortableAction], result: ValidationResult
    ) -> None:
        if len(actions) > self.long_flow_threshold:
            result.add_warning(
                f"Flow is very long (>{self.long_flow_threshold} actions). "
                "Consider breaking into smaller flows."
            )

        empty_inputs = sum(
            1 for a in actions if a.kind is ActionKind.TEXT_ENTRY and not a.value
        )
        if empty_inputs:
            result.add_warning(f"{empty_inputs} text entry action(s) have no value")

        placeholders = sum(1 for a in actions if a.kind is ActionKind.NOOP)
        if placeholders:
            result.add_warning(
                f"{placeholders} unsupported gesture(s) kept as no-op placeholders"
            )

        for position in range(1, len(actions)):
            previous, current = actions[position - 1], actions[position]
            if previous.kind is not ActionKind.TAP or current.kind is not ActionKind.TAP:
                continue
            if previous.timestamp is None or current.timestamp is None:
                continue
            if current.timestamp - previous.timestamp < self.near_duplicate_ms:
                result.add_warning(
                    f"Actions {position} and {position + 1} are very close in time "
                    "(possible duplicate)"
                )
