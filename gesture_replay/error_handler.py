"""Error taxonomy and response formatting for the gesture replay pipeline."""

import logging
import traceback
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ErrorCode(Enum):
    """Standardized error codes for the recording-to-replay pipeline."""

    # Hierarchy Parsing Errors (1000-1099)
    PARSE_EMPTY_DOCUMENT = "PARSE_1000"
    PARSE_MALFORMED_DOCUMENT = "PARSE_1001"
    PARSE_UNSUPPORTED_SHAPE = "PARSE_1002"

    # Resolution and Repair Misses (1100-1199)
    # Expected outcomes: logged, never raised.
    RESOLUTION_MISS = "RESOLVE_1100"
    REPAIR_MISS = "REPAIR_1101"

    # Capture Errors (1200-1299)
    CAPTURE_INACTIVE = "CAPTURE_1200"
    HIERARCHY_FETCH_FAILED = "CAPTURE_1201"

    # Dispatch Errors (1300-1399)
    DISPATCH_TIMEOUT = "DISPATCH_1300"
    TRANSPORT_UNAVAILABLE = "DISPATCH_1301"
    CORRELATION_CANCELLED = "DISPATCH_1302"
    REPLAY_IN_PROGRESS = "DISPATCH_1303"
    ACTION_FAILED = "DISPATCH_1304"

    # Validation Errors (1400-1499)
    VALIDATION_REJECTED = "VALIDATION_1400"
    INVALID_PARAMETER = "VALIDATION_1401"

    # Generic Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorDetails:
    """Detailed error information structure."""

    code: ErrorCode
    message: str
    context: Dict[str, Any]
    timestamp: datetime
    severity: str  # 'low', 'medium', 'high', 'critical'
    recovery_suggestion: Optional[str] = None
    debug_info: Optional[Dict[str, Any]] = None


class ReplayPipelineError(Exception):
    """Base exception class for pipeline errors."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "recovery_suggestions": self.recovery_suggestions,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class ParseError(ReplayPipelineError):
    """Hierarchy document could not be parsed at all."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: ErrorCode = ErrorCode.PARSE_MALFORMED_DOCUMENT,
    ):
        super().__init__(error_code, message, details)


class CaptureInactiveError(ReplayPipelineError):
    """Raised when a capture operation requires an active recording."""

    def __init__(self, message: str = "Recording session is not active"):
        super().__init__(ErrorCode.CAPTURE_INACTIVE, message)


class DispatchTimeout(ReplayPipelineError):
    """Remote agent did not answer within the action budget."""

    def __init__(self, action_id: str, timeout_seconds: float):
        super().__init__(
            ErrorCode.DISPATCH_TIMEOUT,
            f"Action {action_id} timed out after {int(timeout_seconds * 1000)}ms",
            {"action_id": action_id, "timeout_seconds": timeout_seconds},
        )
        self.action_id = action_id


class TransportUnavailable(ReplayPipelineError):
    """No channel to send commands on."""

    def __init__(self, message: str = "Transport not available"):
        super().__init__(ErrorCode.TRANSPORT_UNAVAILABLE, message)


class CorrelationCancelled(ReplayPipelineError):
    """A pending correlation was cleared before its result arrived."""

    def __init__(self, action_id: str, reason: str = "Executor cleared"):
        super().__init__(
            ErrorCode.CORRELATION_CANCELLED,
            reason,
            {"action_id": action_id},
        )
        self.action_id = action_id


class ReplayInProgressError(ReplayPipelineError):
    """A second replay was started against a target that is already replaying."""

    def __init__(self, device_id: str):
        super().__init__(
            ErrorCode.REPLAY_IN_PROGRESS,
            f"A replay is already running for device {device_id}",
            {"device_id": device_id},
        )


class ValidationRejected(ReplayPipelineError):
    """Flow was rejected as a whole; carries the descriptive error list."""

    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        super().__init__(
            ErrorCode.VALIDATION_REJECTED,
            "Flow validation failed: " + "; ".join(errors),
            {"errors": list(errors), "warnings": list(warnings or [])},
        )
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class ErrorHandler:
    """Centralized error handling and response formatting."""

    def __init__(self, logger: Optional[logging.Logger] = None, history_limit: int = 200):
        self.logger = logger or logging.getLogger(__name__)
        self.history_limit = history_limit
        self._error_history: List[ErrorDetails] = []
        self.error_counts: Dict[ErrorCode, int] = {}
        self.last_errors: Dict[ErrorCode, ReplayPipelineError] = {}

    def create_error_response(
        self,
        error: Union[Exception, ErrorCode],
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestion: Optional[str] = None,
        include_debug: bool = False,
    ) -> Dict[str, Any]:
        """Create standardized error response format."""

        if isinstance(error, ReplayPipelineError):
            error_details = ErrorDetails(
                code=error.error_code,
                message=error.message,
                context=dict(error.details),
                timestamp=error.timestamp,
                severity="medium",
                recovery_suggestion=(
                    error.recovery_suggestions[0]
                    if error.recovery_suggestions
                    else recovery_suggestion
                ),
            )
        elif isinstance(error, ErrorCode):
            error_details = ErrorDetails(
                code=error,
                message=message or self._get_default_message(error),
                context=context or {},
                timestamp=datetime.now(timezone.utc),
                severity="medium",
                recovery_suggestion=recovery_suggestion,
            )
        else:
            error_details = ErrorDetails(
                code=ErrorCode.UNKNOWN_ERROR,
                message=message or str(error),
                context=context or {"exception_type": type(error).__name__},
                timestamp=datetime.now(timezone.utc),
                severity="high",
                recovery_suggestion=recovery_suggestion,
            )

        if include_debug and isinstance(error, Exception):
            error_details.debug_info = {
                "traceback": "".join(
                    traceback.format_exception(type(error), error, error.__traceback__)
                ),
            }

        self._log_error(error_details)
        self._remember(error_details)

        response: Dict[str, Any] = {
            "success": False,
            "error": error_details.message,
            "error_code": error_details.code.value,
            "timestamp": error_details.timestamp.isoformat(),
            "severity": error_details.severity,
        }

        if error_details.context:
            response["context"] = error_details.context

        if error_details.recovery_suggestion:
            response["recovery_suggestion"] = error_details.recovery_suggestion

        if error_details.debug_info:
            response["debug_info"] = error_details.debug_info

        return response

    def create_success_response(
        self, data: Dict[str, Any], message: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create standardized success response format."""
        response: Dict[str, Any] = {
            "success": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if message:
            response["message"] = message

        response.update(data)
        return response

    def handle_error(
        self, error: ReplayPipelineError, context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Count, log and format a pipeline error."""
        self.error_counts[error.error_code] = self.error_counts.get(error.error_code, 0) + 1
        self.last_errors[error.error_code] = error

        error_details = ErrorDetails(
            code=error.error_code,
            message=error.message,
            context=dict(error.details),
            timestamp=error.timestamp,
            severity="medium",
        )
        if context:
            error_details.context.update(context)

        self._log_error(error_details)
        self._remember(error_details)

        recovery_suggestions = get_recovery_suggestions(error.error_code, context=context)
        if error.recovery_suggestions:
            recovery_suggestions = error.recovery_suggestions + recovery_suggestions

        response: Dict[str, Any] = {
            "success": False,
            "error_code": error.error_code.value,
            "error": error.message,
            "timestamp": error.timestamp.isoformat(),
            "recovery_suggestions": recovery_suggestions,
        }

        if error.details:
            response["details"] = error.details

        if context:
            response["context"] = context

        return response

    def get_error_history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get recent error history."""
        return [asdict(error) for error in self._error_history[-limit:]]

    def clear_error_history(self) -> None:
        self._error_history.clear()
        self.error_counts.clear()
        self.last_errors.clear()

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics."""
        if not self.error_counts:
            return {
                "total_errors": 0,
                "unique_error_types": 0,
                "most_common_error": None,
            }

        most_common_code, count = max(self.error_counts.items(), key=lambda x: x[1])
        return {
            "total_errors": sum(self.error_counts.values()),
            "unique_error_types": len(self.error_counts),
            "most_common_error": {"error_code": most_common_code, "count": count},
        }

    def _remember(self, error_details: ErrorDetails) -> None:
        self._error_history.append(error_details)
        if len(self._error_history) > self.history_limit:
            del self._error_history[: -self.history_limit]

    def _get_default_message(self, error_code: ErrorCode) -> str:
        messages = {
            ErrorCode.PARSE_EMPTY_DOCUMENT: "Hierarchy document is empty.",
            ErrorCode.PARSE_MALFORMED_DOCUMENT: "Hierarchy document could not be parsed.",
            ErrorCode.RESOLUTION_MISS: "No element contains the requested point.",
            ErrorCode.REPAIR_MISS: "No stable identifier found within the lookahead window.",
            ErrorCode.CAPTURE_INACTIVE: "Recording session is not active.",
            ErrorCode.DISPATCH_TIMEOUT: "Remote agent did not answer in time.",
            ErrorCode.TRANSPORT_UNAVAILABLE: "No transport channel available.",
            ErrorCode.VALIDATION_REJECTED: "Flow has no replayable actions.",
            ErrorCode.INVALID_PARAMETER: "One or more parameters are invalid.",
        }
        return messages.get(error_code, f"Operation failed with error: {error_code.value}")

    def _log_error(self, error_details: ErrorDetails) -> None:
        log_level_map = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL,
        }
        level = log_level_map.get(error_details.severity, logging.ERROR)

        log_message = f"[{error_details.code.value}] {error_details.message}"
        if error_details.context:
            log_message += f" | Context: {error_details.context}"

        self.logger.log(level, log_message)


RECOVERY_SUGGESTIONS = {
    ErrorCode.PARSE_EMPTY_DOCUMENT: [
        "Refresh the hierarchy snapshot",
        "Ensure the target app is in the foreground",
    ],
    ErrorCode.PARSE_MALFORMED_DOCUMENT: [
        "Refresh the hierarchy snapshot",
        "Check that the agent returned a complete document",
        "Fall back to coordinate-based capture for this click",
    ],
    ErrorCode.DISPATCH_TIMEOUT: [
        "Check that the device agent is still connected",
        "Increase the action timeout",
        "Increase the settle delay if the screen was still animating",
    ],
    ErrorCode.TRANSPORT_UNAVAILABLE: [
        "Reconnect the device agent",
        "Verify the transport was opened before replay",
    ],
    ErrorCode.CORRELATION_CANCELLED: [
        "Replay was torn down; start it again once the session is ready",
    ],
    ErrorCode.REPLAY_IN_PROGRESS: [
        "Wait for the current replay to finish",
        "Cancel the running replay before starting another",
    ],
    ErrorCode.VALIDATION_REJECTED: [
        "Record the flow again with the target elements visible",
        "Remove actions that have no locatable target",
    ],
    ErrorCode.CAPTURE_INACTIVE: [
        "Start or resume the recording session before capturing",
    ],
}


def get_recovery_suggestions(
    error_code: ErrorCode, context: Optional[Dict[str, Any]] = None
) -> List[str]:
    """Get recovery suggestions for specific error codes."""
    base_suggestions = RECOVERY_SUGGESTIONS.get(
        error_code,
        [
            "Check the device agent connection",
            "Retry the operation",
        ],
    )

    if context and "timeout" in context:
        return ["Increase timeout value"] + base_suggestions

    return list(base_suggestions)


# Global error handler instance
error_handler = ErrorHandler()
