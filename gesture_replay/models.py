"""Value objects shared by every stage of the recording-to-replay pipeline."""

import json
import math
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


def now_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000


class GestureKind(Enum):
    TAP = "tap"
    DOUBLE_TAP = "doubleTap"
    LONG_PRESS = "longPress"
    SWIPE = "swipe"
    SCROLL = "scroll"
    PINCH = "pinch"
    TEXT_ENTRY = "textEntry"
    UNKNOWN = "unknown"


TAP_FAMILY = (GestureKind.TAP, GestureKind.DOUBLE_TAP, GestureKind.LONG_PRESS)


class ActionKind(Enum):
    TAP = "tap"
    LONG_PRESS = "longPress"
    TEXT_ENTRY = "textEntry"
    SWIPE = "swipe"
    SCROLL = "scroll"
    NOOP = "noop"


# Actions that are unusable on replay without a locatable target.
TARGETED_ACTIONS = (ActionKind.TAP, ActionKind.LONG_PRESS, ActionKind.TEXT_ENTRY)


class SwipeDirection(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class FailurePolicy(Enum):
    """What the correlator does after a failed action."""

    ABORT_ON_FIRST_FAILURE = "abort"
    CONTINUE_ON_FAILURE = "continue"


class ReplayState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class CorrelationState(Enum):
    QUEUED = "queued"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"
    TIMED_OUT = "timedOut"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True)
class Bounds:
    """Absolute rectangle in device pixels."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        """Inclusive hit-test."""
        return (
            self.x <= x <= self.x + self.width
            and self.y <= y <= self.y + self.height
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class BoundedElement:
    """One UI element candidate in the canonical shape."""

    type: str
    bounds: Bounds = field(default_factory=Bounds)
    name: Optional[str] = None
    label: Optional[str] = None
    value: Optional[str] = None
    stable_id: Optional[str] = None
    enabled: bool = True
    visible: bool = True
    path_reference: Optional[str] = None

    @property
    def is_hit_candidate(self) -> bool:
        return self.visible and not self.bounds.is_empty

    @property
    def is_editable(self) -> bool:
        lowered = self.type.lower()
        return "textfield" in lowered or "edittext" in lowered

    def display_name(self) -> str:
        return self.label or self.value or self.name or self.type

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "label": self.label,
            "value": self.value,
            "stable_id": self.stable_id,
            "bounds": self.bounds.to_dict(),
            "enabled": self.enabled,
            "visible": self.visible,
            "path_reference": self.path_reference,
        }


@dataclass(frozen=True)
class RawInteractionEvent:
    """One captured gesture. Timestamps are milliseconds since the epoch."""

    timestamp: float
    gesture_kind: GestureKind
    coordinates: Point
    resolved_element: Optional[BoundedElement] = None
    value: Optional[str] = None
    direction: Optional[SwipeDirection] = None
    distance: Optional[float] = None
    duration_ms: Optional[int] = None
    raw_gesture: Optional[str] = None
    description: Optional[str] = None

    @property
    def stable_id(self) -> Optional[str]:
        if self.resolved_element is None:
            return None
        return self.resolved_element.stable_id or None

    @property
    def path_reference(self) -> Optional[str]:
        if self.resolved_element is None:
            return None
        return self.resolved_element.path_reference or None

    def center(self) -> Point:
        """Element center when the element has geometry, else the raw coordinates."""
        if self.resolved_element is not None and not self.resolved_element.bounds.is_empty:
            return self.resolved_element.bounds.center
        return self.coordinates

    def with_stable_id(self, stable_id: str) -> "RawInteractionEvent":
        """Copy carrying a repaired identifier; the identifier replaces the path."""
        element = replace(self.resolved_element, stable_id=stable_id, path_reference=None)
        return replace(self, resolved_element=element)

    def with_value(self, value: Optional[str]) -> "RawInteractionEvent":
        return replace(self, value=value)


@dataclass(frozen=True)
class PortableAction:
    """Execution-technology-agnostic instruction."""

    kind: ActionKind
    target_reference: str = ""
    value: str = ""
    direction: Optional[str] = None
    distance: Optional[float] = None
    order: int = 0
    description: str = ""
    timestamp: Optional[float] = None

    def renumbered(self, order: int) -> "PortableAction":
        return replace(self, order=order)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "target_reference": self.target_reference,
            "value": self.value,
            "direction": self.direction,
            "distance": self.distance,
            "order": self.order,
            "description": self.description,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortableAction":
        return cls(
            kind=ActionKind(data["kind"]),
            target_reference=data.get("target_reference") or "",
            value=data.get("value") or "",
            direction=data.get("direction"),
            distance=data.get("distance"),
            order=int(data.get("order", 0)),
            description=data.get("description") or "",
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one dispatched (or skipped) action."""

    action_id: str
    success: bool
    error: Optional[str] = None
    duration_ms: float = 0
    order: Optional[int] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_id": self.action_id,
            "success": self.success,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "order": self.order,
            "skipped": self.skipped,
        }


@dataclass
class Flow:
    """Ordered, named collection of portable actions plus provenance."""

    name: str
    actions: List[PortableAction] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"flow-{uuid.uuid4().hex[:12]}")
    description: Optional[str] = None
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    platform: Optional[str] = None
    created_at: float = field(default_factory=now_ms)
    updated_at: float = field(default_factory=now_ms)
    tags: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.actions)

    def _touch(self) -> None:
        self.actions = [action.renumbered(i) for i, action in enumerate(self.actions)]
        self.updated_at = now_ms()

    def move_action(self, from_index: int, to_index: int) -> None:
        """Move one action to a new position and renumber."""
        if not 0 <= from_index < len(self.actions):
            raise IndexError(f"No action at position {from_index}")
        action = self.actions.pop(from_index)
        to_index = max(0, min(to_index, len(self.actions)))
        self.actions.insert(to_index, action)
        self._touch()

    def remove_action(self, index: int) -> PortableAction:
        if not 0 <= index < len(self.actions):
            raise IndexError(f"No action at position {index}")
        removed = self.actions.pop(index)
        self._touch()
        return removed

    def rename(self, name: str) -> None:
        self.name = name
        self.updated_at = now_ms()

    def duplicate(self) -> "Flow":
        timestamp = now_ms()
        return replace(
            self,
            id=f"flow-{uuid.uuid4().hex[:12]}",
            name=f"{self.name} (Copy)",
            actions=list(self.actions),
            tags=list(self.tags),
            created_at=timestamp,
            updated_at=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Immutable-by-convention snapshot handed to persistence."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "platform": self.platform,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "tags": list(self.tags),
            "actions": [action.to_dict() for action in self.actions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Flow":
        flow = cls(
            name=data["name"],
            actions=[PortableAction.from_dict(a) for a in data.get("actions", [])],
            description=data.get("description"),
            device_id=data.get("device_id"),
            device_name=data.get("device_name"),
            platform=data.get("platform"),
            tags=list(data.get("tags", [])),
        )
        if data.get("id"):
            flow.id = data["id"]
        if data.get("created_at") is not None:
            flow.created_at = data["created_at"]
        if data.get("updated_at") is not None:
            flow.updated_at = data["updated_at"]
        return flow

    def export_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
