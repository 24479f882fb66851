"""Pydantic models for MCP tool parameters."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import (
    MAX_HIERARCHY_DEPTH,
    REPAIR_DISTANCE_TOLERANCE,
    REPAIR_LOOKAHEAD_WINDOW,
)


class ParseHierarchyParams(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "document": '<hierarchy><node class="android.widget.Button" '
                    'bounds="[0,0][100,50]" resource-id="com.app:id/ok"/></hierarchy>'
                },
                {
                    "document": '{"type": "Window", "frame": '
                    '{"x": 0, "y": 0, "width": 390, "height": 844}}',
                    "limit": 20,
                },
            ]
        }
    )
    document: str = Field(
        description="UI hierarchy as XML, JSON or a view debug description"
    )
    max_depth: int = Field(
        default=MAX_HIERARCHY_DEPTH, ge=1, le=200, description="Traversal depth cap"
    )
    limit: Optional[int] = Field(
        default=None, ge=1, description="Maximum number of elements to return"
    )


class ResolvePointParams(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"document": "<AppiumAUT>...</AppiumAUT>", "x": 50, "y": 40},
                {
                    "document": "<hierarchy>...</hierarchy>",
                    "x": 540,
                    "y": 1600,
                    "include_candidates": True,
                },
            ]
        }
    )
    document: str = Field(description="UI hierarchy to hit-test against")
    x: float = Field(ge=0, description="X coordinate in device pixels")
    y: float = Field(ge=0, description="Y coordinate in device pixels")
    include_candidates: bool = Field(
        default=False, description="Also list every element containing the point"
    )


class BuildFlowParams(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "Login",
                    "platform": "ios",
                    "events": [
                        {
                            "gestureType": "tap",
                            "timestamp": 1700000000.0,
                            "coordinates": {"x": 50, "y": 40},
                            "element": {"xpath": "/Window[1]/TextField[1]"},
                        },
                        {
                            "gestureType": "type",
                            "timestamp": 1700000001.0,
                            "coordinates": {"x": 50, "y": 40},
                            "value": "john",
                            "element": {"accessibilityIdentifier": "username"},
                        },
                    ],
                }
            ]
        }
    )
    name: str = Field(min_length=1, description="Flow name")
    events: List[Dict[str, Any]] = Field(
        description="Captured touch messages in agent format, oldest first"
    )
    description: Optional[str] = Field(default=None, description="Flow description")
    device_id: Optional[str] = Field(default=None, description="Source device ID")
    device_name: Optional[str] = Field(default=None, description="Source device name")
    platform: Optional[str] = Field(default=None, description="Source platform")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    repair_tolerance: float = Field(
        default=REPAIR_DISTANCE_TOLERANCE,
        gt=0,
        description="Max center distance (px) for identifier repair",
    )
    repair_window: int = Field(
        default=REPAIR_LOOKAHEAD_WINDOW,
        ge=1,
        le=50,
        description="Number of later events scanned for identifier repair",
    )
    timestamp_unit: Literal["auto", "s", "ms"] = Field(
        default="auto",
        description=(
            "Unit of event timestamps. 'auto' treats values below 1e11 as epoch "
            "seconds; use 'ms' for relative millisecond clocks"
        ),
    )


class FlowActionsParams(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "actions": [
                        {"kind": "tap", "target_reference": "loginButton", "order": 0},
                        {
                            "kind": "textEntry",
                            "target_reference": "username",
                            "value": "john",
                            "order": 1,
                        },
                    ]
                }
            ]
        }
    )
    actions: List[Dict[str, Any]] = Field(
        description="Portable actions as produced by build_flow"
    )


class ErrorReportParams(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{}, {"history_limit": 5, "clear": True}]
        }
    )
    history_limit: int = Field(
        default=20, ge=1, le=200, description="Number of recent errors to return"
    )
    clear: bool = Field(
        default=False, description="Reset the history and counters after reporting"
    )
