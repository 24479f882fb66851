"""Tests for shared value objects and flow editing."""

import json

import pytest

from gesture_replay.models import (
    ActionKind,
    BoundedElement,
    Bounds,
    Flow,
    GestureKind,
    Point,
    PortableAction,
)
from tests.mocks import make_action, make_event


class TestBounds:
    """Test rectangle geometry."""

    def test_center_and_area(self):
        bounds = Bounds(20, 20, 100, 50)

        assert bounds.center == Point(70, 45)
        assert bounds.area == 5000

    @pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-5, 10)])
    def test_empty(self, width, height):
        assert Bounds(0, 0, width, height).is_empty

    def test_point_distance(self):
        assert Point(0, 0).distance_to(Point(3, 4)) == 5


class TestBoundedElement:
    """Test element helpers."""

    def test_display_name_prefers_label(self):
        element = BoundedElement(type="Button", label="Go", value="v", name="n")
        assert element.display_name() == "Go"

    def test_display_name_falls_back_to_type(self):
        assert BoundedElement(type="Button").display_name() == "Button"

    def test_hidden_element_is_not_hit_candidate(self):
        element = BoundedElement(type="Button", bounds=Bounds(0, 0, 10, 10), visible=False)
        assert not element.is_hit_candidate

    @pytest.mark.parametrize(
        "element_type", ["XCUIElementTypeTextField", "android.widget.EditText"]
    )
    def test_editable(self, element_type):
        assert BoundedElement(type=element_type).is_editable


class TestRawInteractionEvent:
    """Test event accessors."""

    def test_identifier_and_path_come_from_element(self):
        event = make_event(stable_id="ok", path="/A")

        assert event.stable_id == "ok"
        assert event.path_reference == "/A"

    def test_center_uses_element_geometry(self):
        assert make_event(path="/A", x=0, y=0).center() == Point(70, 45)

    def test_center_without_element(self):
        assert make_event(x=5, y=6).center() == Point(5, 6)

    def test_with_stable_id_drops_path(self):
        event = make_event(GestureKind.TEXT_ENTRY, path="/A", value="j")

        repaired = event.with_stable_id("field1")

        assert repaired.stable_id == "field1"
        assert repaired.path_reference is None
        assert repaired.value == "j"
        assert event.path_reference == "/A"


class TestPortableAction:
    """Test action serialization."""

    def test_dict_round_trip(self):
        action = PortableAction(
            kind=ActionKind.SWIPE,
            direction="left",
            distance=300.0,
            order=4,
            description="Swipe left (300px)",
            timestamp=1700000000000.0,
        )
        assert PortableAction.from_dict(action.to_dict()) == action

    def test_from_dict_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            PortableAction.from_dict({"kind": "shake"})


class TestFlow:
    """Test flow editing and export."""

    @pytest.fixture
    def flow(self, replay_actions):
        return Flow(name="Login", actions=list(replay_actions), device_id="emulator-5554")

    def test_move_action_renumbers(self, flow):
        flow.move_action(2, 0)

        assert [a.target_reference for a in flow.actions] == [
            "loginButton",
            "usernameField",
            "usernameField",
        ]
        assert [a.order for a in flow.actions] == [0, 1, 2]

    def test_move_clamps_destination(self, flow):
        flow.move_action(0, 99)
        assert flow.actions[-1].kind is ActionKind.TAP
        assert flow.actions[-1].target_reference == "usernameField"

    def test_move_invalid_index(self, flow):
        with pytest.raises(IndexError):
            flow.move_action(5, 0)

    def test_remove_action(self, flow):
        removed = flow.remove_action(1)

        assert removed.kind is ActionKind.TEXT_ENTRY
        assert [a.order for a in flow.actions] == [0, 1]

    def test_edit_touches_updated_at(self, flow):
        flow.updated_at = 0
        flow.rename("Sign in")

        assert flow.name == "Sign in"
        assert flow.updated_at > 0

    def test_duplicate(self, flow):
        copy = flow.duplicate()

        assert copy.id != flow.id
        assert copy.name == "Login (Copy)"
        assert copy.actions == flow.actions
        copy.remove_action(0)
        assert len(flow) == 3

    def test_dict_round_trip(self, flow):
        flow.tags = ["smoke"]

        restored = Flow.from_dict(flow.to_dict())

        assert restored.id == flow.id
        assert restored.actions == flow.actions
        assert restored.tags == ["smoke"]
        assert restored.created_at == flow.created_at

    def test_export_json(self, flow):
        data = json.loads(flow.export_json())

        assert data["name"] == "Login"
        assert data["device_id"] == "emulator-5554"
        assert [a["kind"] for a in data["actions"]] == ["tap", "textEntry", "tap"]

    def test_to_dict_is_a_snapshot(self, flow):
        snapshot = flow.to_dict()
        flow.actions.append(make_action(order=3))

        assert len(snapshot["actions"]) == 3
