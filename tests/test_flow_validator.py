"""Tests for flow validation and filtering."""

import pytest

from gesture_replay.error_handler import ErrorCode, ValidationRejected
from gesture_replay.flow_validator import FlowValidator, has_locatable_target
from gesture_replay.models import ActionKind
from tests.mocks import make_action


class TestHasLocatableTarget:
    """Test the per-action target rule."""

    @pytest.mark.parametrize("kind", [ActionKind.TAP, ActionKind.LONG_PRESS, ActionKind.TEXT_ENTRY])
    def test_targeted_kinds_need_reference(self, kind):
        assert has_locatable_target(make_action(kind, "field"))
        assert not has_locatable_target(make_action(kind, ""))
        assert not has_locatable_target(make_action(kind, "   "))

    @pytest.mark.parametrize("kind", [ActionKind.SWIPE, ActionKind.SCROLL, ActionKind.NOOP])
    def test_screen_level_kinds_need_nothing(self, kind):
        assert has_locatable_target(make_action(kind, ""))


class TestFlowValidator:
    """Test whole-flow validation."""

    def test_empty_flow_is_invalid(self, flow_validator):
        result = flow_validator.validate([])

        assert not result.is_valid
        assert result.errors == ["Flow has no actions"]

    def test_valid_flow_is_returned_unchanged(self, flow_validator, replay_actions):
        result = flow_validator.validate(replay_actions)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.sanitized_value == replay_actions

    def test_untargeted_tap_is_dropped_with_warning(self, flow_validator, replay_actions):
        actions = [
            replay_actions[0],
            make_action(ActionKind.TAP, "", order=1),
            replay_actions[1].renumbered(2),
        ]

        result = flow_validator.validate(actions)

        assert result.is_valid
        assert [a.target_reference for a in result.sanitized_value] == [
            "usernameField",
            "usernameField",
        ]
        assert [a.order for a in result.sanitized_value] == [0, 1]
        assert result.dropped == [actions[1]]
        assert result.warnings == ["Dropped action 2 (tap): no target reference"]

    def test_all_actions_dropped_is_invalid(self, flow_validator):
        actions = [make_action(ActionKind.TAP, ""), make_action(ActionKind.TEXT_ENTRY, "", "x")]

        result = flow_validator.validate(actions)

        assert not result.is_valid
        assert result.errors == ["Flow has no actions with a locatable target"]
        assert len(result.dropped) == 2

    def test_swipe_only_flow_is_valid(self, flow_validator):
        result = flow_validator.validate([make_action(ActionKind.SWIPE, "")])
        assert result.is_valid

    def test_long_flow_warning(self):
        validator = FlowValidator(long_flow_threshold=3)
        actions = [make_action(ActionKind.SCROLL, "", order=i) for i in range(4)]

        result = validator.validate(actions)

        assert result.is_valid
        assert any("very long" in w for w in result.warnings)

    def test_empty_text_entry_warning(self, flow_validator):
        result = flow_validator.validate([make_action(ActionKind.TEXT_ENTRY, "field")])
        assert result.warnings == ["1 text entry action(s) have no value"]

    def test_placeholder_warning(self, flow_validator):
        result = flow_validator.validate([make_action(ActionKind.NOOP, "")])
        assert result.warnings == ["1 unsupported gesture(s) kept as no-op placeholders"]

    def test_near_duplicate_taps_warning(self, flow_validator):
        actions = [
            make_action(ActionKind.TAP, "a", order=0, timestamp=1000),
            make_action(ActionKind.TAP, "b", order=1, timestamp=1050),
            make_action(ActionKind.TAP, "c", order=2, timestamp=1500),
        ]

        result = flow_validator.validate(actions)

        assert result.warnings == ["Actions 1 and 2 are very close in time (possible duplicate)"]

    def test_taps_without_timestamps_are_not_compared(self, flow_validator):
        actions = [make_action(ActionKind.TAP, "a"), make_action(ActionKind.TAP, "b", order=1)]
        assert flow_validator.validate(actions).warnings == []

    def test_to_dict(self, flow_validator, replay_actions):
        data = flow_validator.validate(replay_actions).to_dict()

        assert data["is_valid"] is True
        assert len(data["actions"]) == 3
        assert data["dropped"] == []


class TestValidateOrRaise:
    """Test the raising variant."""

    def test_returns_usable_actions(self, flow_validator, replay_actions):
        assert flow_validator.validate_or_raise(replay_actions) == replay_actions

    def test_raises_with_errors(self, flow_validator):
        with pytest.raises(ValidationRejected) as exc_info:
            flow_validator.validate_or_raise([make_action(ActionKind.TAP, "")])

        error = exc_info.value
        assert error.error_code is ErrorCode.VALIDATION_REJECTED
        assert error.errors == ["Flow has no actions with a locatable target"]
        assert error.warnings == ["Dropped action 1 (tap): no target reference"]
