"""Tests for hierarchy document parsing."""

import json

import pytest

from gesture_replay.error_handler import ErrorCode, ParseError
from gesture_replay.hierarchy_parser import (
    HierarchyParser,
    parse_bounds_string,
    parse_hierarchy,
)
from gesture_replay.models import Bounds
from tests.data.sample_hierarchies import (
    AGENT_JSON_TREE,
    ANDROID_LOGIN_XML,
    MALFORMED_ANDROID_XML,
    NESTED_BUTTON_XML,
    VIEW_DEBUG_DESCRIPTION,
    XCUITEST_LOGIN_XML,
    deep_json_tree,
)


def _by_id(elements):
    return {e.stable_id: e for e in elements if e.stable_id}


class TestParseBoundsString:
    """Test Android bounds string parsing."""

    def test_valid_bounds(self):
        assert parse_bounds_string("[140,400][940,480]") == Bounds(140, 400, 800, 80)

    def test_reversed_corners_are_normalized(self):
        assert parse_bounds_string("[940,480][140,400]") == Bounds(140, 400, 800, 80)

    @pytest.mark.parametrize("raw", ["", "   ", "[1,2][3]", "[a,b][c,d]"])
    def test_malformed_bounds_degrade_to_empty(self, raw):
        assert parse_bounds_string(raw).is_empty


class TestXCUITestXML:
    """Test WebDriver/XCUITest XML documents."""

    def test_visible_sized_elements_are_candidates(self, parser):
        """Hidden and zero-size nodes are discarded."""
        elements = parser.parse(XCUITEST_LOGIN_XML)

        ids = [e.stable_id for e in elements]
        assert "usernameField" in ids
        assert "loginButton" in ids
        assert "secretButton" not in ids
        assert "spacer" not in ids
        assert len(elements) == 5

    def test_geometry_and_attributes(self, parser):
        login = _by_id(parser.parse(XCUITEST_LOGIN_XML))["loginButton"]

        assert login.bounds == Bounds(20, 340, 350, 50)
        assert login.label == "Log In"
        assert login.type == "XCUIElementTypeButton"
        assert login.enabled is True

    def test_positional_path_for_unnamed_element(self, parser):
        """Same-typed siblings are numbered so the path stays unambiguous."""
        unnamed = [e for e in parser.parse(XCUITEST_LOGIN_XML) if e.value == "Email"][0]

        assert unnamed.stable_id is None
        assert unnamed.path_reference == (
            "/AppiumAUT[1]/XCUIElementTypeApplication[1]/XCUIElementTypeWindow[1]"
            "/XCUIElementTypeTextField[2]"
        )

    def test_document_order_is_preserved(self, parser):
        elements = parser.parse(NESTED_BUTTON_XML)
        assert [e.stable_id for e in elements] == ["Demo", "innerButton"]


class TestAndroidXML:
    """Test uiautomator dumps."""

    def test_resource_ids_and_labels(self, parser):
        elements = _by_id(parser.parse(ANDROID_LOGIN_XML))

        username = elements["com.myapp:id/username_field"]
        assert username.bounds == Bounds(140, 400, 800, 80)
        assert username.label == "Enter username"
        assert username.is_editable

    def test_displayed_false_is_invisible(self, parser):
        ids = _by_id(parser.parse(ANDROID_LOGIN_XML))
        assert "com.myapp:id/hidden" not in ids

    def test_disabled_elements_stay_candidates(self, parser):
        signin = _by_id(parser.parse(ANDROID_LOGIN_XML))["com.myapp:id/signin_button"]
        assert signin.enabled is False
        assert signin.value == "Sign In"

    def test_empty_resource_id_is_not_an_identifier(self, parser):
        root = parser.parse(ANDROID_LOGIN_XML)[0]
        assert root.type == "android.widget.FrameLayout"
        assert root.stable_id is None

    def test_recovers_from_malformed_markup(self, parser):
        """Raw '<' in text and control characters are repaired, not fatal."""
        elements = _by_id(parser.parse(MALFORMED_ANDROID_XML))

        assert elements["com.myapp:id/compare"].value == "a < b"
        assert elements["com.myapp:id/bell"].value == "bell"

    def test_bytes_are_decoded(self, parser):
        assert len(parser.parse(ANDROID_LOGIN_XML.encode("utf-8"))) == 5


class TestAgentJSON:
    """Test dict/JSON trees from an embedded agent."""

    def test_frames_are_relative_to_parent(self, parser):
        email = _by_id(parser.parse(AGENT_JSON_TREE))["emailField"]

        assert email.bounds == Bounds(20, 150, 350, 44)
        assert email.value == "hello"
        assert email.path_reference == "/UIWindow[1]/UIView[1]/UITextField[1]"

    def test_hidden_and_transparent_nodes_are_discarded(self, parser):
        elements = parser.parse(AGENT_JSON_TREE)

        assert "hiddenButton" not in _by_id(elements)
        assert all(e.label != "Faded" for e in elements)

    def test_children_of_hidden_node_are_still_traversed(self, parser):
        submit = [e for e in parser.parse(AGENT_JSON_TREE) if e.label == "Submit"][0]

        assert submit.bounds == Bounds(10, 610, 100, 40)
        assert submit.path_reference == "/UIWindow[1]/UIView[2]/UIButton[1]"

    def test_json_string_matches_mapping(self, parser):
        from_text = parser.parse(json.dumps(AGENT_JSON_TREE))
        assert from_text == parser.parse(AGENT_JSON_TREE)

    def test_absolute_bounds_key(self, parser):
        document = {
            "type": "Window",
            "bounds": {"x": 0, "y": 0, "width": 100, "height": 100},
            "children": [
                {
                    "type": "Button",
                    "identifier": "ok",
                    "bounds": {"x": 30, "y": 30, "width": 10, "height": 10},
                }
            ],
        }
        ok = _by_id(parser.parse(document))["ok"]
        assert ok.bounds == Bounds(30, 30, 10, 10)

    def test_missing_geometry_defaults_to_empty(self, parser):
        document = {"type": "Window", "children": [{"type": "Button", "identifier": "ok"}]}
        assert parser.parse(document) == []


class TestViewDebugDescription:
    """Test indented view hierarchy dumps."""

    def test_parses_nested_frames(self, parser):
        elements = parser.parse(VIEW_DEBUG_DESCRIPTION)

        assert [e.type for e in elements] == ["UIWindow", "UIView", "UITextField", "UILabel"]
        email = elements[2]
        assert email.stable_id == "emailField"
        assert email.value == "hello"
        assert email.bounds == Bounds(20, 150, 350, 44)
        assert email.path_reference == "/UIWindow[1]/UIView[1]/UITextField[1]"

    def test_sibling_after_nested_block(self, parser):
        footer = parser.parse(VIEW_DEBUG_DESCRIPTION)[-1]

        assert footer.bounds == Bounds(16, 600, 200, 20)
        assert footer.enabled is False
        assert footer.path_reference == "/UIWindow[1]/UILabel[1]"


class TestDepthAndFailures:
    """Test depth capping and whole-document failures."""

    def test_depth_beyond_cap_is_truncated(self):
        elements = HierarchyParser(max_depth=30).parse(deep_json_tree(40))

        assert len(elements) == 31
        assert all(e.type == "Level" for e in elements)

    def test_shallow_tree_is_complete(self, parser):
        elements = parser.parse(deep_json_tree(5))
        assert elements[-1].type == "Leaf"

    @pytest.mark.parametrize("document", ["", "   \n  ", b""])
    def test_empty_document(self, parser, document):
        with pytest.raises(ParseError) as exc_info:
            parser.parse(document)
        assert exc_info.value.error_code == ErrorCode.PARSE_EMPTY_DOCUMENT

    def test_unrecoverable_xml(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse("<hierarchy><node></hierarchy")
        assert exc_info.value.error_code == ErrorCode.PARSE_MALFORMED_DOCUMENT
        assert exc_info.value.details["parsing_strategies_tried"] == [
            "direct",
            "cleaned",
            "escaped",
        ]

    def test_invalid_json(self, parser):
        with pytest.raises(ParseError):
            parser.parse('{"type": "Window", ')

    def test_unrecognised_text(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse("ERROR: could not get idle state")
        assert exc_info.value.error_code == ErrorCode.PARSE_UNSUPPORTED_SHAPE

    def test_unsupported_type(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse(42)
        assert exc_info.value.error_code == ErrorCode.PARSE_UNSUPPORTED_SHAPE

    def test_module_level_helper(self):
        assert len(parse_hierarchy(NESTED_BUTTON_XML)) == 2
