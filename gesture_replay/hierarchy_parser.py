"""Element hierarchy parsing.

Turns a raw UI hierarchy document into a flat, document-ordered list of
``BoundedElement`` candidates with absolute bounds. Four vendor shapes are
normalized here so that nothing downstream branches on the source platform:

- WebDriver/XCUITest XML (``x``/``y``/``width``/``height`` attributes)
- Android uiautomator XML (``bounds="[left,top][right,bottom]"``)
- JSON/dict trees pushed by an embedded agent
- indented view-hierarchy debug descriptions (parent-relative frames)
"""

import html
import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import MAX_HIERARCHY_DEPTH
from .error_handler import ErrorCode, ParseError
from .interfaces import HierarchyDocument
from .models import BoundedElement, Bounds

logger = logging.getLogger(__name__)

_DEBUG_LINE = re.compile(r"^[\s|]*<([^:<>]+):\s*(0x[0-9a-fA-F]+)\s*[;>]")
_DEBUG_FRAME = re.compile(
    r"frame\s*=\s*\(([0-9.eE+-]+)\s+([0-9.eE+-]+);\s*([0-9.eE+-]+)\s+([0-9.eE+-]+)\)"
)
_DEBUG_IDENTIFIER = re.compile(r"accessibilityIdentifier\s*=\s*'([^']+)'")
_DEBUG_LABEL = re.compile(r"accessibilityLabel\s*=\s*'([^']+)'")
_DEBUG_TEXT = re.compile(r"\btext\s*=\s*'([^']*)'")
_DEBUG_ALPHA = re.compile(r"alpha\s*=\s*([0-9.]+)")

_WRAPPER_KEYS = ("hierarchy", "root", "AppiumAUT", "tree")
_TYPE_KEYS = ("type", "className", "class", "elementType")
_ID_KEYS = ("stableId", "accessibilityIdentifier", "identifier", "resourceId", "resource-id", "name")
_LABEL_KEYS = ("label", "accessibilityLabel", "contentDescription", "content-desc")
_VALUE_KEYS = ("value", "text")


def _first(mapping: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Non-numeric geometry value {value!r}, using 0")
        return 0.0


def _truthy(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no")


def parse_bounds_string(bounds_str: str) -> Bounds:
    """Parse an Android bounds string '[left,top][right,bottom]'.

    Malformed input degrades to an empty rectangle instead of raising.
    """
    if not bounds_str or not bounds_str.strip():
        return Bounds()

    try:
        clean = bounds_str.replace("[", "").replace("]", ",")
        coords = [int(float(x)) for x in clean.split(",") if x.strip()]
    except ValueError as e:
        logger.warning(f"Failed to parse bounds - invalid numbers in '{bounds_str}': {e}")
        return Bounds()

    if len(coords) != 4:
        logger.warning(f"Expected 4 coordinates in bounds, got {len(coords)}: {bounds_str}")
        return Bounds()

    left, top, right, bottom = coords
    if left > right:
        left, right = right, left
    if top > bottom:
        top, bottom = bottom, top

    return Bounds(x=left, y=top, width=right - left, height=bottom - top)


class HierarchyParser:
    """Normalize vendor hierarchy documents into ``BoundedElement`` lists."""

    def __init__(self, max_depth: int = MAX_HIERARCHY_DEPTH) -> None:
        self.max_depth = max_depth
        self._truncated = False

    def parse(self, document: HierarchyDocument) -> List[BoundedElement]:
        """Parse a hierarchy document of any supported shape.

        Raises:
            ParseError: only when the document as a whole is unusable.
                Partial malformity (bad geometry, odd nodes, excessive depth)
                is skipped.
        """
        self._truncated = False

        if isinstance(document, bytes):
            document = document.decode("utf-8", errors="replace")

        if isinstance(document, (dict, list)):
            elements = self._parse_mapping(document)
        elif isinstance(document, str):
            elements = self._parse_text(document)
        else:
            raise ParseError(
                f"Unsupported hierarchy document type: {type(document).__name__}",
                error_code=ErrorCode.PARSE_UNSUPPORTED_SHAPE,
            )

        if self._truncated:
            logger.info(f"Hierarchy deeper than {self.max_depth} levels was truncated")
        logger.debug(f"Parsed {len(elements)} hit-test candidates")
        return elements

    def _parse_text(self, content: str) -> List[BoundedElement]:
        content = content.strip()
        if not content:
            raise ParseError(
                "Empty or null hierarchy document received",
                error_code=ErrorCode.PARSE_EMPTY_DOCUMENT,
            )

        if content[0] in "{[":
            try:
                return self._parse_mapping(json.loads(content))
            except json.JSONDecodeError as e:
                raise ParseError(
                    f"Hierarchy JSON could not be decoded: {e}",
                    {"content_preview": content[:200]},
                ) from e

        first_line = next(line for line in content.splitlines() if line.strip())
        if _DEBUG_LINE.match(first_line):
            return self._parse_debug_description(content)

        if content.startswith("<"):
            return self._parse_xml(content)

        raise ParseError(
            "Hierarchy document does not start with a recognised structure",
            {"content_preview": content[:200]},
            error_code=ErrorCode.PARSE_UNSUPPORTED_SHAPE,
        )

    # ------------------------------------------------------------------ XML

    def _parse_xml(self, xml_content: str) -> List[BoundedElement]:
        parse_attempts = [
            ("direct", xml_content),
            ("cleaned", self._clean_xml_content(xml_content)),
            ("escaped", self._escape_xml_content(xml_content)),
        ]

        last_error = None
        for strategy, content in parse_attempts:
            try:
                root = ET.fromstring(content)
            except ET.ParseError as e:
                last_error = str(e)
                logger.warning(f"XML parsing failed with '{strategy}' strategy: {e}")
                continue

            if strategy != "direct":
                logger.info(f"XML parsing succeeded using '{strategy}' strategy")
            elements: List[BoundedElement] = []
            self._walk_xml(root, elements, "", 1, 0)
            return elements

        raise ParseError(
            f"XML parsing failed with all recovery strategies. Last error: {last_error}",
            {
                "content_preview": xml_content[:500],
                "parsing_strategies_tried": [strategy for strategy, _ in parse_attempts],
            },
        )

    def _clean_xml_content(self, xml_content: str) -> str:
        """Drop control characters that uiautomator dumps occasionally contain."""
        return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", xml_content)

    def _escape_xml_content(self, xml_content: str) -> str:
        """Escape raw markup inside free-text attributes."""

        def escape_attribute(match: "re.Match[str]") -> str:
            value = html.escape(html.unescape(match.group(2)), quote=True)
            return f'{match.group(1)}="{value}"'

        cleaned = self._clean_xml_content(xml_content)
        return re.sub(
            r'\b(text|content-desc|label|value|name)="([^"]*)"', escape_attribute, cleaned
        )

    def _walk_xml(
        self,
        node: ET.Element,
        elements: List[BoundedElement],
        path_prefix: str,
        position: int,
        depth: int,
    ) -> None:
        if depth > self.max_depth:
            self._truncated = True
            return

        attrs = node.attrib
        element_type = attrs.get("type") or attrs.get("class") or node.tag
        path = f"{path_prefix}/{element_type}[{position}]"

        if all(key in attrs for key in ("x", "y", "width", "height")):
            bounds = Bounds(
                x=_as_float(attrs["x"]),
                y=_as_float(attrs["y"]),
                width=_as_float(attrs["width"]),
                height=_as_float(attrs["height"]),
            )
        elif "bounds" in attrs:
            bounds = parse_bounds_string(attrs["bounds"])
        else:
            bounds = Bounds()

        visible = _truthy(attrs.get("visible"), True) and _truthy(attrs.get("displayed"), True)
        stable_id = _first(attrs, ("name", "resource-id"))

        element = BoundedElement(
            type=element_type,
            bounds=bounds,
            name=stable_id,
            label=_first(attrs, ("label", "content-desc")),
            value=_first(attrs, ("value", "text")),
            stable_id=stable_id,
            enabled=_truthy(attrs.get("enabled"), True),
            visible=visible,
            path_reference=path,
        )
        if element.is_hit_candidate:
            elements.append(element)

        for child, child_position in self._sibling_positions(
            list(node), lambda c: c.attrib.get("type") or c.attrib.get("class") or c.tag
        ):
            self._walk_xml(child, elements, path, child_position, depth + 1)

    # ------------------------------------------------------- JSON / mappings

    def _parse_mapping(self, document: Any) -> List[BoundedElement]:
        roots = self._unwrap(document)
        if not roots:
            raise ParseError(
                "Hierarchy mapping has no nodes",
                error_code=ErrorCode.PARSE_EMPTY_DOCUMENT,
            )

        elements: List[BoundedElement] = []
        for root, position in self._sibling_positions(roots, self._mapping_type):
            self._walk_mapping(root, elements, "", position, 0, 0.0, 0.0)
        return elements

    def _unwrap(self, document: Any) -> List[Dict[str, Any]]:
        if isinstance(document, list):
            return [node for node in document if isinstance(node, dict)]
        if not isinstance(document, dict):
            return []
        for key in _WRAPPER_KEYS:
            inner = document.get(key)
            if isinstance(inner, (dict, list)) and not any(k in document for k in _TYPE_KEYS):
                return self._unwrap(inner)
        return [document]

    @staticmethod
    def _mapping_type(node: Dict[str, Any]) -> str:
        return _first(node, _TYPE_KEYS) or "Unknown"

    def _mapping_bounds(
        self, node: Dict[str, Any], parent_x: float, parent_y: float
    ) -> Bounds:
        # "frame" follows the UIKit convention of being relative to the parent.
        frame = node.get("frame")
        if isinstance(frame, dict):
            return Bounds(
                x=parent_x + _as_float(frame.get("x")),
                y=parent_y + _as_float(frame.get("y")),
                width=_as_float(frame.get("width")),
                height=_as_float(frame.get("height")),
            )

        for key in ("bounds", "rect"):
            rect = node.get(key)
            if isinstance(rect, dict):
                return Bounds(
                    x=_as_float(rect.get("x")),
                    y=_as_float(rect.get("y")),
                    width=_as_float(rect.get("width")),
                    height=_as_float(rect.get("height")),
                )
            if isinstance(rect, str):
                return parse_bounds_string(rect)

        if all(key in node for key in ("x", "y", "width", "height")):
            return Bounds(
                x=_as_float(node["x"]),
                y=_as_float(node["y"]),
                width=_as_float(node["width"]),
                height=_as_float(node["height"]),
            )
        return Bounds()

    def _walk_mapping(
        self,
        node: Dict[str, Any],
        elements: List[BoundedElement],
        path_prefix: str,
        position: int,
        depth: int,
        parent_x: float,
        parent_y: float,
    ) -> None:
        if depth > self.max_depth:
            self._truncated = True
            return

        element_type = self._mapping_type(node)
        path = f"{path_prefix}/{element_type}[{position}]"
        bounds = self._mapping_bounds(node, parent_x, parent_y)

        alpha = node.get("alpha")
        visible = (
            _truthy(node.get("visible"), True)
            and not _truthy(node.get("hidden"), False)
            and (alpha is None or _as_float(alpha) > 0.01)
        )
        enabled = _truthy(node.get("enabled", node.get("isEnabled")), True)
        stable_id = _first(node, _ID_KEYS)

        element = BoundedElement(
            type=element_type,
            bounds=bounds,
            name=_first(node, ("name",)) or stable_id,
            label=_first(node, _LABEL_KEYS),
            value=_first(node, _VALUE_KEYS),
            stable_id=stable_id,
            enabled=enabled,
            visible=visible,
            path_reference=_first(node, ("xpath", "pathReference")) or path,
        )
        if element.is_hit_candidate:
            elements.append(element)

        children = node.get("children") or []
        if not isinstance(children, list):
            logger.debug(f"Ignoring non-list children under {path}")
            return
        valid_children = [child for child in children if isinstance(child, dict)]
        for child, child_position in self._sibling_positions(valid_children, self._mapping_type):
            self._walk_mapping(
                child, elements, path, child_position, depth + 1, bounds.x, bounds.y
            )

    # ---------------------------------------------------- debug description

    def _parse_debug_description(self, content: str) -> List[BoundedElement]:
        """Parse an indented view dump; frames are relative to the parent view."""
        # Each stack entry: (depth, absolute origin, path, per-type child counters)
        stack: List[Tuple[int, float, float, str, Dict[str, int]]] = [(-1, 0.0, 0.0, "", {})]
        elements: List[BoundedElement] = []
        parsed_lines = 0

        for line in content.splitlines():
            match = _DEBUG_LINE.match(line)
            if not match:
                continue
            parsed_lines += 1

            indent = len(line) - len(line.lstrip(" \t|"))
            depth = indent // 2
            while stack[-1][0] >= depth:
                stack.pop()
            if len(stack) - 1 > self.max_depth:
                self._truncated = True
                continue

            _, parent_x, parent_y, parent_path, counters = stack[-1]
            class_name = match.group(1).strip()
            counters[class_name] = counters.get(class_name, 0) + 1
            path = f"{parent_path}/{class_name}[{counters[class_name]}]"

            frame_match = _DEBUG_FRAME.search(line)
            if frame_match:
                fx, fy, fw, fh = (float(g) for g in frame_match.groups())
            else:
                fx = fy = fw = fh = 0.0
            bounds = Bounds(x=parent_x + fx, y=parent_y + fy, width=fw, height=fh)

            alpha_match = _DEBUG_ALPHA.search(line)
            alpha = float(alpha_match.group(1)) if alpha_match else 1.0
            identifier = _DEBUG_IDENTIFIER.search(line)
            label = _DEBUG_LABEL.search(line)
            text = _DEBUG_TEXT.search(line)

            element = BoundedElement(
                type=class_name,
                bounds=bounds,
                name=identifier.group(1) if identifier else None,
                label=label.group(1) if label else None,
                value=(text.group(1) or None) if text else None,
                stable_id=identifier.group(1) if identifier else None,
                enabled="userInteractionEnabled = NO" not in line,
                visible="hidden = YES" not in line and alpha > 0.01,
                path_reference=path,
            )
            if element.is_hit_candidate:
                elements.append(element)

            stack.append((depth, bounds.x, bounds.y, path, {}))

        if parsed_lines == 0:
            raise ParseError(
                "No view lines found in hierarchy description",
                {"content_preview": content[:200]},
            )
        return elements

    @staticmethod
    def _sibling_positions(nodes: List[Any], type_of) -> Iterable[Tuple[Any, int]]:
        """Pair each sibling with its 1-based position among same-typed siblings."""
        counters: Dict[str, int] = {}
        for node in nodes:
            node_type = type_of(node)
            counters[node_type] = counters.get(node_type, 0) + 1
            yield node, counters[node_type]


def parse_hierarchy(
    document: HierarchyDocument, max_depth: int = MAX_HIERARCHY_DEPTH
) -> List[BoundedElement]:
    """Convenience wrapper around ``HierarchyParser.parse``."""
    return HierarchyParser(max_depth=max_depth).parse(document)
