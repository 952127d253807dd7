"""Computed style and layout boxes.

`compute_style` is the expensive primitive: every call re-runs the cascade
for one element (user-agent defaults, matching rules, inline style) and pulls
inherited values from the flat-tree parent. Callers go through
`cache.get_cached_style`, which memoizes it while a style cache session is
active.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from . import cache as _cache
from .constants import BLOCK_ELEMENTS, NONE_DISPLAY_ELEMENTS, SPECIAL_DISPLAY
from .node import Document, Element, Rect, ShadowRoot, composed_parent
from .selector import matches_parsed
from .stylesheet import parse_declarations

if TYPE_CHECKING:
    from .stylesheet import StyleRule

INHERITED_PROPERTIES: frozenset[str] = frozenset({"visibility", "cursor", "pointer-events"})

INITIAL_VALUES: dict[str, str] = {
    "display": "inline",
    "visibility": "visible",
    "opacity": "1",
    "cursor": "auto",
    "pointer-events": "auto",
    "content": "normal",
    "content-visibility": "visible",
    "width": "auto",
    "height": "auto",
    "left": "auto",
    "top": "auto",
}

_PX_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(px)?$")


class ComputedStyle:
    """Read-only view over resolved property values."""

    __slots__ = ("_props",)

    _props: dict[str, str]

    def __init__(self, props: dict[str, str]) -> None:
        self._props = props

    def __getitem__(self, name: str) -> str:
        return self._props[name]

    def __contains__(self, name: object) -> bool:
        return name in self._props

    def __repr__(self) -> str:
        return f"ComputedStyle({self._props!r})"

    def get(self, name: str, default: str = "") -> str:
        return self._props.get(name, default)

    @property
    def display(self) -> str:
        return self._props["display"]

    @property
    def visibility(self) -> str:
        return self._props["visibility"]

    @property
    def opacity(self) -> float:
        try:
            return float(self._props["opacity"])
        except ValueError:
            return 1.0

    @property
    def cursor(self) -> str:
        return self._props["cursor"]

    @property
    def pointer_events(self) -> str:
        return self._props["pointer-events"]

    @property
    def content(self) -> str:
        return self._props["content"]

    @property
    def content_visibility(self) -> str:
        return self._props["content-visibility"]


def default_display(element: Element) -> str:
    name = element.name
    if "hidden" in element.attrs or name in NONE_DISPLAY_ELEMENTS:
        return "none"
    if name == "dialog" and "open" not in element.attrs:
        return "none"
    if name == "input" and element.type == "hidden":
        return "none"
    if name in SPECIAL_DISPLAY:
        return SPECIAL_DISPLAY[name]
    if name in BLOCK_ELEMENTS:
        return "block"
    return "inline"


def _rules_for(element: Element) -> list[StyleRule]:
    root = element.root_node()
    if isinstance(root, (Document, ShadowRoot)):
        return root.style_rules
    return []


def compute_style(element: Element, pseudo: str | None = None) -> ComputedStyle:
    """Run the cascade for `element` (or its `::before`/`::after` pseudo element)."""
    props: dict[str, str] = {}
    if pseudo is None:
        props["display"] = default_display(element)

    for rule in _rules_for(element):
        if rule.pseudo == pseudo and matches_parsed(element, rule.selector):
            props.update(rule.declarations)

    if pseudo is None:
        props.update(parse_declarations(element.get_attribute("style")))
        parent = composed_parent(element)
        parent_style = _cache.get_cached_style(parent) if parent is not None else None
    else:
        parent_style = _cache.get_cached_style(element)

    for name in INHERITED_PROPERTIES:
        if name not in props or props[name] == "inherit":
            props[name] = parent_style.get(name) if parent_style is not None else INITIAL_VALUES[name]

    for name, value in list(props.items()):
        if value == "inherit":
            props[name] = parent_style.get(name, INITIAL_VALUES.get(name, "")) if parent_style else ""
        elif value in ("initial", "unset"):
            props[name] = INITIAL_VALUES.get(name, "")

    for name, value in INITIAL_VALUES.items():
        props.setdefault(name, value)
    if pseudo is not None and props["content"] == "normal":
        props["content"] = "none"
    return ComputedStyle(props)


def parse_px(value: str) -> float | None:
    match = _PX_RE.match(value.strip())
    if match is None:
        return None
    return float(match.group(1))


def is_display_none_in_flat_tree(element: Element) -> bool:
    """True when the element or any flat-tree ancestor computes to `display: none`."""
    node: Element | None = element
    while node is not None:
        if _cache.get_cached_style(node).display == "none":
            return True
        node = composed_parent(node)
    return False


def is_inside_closed_details(element: Element) -> bool:
    """True for content of a closed <details> other than its first <summary>."""
    child: Element = element
    ancestor = composed_parent(element)
    while ancestor is not None:
        if ancestor.name == "details" and "open" not in ancestor.attrs:
            summary = next((c for c in ancestor.element_children if c.name == "summary"), None)
            if summary is None or child is not summary:
                return True
        child = ancestor
        ancestor = composed_parent(ancestor)
    return False


def is_unslotted_light_child(element: Element) -> bool:
    parent = element.parent
    return isinstance(parent, Element) and parent.shadow_root is not None and element.assigned_slot is None


def layout_rect(element: Element) -> Rect:
    """Return the element's box, empty when it generates no box.

    The host-assigned `rect` wins. Otherwise the box comes from px `left`,
    `top`, `width`, `height` declarations, with a 1x1 box at the origin
    standing in for unsized content.
    """
    if not element.is_connected:
        return Rect()
    style = _cache.get_cached_style(element)
    if style.display == "contents" or is_display_none_in_flat_tree(element):
        return Rect()
    if is_inside_closed_details(element) or _has_unslotted_ancestor(element):
        return Rect()
    if element.rect is not None:
        return element.rect

    width = parse_px(style.get("width"))
    height = parse_px(style.get("height"))
    return Rect(
        parse_px(style.get("left")) or 0,
        parse_px(style.get("top")) or 0,
        1 if width is None else width,
        1 if height is None else height,
    )


def _has_unslotted_ancestor(element: Element) -> bool:
    node: Element | None = element
    while node is not None:
        if is_unslotted_light_child(node):
            return True
        node = composed_parent(node)
    return False
