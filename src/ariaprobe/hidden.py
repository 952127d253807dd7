"""Hidden-for-ARIA checks and the tree builder's visibility modes."""

from __future__ import annotations

from .cache import aria_cache, get_cached_style
from .node import Element, Text, composed_parent, parent_element_or_shadow_host
from .style import is_display_none_in_flat_tree, is_unslotted_light_child

IGNORED_TAGS: frozenset[str] = frozenset({"style", "script", "noscript", "template"})

VISIBILITY_MODES: frozenset[str] = frozenset({"aria", "ariaOrVisible", "ariaAndVisible"})


def is_ignored_for_aria(element: Element) -> bool:
    return element.name in IGNORED_TAGS


def _has_aria_hidden(element: Element) -> bool:
    node: Element | None = element
    while node is not None:
        if (node.get_attribute("aria-hidden") or "").lower() == "true":
            return True
        node = parent_element_or_shadow_host(node)
    return False


def _is_inert(element: Element) -> bool:
    node: Element | None = element
    while node is not None:
        if node.has_attribute("inert"):
            return True
        node = composed_parent(node)
    return False


def _is_hidden_by_css(element: Element) -> bool:
    if not element.is_connected:
        return True
    style = get_cached_style(element)
    if style.display == "none" or style.visibility in ("hidden", "collapse"):
        return True
    if style.content_visibility == "hidden":
        return True
    if style.display == "contents":
        children = list(element.children)
        if element.name == "slot":
            children.extend(element.assigned_nodes(flatten=True))
        for child in children:
            if isinstance(child, Element) and not is_element_hidden_for_aria(child):
                return False
            if isinstance(child, Text) and child.data.strip():
                return False
        if element.shadow_root is not None:
            return False
        return True
    return is_display_none_in_flat_tree(element)


def _compute_hidden(element: Element, include_aria: bool, include_css: bool, include_slot: bool) -> bool:
    if is_ignored_for_aria(element):
        return True
    if include_aria and _has_aria_hidden(element):
        return True
    if include_css and (_is_hidden_by_css(element) or _is_inert(element)):
        return True
    return include_slot and is_unslotted_light_child(element)


def is_element_hidden_for_aria(
    element: Element,
    *,
    include_aria: bool = True,
    include_css: bool = True,
    include_slot: bool = True,
) -> bool:
    """Return True when assistive technology would not see `element`."""
    key = (element, include_aria, include_css, include_slot)
    return aria_cache.lookup(
        "hidden", key, lambda: _compute_hidden(element, include_aria, include_css, include_slot)
    )


def is_element_visually_visible(element: Element) -> bool:
    """Rendering check independent of ARIA: display, visibility, opacity, and box size."""
    style = get_cached_style(element)
    if style.display == "none" or is_display_none_in_flat_tree(element):
        return False
    if style.display == "contents":
        return True
    if style.visibility != "visible" or style.opacity == 0:
        return False
    if style.content_visibility == "hidden":
        return False
    rect = element.get_bounding_client_rect()
    return not rect.is_empty


def check_element_visibility(element: Element, mode: str = "ariaAndVisible") -> bool:
    """Combine the ARIA and visual checks according to a tree visibility mode."""
    if mode not in VISIBILITY_MODES:
        raise ValueError(f"Unknown visibility mode: {mode!r}")
    aria_visible = not is_element_hidden_for_aria(element)
    if mode == "aria":
        return aria_visible
    if mode == "ariaOrVisible":
        return aria_visible or is_element_visually_visible(element)
    return aria_visible and is_element_visually_visible(element)
