"""Rendered-visibility, geometry, and pointer-reachability checks."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from .cache import aria_cache, get_cached_style
from .node import Element, Rect, Text
from .style import is_display_none_in_flat_tree, is_inside_closed_details


class ElementBox:
    __slots__ = ("cursor", "inline", "visible")

    visible: bool
    inline: bool
    cursor: str | None

    def __init__(self, visible: bool, inline: bool, cursor: str | None = None) -> None:
        self.visible = visible
        self.inline = inline
        self.cursor = cursor

    def __repr__(self) -> str:
        return f"ElementBox(visible={self.visible}, inline={self.inline}, cursor={self.cursor!r})"


def is_element_style_visible(element: Element) -> bool:
    """Style-only visibility: closed <details> content, `content-visibility`, `visibility`."""
    if is_inside_closed_details(element):
        return False
    style = get_cached_style(element)
    if style.content_visibility == "hidden":
        return False
    return style.visibility == "visible"


def is_element_visible(element: Element) -> bool:
    """True when the element is connected, rendered, not transparent, and has a non-empty box."""
    if not element.is_connected:
        return False
    style = get_cached_style(element)
    if style.display == "none" or is_display_none_in_flat_tree(element):
        return False
    if style.display == "contents":
        for child in element.children:
            if isinstance(child, Element) and is_element_visible(child):
                return True
            if isinstance(child, Text) and child.data.strip() and is_element_style_visible(element):
                return True
        return False
    if not is_element_style_visible(element):
        return False
    if style.opacity == 0:
        return False
    return not element.get_bounding_client_rect().is_empty


def get_cursor(element: Element) -> str | None:
    cursor = get_cached_style(element).cursor
    if cursor in ("auto", "default", ""):
        return None
    return cursor


def compute_element_box(element: Element) -> ElementBox:
    style = get_cached_style(element)
    if style.display == "contents":
        return ElementBox(visible=is_element_visible(element), inline=True, cursor=get_cursor(element))
    visible = is_element_visible(element)
    return ElementBox(visible=visible, inline=style.display == "inline", cursor=get_cursor(element))


def receives_pointer_events(element: Element) -> bool:
    """False when `pointer-events: none` applies to the element (it inherits down the flat tree)."""
    return aria_cache.lookup(
        "pointer_events", element, lambda: get_cached_style(element).pointer_events != "none"
    )


def get_element_center(element: Element) -> tuple[float, float]:
    rect = element.get_bounding_client_rect()
    return (rect.x + rect.width / 2, rect.y + rect.height / 2)


def _viewport_rect(element: Element) -> Rect:
    document = element.owner_document
    width, height = document.viewport if document is not None else (0, 0)
    return Rect(0, 0, width, height)


def intersection_ratio(element: Element) -> float:
    """Fraction of the element's box inside the viewport, 0.0 for empty boxes."""
    rect = element.get_bounding_client_rect()
    if rect.is_empty:
        return 0.0
    viewport = _viewport_rect(element)
    overlap_w = min(rect.right, viewport.right) - max(rect.left, viewport.left)
    overlap_h = min(rect.bottom, viewport.bottom) - max(rect.top, viewport.top)
    if overlap_w <= 0 or overlap_h <= 0:
        return 0.0
    return (overlap_w * overlap_h) / (rect.width * rect.height)


def is_in_viewport(element: Element, threshold: float = 0.0) -> bool:
    """True when more than `threshold` of the element's box lies inside the viewport."""
    ratio = intersection_ratio(element)
    if threshold <= 0:
        return ratio > 0
    return ratio >= threshold


class IntersectionObserver:
    """Delivers intersection ratios for observed elements on the next event-loop turn."""

    __slots__ = ("_callback", "_handles", "_loop")

    _callback: Callable[[list[tuple[Element, float]]], Any]
    _handles: list[asyncio.Handle]
    _loop: asyncio.AbstractEventLoop

    def __init__(
        self,
        callback: Callable[[list[tuple[Element, float]]], Any],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self._handles = []
        self._loop = loop or asyncio.get_running_loop()

    def observe(self, element: Element) -> None:
        self._handles.append(self._loop.call_soon(self._deliver, element))

    def _deliver(self, element: Element) -> None:
        self._callback([(element, intersection_ratio(element))])

    def disconnect(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()


async def get_viewport_ratio(element: Element) -> float:
    """Resolve the element's viewport intersection ratio asynchronously."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[float] = loop.create_future()

    def on_intersection(entries: list[tuple[Element, float]]) -> None:
        if not future.done():
            future.set_result(entries[0][1])

    observer = IntersectionObserver(on_intersection, loop)
    observer.observe(element)
    try:
        return await future
    finally:
        observer.disconnect()


def is_element_interactable(element: Element) -> bool:
    """Visible, enabled, and reachable by pointer events."""
    if not is_element_visible(element):
        return False
    if element.disabled or (element.get_attribute("aria-disabled") or "").lower() == "true":
        return False
    return receives_pointer_events(element)

