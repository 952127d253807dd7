"""Layout engines: match elements by position relative to reference elements.

Every scorer takes the candidate box first and the reference box second and
returns a distance (lower is closer) or None when the relation does not hold.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from .engine import SelectorEngine, SelectorEngineRegistry
from .node import Element, Node, Rect

NEAR_DEFAULT_DISTANCE = 50.0

_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")

Scorer = Callable[[Rect, Rect, "float | None"], "float | None"]


def _out_of_range(distance: float, max_distance: float | None) -> bool:
    return distance < 0 or (max_distance is not None and distance > max_distance)


def box_right_of(box: Rect, reference: Rect, max_distance: float | None = None) -> float | None:
    distance = box.left - reference.right
    if _out_of_range(distance, max_distance):
        return None
    return distance + max(reference.bottom - box.bottom, 0) + max(box.top - reference.top, 0)


def box_left_of(box: Rect, reference: Rect, max_distance: float | None = None) -> float | None:
    distance = reference.left - box.right
    if _out_of_range(distance, max_distance):
        return None
    return distance + max(reference.bottom - box.bottom, 0) + max(box.top - reference.top, 0)


def box_above(box: Rect, reference: Rect, max_distance: float | None = None) -> float | None:
    distance = reference.top - box.bottom
    if _out_of_range(distance, max_distance):
        return None
    return distance + max(box.left - reference.left, 0) + max(reference.right - box.right, 0)


def box_below(box: Rect, reference: Rect, max_distance: float | None = None) -> float | None:
    distance = box.top - reference.bottom
    if _out_of_range(distance, max_distance):
        return None
    return distance + max(box.left - reference.left, 0) + max(reference.right - box.right, 0)


def box_near(box: Rect, reference: Rect, max_distance: float | None = None) -> float | None:
    """Sum of the positive gaps on each side; overlap on an axis contributes nothing."""
    threshold = NEAR_DEFAULT_DISTANCE if max_distance is None else max_distance
    score = (
        max(box.left - reference.right, 0)
        + max(reference.left - box.right, 0)
        + max(reference.top - box.bottom, 0)
        + max(box.top - reference.bottom, 0)
    )
    return None if score > threshold else score


LAYOUT_SCORERS: dict[str, Scorer] = {
    "left-of": box_left_of,
    "right-of": box_right_of,
    "above": box_above,
    "below": box_below,
    "near": box_near,
}


def layout_selector_score(
    name: str,
    element: Element,
    references: list[Element],
    max_distance: float | None = None,
) -> float | None:
    """Best score of `element` against any reference other than itself."""
    scorer = LAYOUT_SCORERS[name]
    box = element.get_bounding_client_rect()
    best: float | None = None
    for reference in references:
        if reference is element:
            continue
        score = scorer(box, reference.get_bounding_client_rect(), max_distance)
        if score is not None and (best is None or score < best):
            best = score
    return best


def parse_layout_body(body: str) -> tuple[str, float | None]:
    """Split `inner[, maxDistance]`; commas nested in () or [] belong to the inner selector."""
    depth = 0
    quote = ""
    last_comma = -1
    for i, ch in enumerate(body):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        elif ch == "," and depth == 0:
            last_comma = i

    if last_comma != -1:
        candidate = body[last_comma + 1 :].strip()
        if _NUMBER_RE.match(candidate):
            return body[:last_comma].strip(), float(candidate)
    return body.strip(), None


class LayoutEngine(SelectorEngine):
    """`internal:<relation>` engine; results are ordered closest first."""

    __slots__ = ("layout_name", "registry")

    layout_name: str
    registry: SelectorEngineRegistry

    def __init__(self, layout_name: str, registry: SelectorEngineRegistry) -> None:
        if layout_name not in LAYOUT_SCORERS:
            raise ValueError(f"Unknown layout relation: {layout_name}")
        self.layout_name = layout_name
        self.registry = registry

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"internal:{self.layout_name}"

    def query_all(self, root: Node, body: str) -> list[Element]:
        inner, max_distance = parse_layout_body(body)
        references = self.registry.query_all(root, inner)
        if not references:
            return []

        scored: list[tuple[float, Element]] = []
        for element in root.iter_elements():
            score = layout_selector_score(self.layout_name, element, references, max_distance)
            if score is not None:
                scored.append((score, element))
        # sort() is stable, so ties keep document order
        scored.sort(key=lambda pair: pair[0])
        return [element for _, element in scored]


def layout_engines(registry: SelectorEngineRegistry) -> list[LayoutEngine]:
    return [LayoutEngine(name, registry) for name in LAYOUT_SCORERS]
