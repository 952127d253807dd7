"""Internal combinator engines (`internal:has`, `internal:and`, ...).

Each engine takes a body that is itself a selector string, optionally
engine-prefixed, and resolves it through the registry it was registered
with, so combinators nest freely.
"""

from __future__ import annotations

from collections.abc import Callable

from .engine import SelectorEngine, SelectorEngineRegistry
from .engines import TextPattern, normalized_text, parse_text_body
from .name import get_id_refs
from .node import Element, Node, sort_in_document_order, to_element_list, walk_elements
from .visibility import is_element_visible


def split_compound_body(body: str, separator: str = "&&") -> list[str]:
    """Split on top-level `separator`, ignoring it inside quotes, parentheses and brackets."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote = ""
    i = 0
    length = len(body)

    while i < length:
        ch = body[i]
        if quote:
            if ch == quote:
                quote = ""
            current.append(ch)
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch in "([":
            depth += 1
            current.append(ch)
        elif ch in ")]":
            depth -= 1
            current.append(ch)
        elif depth == 0 and body.startswith(separator, i):
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
            i += len(separator) - 1
        else:
            current.append(ch)
        i += 1

    part = "".join(current).strip()
    if part:
        parts.append(part)
    return parts


def _dedupe(elements: list[Element]) -> list[Element]:
    seen: set[Element] = set()
    unique: list[Element] = []
    for element in elements:
        if element not in seen:
            seen.add(element)
            unique.append(element)
    return unique


class _RegistryEngine(SelectorEngine):
    __slots__ = ("registry",)

    registry: SelectorEngineRegistry

    def __init__(self, registry: SelectorEngineRegistry) -> None:
        self.registry = registry


class _FilterEngine(_RegistryEngine):
    """Keeps the root and its element descendants that satisfy `accept`."""

    def accept(self, element: Element, body: str) -> bool:
        raise NotImplementedError

    def prepare(self, body: str) -> object:
        return body

    def query(self, root: Node, body: str) -> Element | None:
        prepared = self.prepare(body)
        return next((el for el in walk_elements(root) if self.accept(el, prepared)), None)  # type: ignore[arg-type]

    def query_all(self, root: Node, body: str) -> list[Element]:
        prepared = self.prepare(body)
        return [el for el in walk_elements(root) if self.accept(el, prepared)]  # type: ignore[arg-type]


class HasEngine(_FilterEngine):
    name = "internal:has"

    def accept(self, element: Element, body: str) -> bool:
        return self.registry.query(element, body) is not None


class HasNotEngine(_FilterEngine):
    name = "internal:has-not"

    def accept(self, element: Element, body: str) -> bool:
        return self.registry.query(element, body) is None


class _TextFilterEngine(_FilterEngine):
    def prepare(self, body: str) -> TextPattern:  # type: ignore[override]
        return parse_text_body(body)


class HasTextEngine(_TextFilterEngine):
    name = "internal:has-text"

    def accept(self, element: Element, body: TextPattern) -> bool:  # type: ignore[override]
        return body.matches(normalized_text(element))


class HasNotTextEngine(_TextFilterEngine):
    name = "internal:has-not-text"

    def accept(self, element: Element, body: TextPattern) -> bool:  # type: ignore[override]
        return not body.matches(normalized_text(element))


class AndEngine(_RegistryEngine):
    """Elements matched by every `&&`-joined selector, in document order."""

    name = "internal:and"

    def query_all(self, root: Node, body: str) -> list[Element]:
        selectors = split_compound_body(body)
        if not selectors:
            return []
        first = self.registry.query_all(root, selectors[0])
        if not first:
            return []
        others = [set(self.registry.query_all(root, selector)) for selector in selectors[1:]]
        matched = [el for el in _dedupe(first) if all(el in other for other in others)]
        return to_element_list(sort_in_document_order(matched))


class OrEngine(_RegistryEngine):
    """Elements matched by any `&&`-joined selector, de-duplicated, in document order."""

    name = "internal:or"

    def query_all(self, root: Node, body: str) -> list[Element]:
        matched: list[Element] = []
        for selector in split_compound_body(body):
            matched.extend(self.registry.query_all(root, selector))
        return to_element_list(sort_in_document_order(matched))


class LabelEngine(_RegistryEngine):
    """Form controls whose `<label>` or `aria-labelledby` target has matching text."""

    name = "internal:label"

    def query_all(self, root: Node, body: str) -> list[Element]:
        pattern = parse_text_body(body)
        controls: list[Element] = []

        for element in walk_elements(root):
            if element.name == "label" and pattern.matches(normalized_text(element)):
                control = element.control
                if control is not None:
                    controls.append(control)

        for element in walk_elements(root):
            if not element.has_attribute("aria-labelledby"):
                continue
            for label in get_id_refs(element, element.get_attribute("aria-labelledby")):
                if pattern.matches(normalized_text(label)):
                    controls.append(element)
                    break

        return to_element_list(sort_in_document_order(controls))


class VisibleEngine(_FilterEngine):
    name = "internal:visible"

    def accept(self, element: Element, body: str) -> bool:
        return is_element_visible(element)


INTERNAL_ENGINE_TYPES: tuple[Callable[[SelectorEngineRegistry], SelectorEngine], ...] = (
    HasEngine,
    HasNotEngine,
    HasTextEngine,
    HasNotTextEngine,
    AndEngine,
    OrEngine,
    LabelEngine,
    VisibleEngine,
)


def register_internal_engines(registry: SelectorEngineRegistry) -> None:
    """Register the combinator and layout engines, bound to `registry` for inner selectors."""
    from .layout import layout_engines

    for engine_type in INTERNAL_ENGINE_TYPES:
        registry.register(engine_type(registry))
    for engine in layout_engines(registry):
        registry.register(engine)
