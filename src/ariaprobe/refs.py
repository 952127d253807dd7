"""Stable reference ids (`ref_N`) for elements, held weakly."""

from __future__ import annotations

import weakref
from collections.abc import Iterable

from .errors import StaleRefError, generate_error_message
from .node import Element

REF_PREFIX = "ref_"


class RefRegistry:
    __slots__ = ("_by_element", "_next_id", "_refs")

    _refs: dict[str, weakref.ref[Element]]
    _by_element: weakref.WeakKeyDictionary[Element, str]
    _next_id: int

    def __init__(self) -> None:
        self._refs = {}
        self._by_element = weakref.WeakKeyDictionary()
        self._next_id = 1

    def __repr__(self) -> str:
        return f"<RefRegistry refs={len(self._refs)}>"

    def __len__(self) -> int:
        return self.ref_count()

    def get_element_ref(self, element: Element) -> str:
        """Return the id for `element`, assigning the next `ref_N` on first sight."""
        ref_id = self._by_element.get(element)
        if ref_id is not None and ref_id in self._refs:
            return ref_id
        ref_id = f"{REF_PREFIX}{self._next_id}"
        self._next_id += 1
        self._refs[ref_id] = weakref.ref(element)
        self._by_element[element] = ref_id
        return ref_id

    def get_element_by_ref(self, ref_id: str) -> Element | None:
        """Resolve an id; unknown, collected and disconnected elements resolve to None and are dropped."""
        ref = self._refs.get(ref_id)
        if ref is None:
            return None
        element = ref()
        if element is None or not element.is_connected:
            self._forget(ref_id, element)
            return None
        return element

    def require_element(self, ref_id: str) -> Element:
        known = ref_id in self._refs
        element = self.get_element_by_ref(ref_id)
        if element is None:
            raise StaleRefError(generate_error_message("stale-ref" if known else "unknown-ref", ref_id))
        return element

    def is_valid_ref(self, ref_id: str) -> bool:
        return self.get_element_by_ref(ref_id) is not None

    def clear_element_refs(self) -> None:
        self._refs.clear()
        self._by_element.clear()
        self._next_id = 1

    def cleanup_stale_refs(self) -> int:
        """Drop collected or disconnected elements and return how many were removed."""
        stale: list[tuple[str, Element | None]] = []
        for ref_id, ref in self._refs.items():
            element = ref()
            if element is None or not element.is_connected:
                stale.append((ref_id, element))
        for ref_id, element in stale:
            self._forget(ref_id, element)
        return len(stale)

    def ref_count(self) -> int:
        self.cleanup_stale_refs()
        return len(self._refs)

    def create_element_refs(self, elements: Iterable[Element]) -> list[str]:
        return [self.get_element_ref(element) for element in elements]

    def resolve_element_refs(self, ref_ids: Iterable[str]) -> list[Element | None]:
        return [self.get_element_by_ref(ref_id) for ref_id in ref_ids]

    def _forget(self, ref_id: str, element: Element | None) -> None:
        del self._refs[ref_id]
        if element is not None and self._by_element.get(element) == ref_id:
            del self._by_element[element]


ref_registry = RefRegistry()

get_element_ref = ref_registry.get_element_ref
get_element_by_ref = ref_registry.get_element_by_ref
is_valid_ref = ref_registry.is_valid_ref
clear_element_refs = ref_registry.clear_element_refs
cleanup_stale_refs = ref_registry.cleanup_stale_refs
create_element_refs = ref_registry.create_element_refs
resolve_element_refs = ref_registry.resolve_element_refs
