"""Re-entrant computation caches.

Three sessions share one implementation:

- `style_cache` memoizes computed style per (element, pseudo) and pseudo
  element `content`.
- `aria_cache` memoizes accessible names and descriptions (keyed with the
  include-hidden flag), hidden-for-ARIA checks, roles, and pointer-event
  reachability.
- `selector_cache` memoizes selector query results and element text, and
  tracks hit/miss statistics.

A session is active while its depth counter is positive. Nested `begin()`
calls only bump the counter; the outermost `end()` clears the stores. While
inactive, every lookup computes afresh.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from . import style as _style

if TYPE_CHECKING:
    from .node import Element, Node
    from .style import ComputedStyle

T = TypeVar("T")


class CacheSession:
    __slots__ = ("_depth", "_stores", "hits", "misses", "name")

    name: str
    hits: int
    misses: int
    _depth: int
    _stores: dict[str, dict[Any, Any]]

    def __init__(self, name: str, stores: tuple[str, ...]) -> None:
        self.name = name
        self.hits = 0
        self.misses = 0
        self._depth = 0
        self._stores = {store: {} for store in stores}

    def __repr__(self) -> str:
        return f"<CacheSession {self.name} depth={self._depth}>"

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def active(self) -> bool:
        return self._depth > 0

    def begin(self) -> None:
        if self._depth == 0:
            self.hits = 0
            self.misses = 0
        self._depth += 1

    def end(self) -> None:
        if self._depth <= 0:
            return
        self._depth -= 1
        if self._depth == 0:
            for store in self._stores.values():
                store.clear()

    def clear(self) -> None:
        """Drop every entry and force the session inactive."""
        self._depth = 0
        self.hits = 0
        self.misses = 0
        for store in self._stores.values():
            store.clear()

    def lookup(self, store: str, key: Any, compute: Callable[[], T]) -> T:
        if self._depth <= 0:
            return compute()
        entries = self._stores[store]
        if key in entries:
            self.hits += 1
            value: T = entries[key]
            return value
        self.misses += 1
        value = compute()
        entries[key] = value
        return value

    def stats(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "depth": self._depth,
            "hits": self.hits,
            "misses": self.misses,
            "entries": {store: len(entries) for store, entries in self._stores.items()},
        }

    @contextmanager
    def scoped(self) -> Iterator[CacheSession]:
        self.begin()
        try:
            yield self
        finally:
            self.end()


style_cache = CacheSession("style", ("style", "pseudo_content"))
aria_cache = CacheSession(
    "aria",
    ("name", "name_hidden", "description", "description_hidden", "hidden", "role", "pointer_events"),
)
selector_cache = CacheSession("selector", ("query", "query_all", "matches", "text"))

_SESSIONS: tuple[CacheSession, ...] = (style_cache, aria_cache, selector_cache)


def get_cached_style(element: Element, pseudo: str | None = None) -> ComputedStyle:
    return style_cache.lookup("style", (element, pseudo), lambda: _style.compute_style(element, pseudo))


def get_cached_pseudo_content(element: Element, pseudo: str) -> str:
    """Return the computed `content` of a pseudo element, `none` when it generates nothing."""

    def compute() -> str:
        return get_cached_style(element, pseudo).content or "none"

    return style_cache.lookup("pseudo_content", (element, pseudo), compute)


def selector_root_id(root: Node) -> str:
    if root.name == "#document":
        return f"document:{root.uid}"
    if root.name == "#shadow-root":
        return f"shadow:{root.host.uid}"  # type: ignore[attr-defined]
    return f"node:{root.uid}"


def selector_cache_key(selector: str, root: Node, mode: str) -> str:
    """Key for one selector run; every document, shadow root and element root gets its own entries."""
    return f"{selector}:{mode}@{selector_root_id(root)}"


def begin_caching() -> None:
    for session in _SESSIONS:
        session.begin()


def end_caching() -> None:
    for session in _SESSIONS:
        session.end()


@contextmanager
def caching() -> Iterator[None]:
    """Activate the style, ARIA, and selector caches for the duration of the block."""
    begin_caching()
    try:
        yield
    finally:
        end_caching()


@asynccontextmanager
async def caching_async() -> AsyncIterator[None]:
    begin_caching()
    try:
        yield
    finally:
        end_caching()


def with_cache(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    with caching():
        return fn(*args, **kwargs)


async def with_cache_async(fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    async with caching_async():
        return await fn(*args, **kwargs)


def is_caching_active() -> bool:
    return any(session.active for session in _SESSIONS)


def clear_all_caches() -> None:
    for session in _SESSIONS:
        session.clear()


def cache_stats() -> dict[str, dict[str, Any]]:
    return {session.name: session.stats() for session in _SESSIONS}
