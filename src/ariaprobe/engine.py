"""Selector engine interface, registry and `engine=body` parsing."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from .node import Element, Node

logger = logging.getLogger(__name__)

# Engine names may contain colons, e.g. internal:has-text
_ENGINE_PREFIX_RE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_:-]*)=(.+)$", re.DOTALL)

DEFAULT_ENGINE = "css"


class SelectorEngine:
    """A named query dialect.

    Subclasses implement `query_all`; `query` returns its first result unless
    the engine can stop early.
    """

    name: str = ""

    def validate(self, body: str) -> None:
        """Raise SelectorError when `body` can never be evaluated."""

    def query(self, root: Node, body: str) -> Element | None:
        results = self.query_all(root, body)
        return results[0] if results else None

    def query_all(self, root: Node, body: str) -> list[Element]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class ParsedSelector:
    """One `engine=body` stage of a selector string."""

    __slots__ = ("body", "engine")

    engine: str
    body: str

    def __init__(self, engine: str, body: str) -> None:
        self.engine = engine
        self.body = body

    def __repr__(self) -> str:
        return f"ParsedSelector({self.engine!r}, {self.body!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ParsedSelector) and (other.engine, other.body) == (self.engine, self.body)

    def __hash__(self) -> int:
        return hash((self.engine, self.body))


def parse_selector(selector: str) -> ParsedSelector:
    """Split `engine=body`; anything without a recognisable prefix is CSS."""
    match = _ENGINE_PREFIX_RE.match(selector)
    if match:
        return ParsedSelector(match.group(1).lower(), match.group(2))
    return ParsedSelector(DEFAULT_ENGINE, selector)


def split_selector_chain(selector: str) -> list[str]:
    """Split on top-level `>>`; a `>>` inside a quoted string is not a split point."""
    parts: list[str] = []
    current: list[str] = []
    quote = ""
    i = 0
    length = len(selector)

    while i < length:
        ch = selector[i]
        if quote:
            if ch == quote:
                quote = ""
            current.append(ch)
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch == ">" and selector.startswith(">>", i):
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
            i += 1
        else:
            current.append(ch)
        i += 1

    part = "".join(current).strip()
    if part:
        parts.append(part)
    return parts


class SelectorEngineRegistry:
    """Name to engine map."""

    __slots__ = ("_engines",)

    _engines: dict[str, SelectorEngine]

    def __init__(self) -> None:
        self._engines = {}

    def __repr__(self) -> str:
        return f"<SelectorEngineRegistry {self.names()}>"

    def __contains__(self, name: object) -> bool:
        return name in self._engines

    def __iter__(self) -> Iterator[SelectorEngine]:
        return iter(self._engines.values())

    def register(self, engine: SelectorEngine) -> None:
        if not engine.name:
            raise ValueError("Selector engines need a name")
        self._engines[engine.name] = engine

    def get(self, name: str) -> SelectorEngine | None:
        return self._engines.get(name)

    def has(self, name: str) -> bool:
        return name in self._engines

    def names(self) -> list[str]:
        return list(self._engines)

    def resolve(self, selector: str) -> tuple[SelectorEngine, str] | None:
        """Look up the engine for one `engine=body` stage, warning when it is unknown."""
        parsed = parse_selector(selector.strip())
        engine = self._engines.get(parsed.engine)
        if engine is None:
            logger.warning("Unknown selector engine: %s", parsed.engine)
            return None
        return engine, parsed.body

    def query_all(self, root: Node, selector: str) -> list[Element]:
        """Run one unchained stage against `root`."""
        resolved = self.resolve(selector)
        if resolved is None:
            return []
        engine, body = resolved
        return engine.query_all(root, body)

    def query(self, root: Node, selector: str) -> Element | None:
        resolved = self.resolve(selector)
        if resolved is None:
            return None
        engine, body = resolved
        return engine.query(root, body)
