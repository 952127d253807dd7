"""Selector evaluation: `>>` chains, shadow piercing and result caching.

`query_selector` and `query_selector_all` are the entry points most callers
want. Each `>>`-separated stage is `engine=body` (CSS when unprefixed) and
runs against every element produced by the stage before it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from .cache import selector_cache, selector_cache_key
from .combinators import register_internal_engines
from .engine import SelectorEngine, SelectorEngineRegistry, parse_selector, split_selector_chain
from .engines import builtin_engines
from .errors import SelectorError, generate_error_message
from .node import Element, Node, ShadowRoot
from .visibility import is_element_visible

logger = logging.getLogger(__name__)


class QueryOptions:
    __slots__ = ("pierce_shadow_dom", "visible_only")

    pierce_shadow_dom: bool
    visible_only: bool

    def __init__(self, pierce_shadow_dom: bool = False, visible_only: bool = False) -> None:
        self.pierce_shadow_dom = pierce_shadow_dom
        self.visible_only = visible_only

    def __repr__(self) -> str:
        return f"QueryOptions(pierce_shadow_dom={self.pierce_shadow_dom}, visible_only={self.visible_only})"

    @property
    def cache_mode(self) -> str:
        return "shadow" if self.pierce_shadow_dom else "light"


def collect_shadow_roots(root: Node) -> list[ShadowRoot]:
    """Every shadow root hosted at or below `root`, nested roots included, in tree order."""
    shadows: list[ShadowRoot] = []
    hosts: list[Element] = [root] if isinstance(root, Element) else []
    hosts.extend(root.iter_elements())
    for host in hosts:
        if host.shadow_root is not None:
            shadows.append(host.shadow_root)
            shadows.extend(collect_shadow_roots(host.shadow_root))
    return shadows


def create_registry() -> SelectorEngineRegistry:
    """A registry with the built-in dialects plus the internal combinator and layout engines."""
    registry = SelectorEngineRegistry()
    for engine in builtin_engines():
        registry.register(engine)
    register_internal_engines(registry)
    return registry


class QueryEvaluator:
    """Runs selector strings against a registry."""

    __slots__ = ("registry",)

    registry: SelectorEngineRegistry

    def __init__(self, registry: SelectorEngineRegistry | None = None) -> None:
        self.registry = registry if registry is not None else create_registry()

    def __repr__(self) -> str:
        return f"<QueryEvaluator engines={len(self.registry.names())}>"

    def validate(self, selector: str) -> list[tuple[SelectorEngine, str]]:
        """Resolve every stage of `selector`.

        Raises:
            SelectorError: For an empty chain, an unknown engine, or a body its
                engine cannot parse
        """
        parts = split_selector_chain(selector)
        if not parts:
            raise SelectorError(generate_error_message("empty-selector-chain"), "empty-selector-chain")
        stages: list[tuple[SelectorEngine, str]] = []
        for part in parts:
            parsed = parse_selector(part.strip())
            engine = self.registry.get(parsed.engine)
            if engine is None:
                raise SelectorError(generate_error_message("unknown-engine", parsed.engine), "unknown-engine")
            engine.validate(parsed.body)
            stages.append((engine, parsed.body))
        return stages

    def _stages(self, selector: str) -> list[tuple[SelectorEngine, str]] | None:
        try:
            return self.validate(selector)
        except SelectorError as exc:
            if exc.code == "unknown-engine":
                logger.warning("%s", exc)
            else:
                logger.debug("Rejected selector %r: %s", selector, exc)
            return None

    def _run_all(self, engine: SelectorEngine, root: Node, body: str, options: QueryOptions) -> list[Element]:
        results = list(engine.query_all(root, body))
        if options.pierce_shadow_dom:
            for shadow in collect_shadow_roots(root):
                results.extend(engine.query_all(shadow, body))
        return results

    def _run_one(self, engine: SelectorEngine, root: Node, body: str, options: QueryOptions) -> Element | None:
        found = engine.query(root, body)
        if found is not None or not options.pierce_shadow_dom:
            return found
        for shadow in collect_shadow_roots(root):
            found = engine.query(shadow, body)
            if found is not None:
                return found
        return None

    def _iter_chain(
        self,
        root: Node,
        stages: list[tuple[SelectorEngine, str]],
        index: int,
        options: QueryOptions,
    ) -> Iterator[Element]:
        engine, body = stages[index]
        elements = self._run_all(engine, root, body, options)
        if index == len(stages) - 1:
            yield from elements
            return
        for element in elements:
            yield from self._iter_chain(element, stages, index + 1, options)

    def _execute_one(self, root: Node, selector: str, options: QueryOptions) -> Element | None:
        stages = self._stages(selector)
        if stages is None:
            return None
        if len(stages) == 1:
            engine, body = stages[0]
            return self._run_one(engine, root, body, options)
        return next(self._iter_chain(root, stages, 0, options), None)

    def _execute_all(self, root: Node, selector: str, options: QueryOptions) -> list[Element]:
        stages = self._stages(selector)
        if stages is None:
            return []
        return list(self._iter_chain(root, stages, 0, options))

    def _cache_key(self, selector: str, root: Node, options: QueryOptions) -> tuple[SelectorEngineRegistry, str]:
        # Evaluators with different registries can resolve the same text differently
        return self.registry, selector_cache_key(selector, root, options.cache_mode)

    def query_selector(self, root: Node, selector: str, options: QueryOptions | None = None) -> Element | None:
        """First element matching `selector` under `root`, or None."""
        options = options or QueryOptions()
        if options.visible_only:
            results = self.query_selector_all(root, selector, options)
            return results[0] if results else None
        key = self._cache_key(selector, root, options)
        return selector_cache.lookup("query", key, lambda: self._execute_one(root, selector, options))

    def query_selector_all(self, root: Node, selector: str, options: QueryOptions | None = None) -> list[Element]:
        """All elements matching `selector` under `root`.

        Chained stages fan out over every intermediate match, so an element
        reachable along two paths appears twice. The visibility filter runs
        after the cache so cached results are re-checked on every call.
        """
        options = options or QueryOptions()
        key = self._cache_key(selector, root, options)
        results = selector_cache.lookup("query_all", key, lambda: self._execute_all(root, selector, options))
        if options.visible_only:
            return [element for element in results if is_element_visible(element)]
        return list(results)

    def matches(self, element: Element, selector: str, options: QueryOptions | None = None) -> bool:
        """Whether `selector`, evaluated from the element's tree root, yields `element`."""
        options = options or QueryOptions()
        root = element.root_node()
        key = (self._cache_key(selector, root, options), element.uid, options.visible_only)
        return selector_cache.lookup(
            "matches", key, lambda: element in self.query_selector_all(root, selector, options)
        )


selector_engines = create_registry()
default_evaluator = QueryEvaluator(selector_engines)


def query_selector(
    root: Node,
    selector: str,
    *,
    pierce_shadow_dom: bool = False,
    visible_only: bool = False,
) -> Element | None:
    return default_evaluator.query_selector(root, selector, QueryOptions(pierce_shadow_dom, visible_only))


def query_selector_all(
    root: Node,
    selector: str,
    *,
    pierce_shadow_dom: bool = False,
    visible_only: bool = False,
) -> list[Element]:
    return default_evaluator.query_selector_all(root, selector, QueryOptions(pierce_shadow_dom, visible_only))


def matches_selector(element: Element, selector: str, *, pierce_shadow_dom: bool = False) -> bool:
    return default_evaluator.matches(element, selector, QueryOptions(pierce_shadow_dom))
