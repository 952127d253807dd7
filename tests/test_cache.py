import asyncio

import pytest

from ariaprobe import style
from ariaprobe.cache import (
    aria_cache,
    cache_stats,
    caching,
    caching_async,
    get_cached_pseudo_content,
    get_cached_style,
    is_caching_active,
    selector_cache,
    selector_cache_key,
    style_cache,
    with_cache,
    with_cache_async,
)
from ariaprobe.engine import SelectorEngineRegistry
from ariaprobe.evaluator import QueryEvaluator, query_selector_all
from ariaprobe.name import compute_accessible_name
from ariaprobe.parser import parse_fragment, parse_html


def _count_compute_style(monkeypatch):
    calls = []
    original = style.compute_style

    def counting(element, pseudo=None):
        calls.append((element, pseudo))
        return original(element, pseudo)

    monkeypatch.setattr(style, "compute_style", counting)
    return calls


class TestComputedStyle:
    def test_stylesheet_then_inline(self):
        doc = parse_html('<style>.a { opacity: 0.5; cursor: pointer }</style><div class="a" style="opacity: 1"></div>')
        div = doc.body.element_children[0]
        computed = get_cached_style(div)
        assert computed.opacity == 1.0
        assert computed.cursor == "pointer"

    def test_inherited_properties_follow_the_parent(self):
        body = parse_fragment('<div style="visibility: hidden"><span>x</span></div>')
        span = body.element_children[0].element_children[0]
        assert get_cached_style(span).visibility == "hidden"

    def test_child_can_override_inherited_visibility(self):
        body = parse_fragment('<div style="visibility: hidden"><span style="visibility: visible">x</span></div>')
        span = body.element_children[0].element_children[0]
        assert get_cached_style(span).visibility == "visible"

    def test_display_defaults(self):
        body = parse_fragment("<div></div><span></span><li></li>")
        div, span, li = body.element_children
        assert get_cached_style(div).display == "block"
        assert get_cached_style(span).display == "inline"
        assert get_cached_style(li).display == "list-item"

    def test_pseudo_content(self):
        doc = parse_html('<style>.a::before { content: "Hi" }</style><div class="a"></div><div></div>')
        styled, plain = doc.body.element_children
        assert get_cached_pseudo_content(styled, "::before") == '"Hi"'
        assert get_cached_pseudo_content(plain, "::before") == "none"


class TestCacheSession:
    def test_inactive_session_always_recomputes(self, monkeypatch):
        calls = _count_compute_style(monkeypatch)
        body = parse_fragment("<div></div>")
        div = body.element_children[0]
        get_cached_style(div)
        first = len(calls)
        get_cached_style(div)
        assert len(calls) == 2 * first

    def test_active_session_computes_once(self, monkeypatch):
        calls = _count_compute_style(monkeypatch)
        body = parse_fragment("<div></div>")
        div = body.element_children[0]
        with caching():
            get_cached_style(div)
            first = len(calls)
            get_cached_style(div)
            assert len(calls) == first

    def test_results_match_with_and_without_cache(self, monkeypatch):
        calls = _count_compute_style(monkeypatch)
        body = parse_fragment('<button aria-describedby="d">Save <b>now</b></button><p id="d">desc</p>')
        button = body.element_children[0]

        uncached = [compute_accessible_name(button) for _ in range(3)]
        uncached_calls = len(calls)
        calls.clear()
        with caching():
            cached = [compute_accessible_name(button) for _ in range(3)]
        assert cached == uncached == ["Save now"] * 3
        assert len(calls) < uncached_calls

    def test_nested_sessions_clear_on_outermost_end(self):
        body = parse_fragment("<div></div>")
        div = body.element_children[0]
        with caching():
            with caching():
                get_cached_style(div)
                assert style_cache.depth == 2
            assert style_cache.stats()["entries"]["style"] > 0
        assert style_cache.depth == 0
        assert style_cache.stats()["entries"]["style"] == 0
        assert not is_caching_active()

    def test_end_without_begin_is_harmless(self):
        aria_cache.end()
        assert aria_cache.depth == 0
        assert not aria_cache.active

    def test_with_cache_wraps_a_call(self):
        body = parse_fragment("<div></div>")
        div = body.element_children[0]

        def read_display(element):
            assert is_caching_active()
            return get_cached_style(element).display

        assert with_cache(read_display, div) == "block"
        assert not is_caching_active()

    def test_async_session(self):
        async def run():
            async with caching_async():
                return is_caching_active()

        assert asyncio.run(run())
        assert not is_caching_active()

    def test_hit_and_miss_counters(self):
        with caching():
            selector_cache.lookup("query_all", "k", lambda: [])
            selector_cache.lookup("query_all", "k", lambda: [])
        stats = cache_stats()["selector"]
        assert stats["hits"] >= 1
        assert stats["misses"] >= 1


def test_selector_cache_key_distinguishes_roots_and_modes():
    doc = parse_html("<div></div>")
    div = doc.body.element_children[0]
    assert selector_cache_key("a", doc, "light") == f"a:light@document:{doc.uid}"
    assert selector_cache_key("a", doc, "light") != selector_cache_key("a", parse_html("<div></div>"), "light")
    assert selector_cache_key("a", div, "light") != selector_cache_key("a", doc, "light")
    assert selector_cache_key("a", doc, "light") != selector_cache_key("a", doc, "shadow")


def _assert_released():
    for session in (style_cache, aria_cache, selector_cache):
        assert session.depth == 0
        assert not any(session.stats()["entries"].values())


class TestSessionsCloseOnError:
    def _fill_and_fail(self):
        div = parse_fragment("<div></div>").element_children[0]
        get_cached_style(div)
        selector_cache.lookup("query_all", "k", lambda: [div])
        raise RuntimeError("boom")

    def test_caching_block(self):
        with pytest.raises(RuntimeError):
            with caching():
                self._fill_and_fail()
        _assert_released()

    def test_with_cache(self):
        with pytest.raises(RuntimeError):
            with_cache(self._fill_and_fail)
        _assert_released()

    def test_session_scoped(self):
        with pytest.raises(RuntimeError):
            with style_cache.scoped():
                assert style_cache.depth == 1
                self._fill_and_fail()
        assert style_cache.depth == 0
        assert style_cache.stats()["entries"]["style"] == 0

    def test_with_cache_async_resolves(self):
        async def compute(element):
            await asyncio.sleep(0)
            assert is_caching_active()
            return get_cached_style(element).display

        div = parse_fragment("<div></div>").element_children[0]
        assert asyncio.run(with_cache_async(compute, div)) == "block"
        _assert_released()

    def test_with_cache_async_rejects(self):
        async def compute():
            await asyncio.sleep(0)
            self._fill_and_fail()

        with pytest.raises(RuntimeError):
            asyncio.run(with_cache_async(compute))
        _assert_released()


class TestSelectorResultsPerDocument:
    def test_each_document_gets_its_own_results(self):
        first = parse_html("<button>one</button>")
        second = parse_html("<button>two</button><button>three</button>")
        with caching():
            assert [el.text_content for el in query_selector_all(first, "button")] == ["one"]
            assert [el.text_content for el in query_selector_all(second, "button")] == ["two", "three"]
            assert [el.text_content for el in query_selector_all(first, "button")] == ["one"]

    def test_evaluators_with_different_registries_do_not_share_entries(self):
        doc = parse_html("<p>x</p>")
        bare = QueryEvaluator(SelectorEngineRegistry())
        with caching():
            assert len(query_selector_all(doc, "p")) == 1
            assert bare.query_selector_all(doc, "p") == []
            assert bare.query_selector(doc, "p") is None
