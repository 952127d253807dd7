import pytest

from ariaprobe.combinators import INTERNAL_ENGINE_TYPES, split_compound_body
from ariaprobe.evaluator import create_registry, query_selector, query_selector_all
from ariaprobe.parser import parse_fragment


@pytest.fixture
def registry():
    return create_registry()


def _texts(elements):
    return [el.text_content for el in elements]


class TestSplitCompoundBody:
    @pytest.mark.parametrize(
        ("body", "parts"),
        [
            ("a && b", ["a", "b"]),
            ('text="x && y" && .c', ['text="x && y"', ".c"]),
            (":is(.a && .b) && c", [":is(.a && .b)", "c"]),
            ("[data-x='&&'] && p", ["[data-x='&&']", "p"]),
            ("&&", []),
        ],
    )
    def test_split(self, body, parts):
        assert split_compound_body(body) == parts

    def test_custom_separator(self):
        assert split_compound_body("a || b", "||") == ["a", "b"]


class TestRegistration:
    def test_every_internal_engine_is_registered(self, registry):
        names = registry.names()
        for engine_type in INTERNAL_ENGINE_TYPES:
            assert engine_type.name in names
        for relation in ("left-of", "right-of", "above", "below", "near"):
            assert f"internal:{relation}" in names


class TestHas:
    @pytest.fixture
    def body(self):
        return parse_fragment(
            '<div class="card"><span>Price</span></div><div class="card"><em>Sold</em></div>'
        )

    def test_has(self, body):
        assert _texts(query_selector_all(body, "div >> internal:has=span")) == ["Price"]

    def test_has_accepts_any_engine(self, body):
        assert _texts(query_selector_all(body, "div >> internal:has=text=Sold")) == ["Sold"]

    def test_has_not(self, body):
        found = query_selector_all(body, ".card >> internal:has-not=span")
        assert [el.name for el in found] == ["span", "div", "em"]

    def test_filter_includes_the_root(self, registry, body):
        assert [el.name for el in registry.query_all(body, "internal:has=em")] == ["body", "div"]


class TestHasText:
    @pytest.fixture
    def body(self):
        return parse_fragment("<ul><li>Buy <b>milk</b></li><li>Walk  dog</li><li>Done: taxes</li></ul>")

    def test_has_text_uses_the_whole_subtree(self, body):
        assert _texts(query_selector_all(body, "li >> internal:has-text=buy milk")) == ["Buy milk"]

    def test_has_text_collapses_whitespace(self, body):
        assert _texts(query_selector_all(body, 'li >> internal:has-text="Walk dog"')) == ["Walk  dog"]

    def test_has_not_text(self, body):
        found = query_selector_all(body, "li >> internal:has-not-text=/^done/i")
        assert [el.name for el in found] == ["li", "b", "li"]


class TestAndOr:
    @pytest.fixture
    def body(self):
        return parse_fragment(
            '<p class="foo">1</p><p class="foo bar">2</p><p class="bar">3</p><p class="baz">4</p>'
        )

    def test_and(self, body):
        assert _texts(query_selector_all(body, "internal:and=.foo && .bar")) == ["2"]
        assert query_selector_all(body, "internal:and=.foo && .baz") == []

    def test_and_mixes_engines(self, body):
        assert _texts(query_selector_all(body, "internal:and=p && text=3")) == ["3"]

    def test_or_is_deduplicated_and_ordered(self, body):
        assert _texts(query_selector_all(body, "internal:or=.baz && .foo && .bar")) == ["1", "2", "3", "4"]


class TestLabel:
    @pytest.fixture
    def body(self):
        return parse_fragment(
            "<label for=email>Email address</label><input id=email>"
            "<label>Remember <input type=checkbox id=remember></label>"
            "<span id=phone-label>Phone</span><input id=phone aria-labelledby=phone-label>"
            "<label for=missing>Email backup</label>"
        )

    def test_label_for(self, body):
        assert query_selector(body, "internal:label=email").attrs["id"] == "email"

    def test_wrapping_label(self, body):
        assert query_selector(body, "internal:label=remember").attrs["id"] == "remember"

    def test_aria_labelledby(self, body):
        assert [el.attrs["id"] for el in query_selector_all(body, "internal:label=phone")] == ["phone"]

    def test_exact(self, body):
        assert query_selector_all(body, 'internal:label="Email"') == []
        assert [el.attrs["id"] for el in query_selector_all(body, 'internal:label="Email address"')] == ["email"]


class TestVisible:
    def test_visible(self):
        body = parse_fragment('<li>a</li><li style="display:none">b</li><li>c</li>')
        assert _texts(query_selector_all(body, "li >> internal:visible=true")) == ["a", "c"]
