import pytest

from ariaprobe.errors import SelectorError
from ariaprobe.parser import parse_fragment, parse_html
from ariaprobe.selector import matches, parse_selector, query


@pytest.fixture
def body():
    return parse_fragment(
        '<ul id="menu" class="nav main">'
        '<li class="item" data-kind="first-entry">One</li>'
        '<li class="item">Two</li>'
        '<li class="item active"><a href="/three">Three</a></li>'
        "</ul>"
        '<form><input name="q" required><input name="off" disabled><button>Go</button></form>'
        "<p></p>"
    )


def _texts(elements):
    return [el.text_content for el in elements]


class TestBasicSelectors:
    def test_tag_class_and_id(self, body):
        assert len(body.query("li")) == 3
        assert _texts(body.query(".active")) == ["Three"]
        assert body.query_one("#menu").name == "ul"
        assert body.query("UL.nav.main")[0].attrs["id"] == "menu"

    def test_selector_list_keeps_document_order(self, body):
        assert [el.name for el in body.query("button, ul")] == ["ul", "button"]

    @pytest.mark.parametrize(
        ("selector", "count"),
        [
            ("[data-kind]", 1),
            ('[data-kind="first-entry"]', 1),
            ('[data-kind|="first"]', 1),
            ('[data-kind^="first"]', 1),
            ('[data-kind$="entry"]', 1),
            ('[data-kind*="st-en"]', 1),
            ('[class~="item"]', 3),
            ('[data-kind="FIRST-ENTRY" i]', 1),
            ('[data-kind^=""]', 0),
        ],
    )
    def test_attribute_operators(self, body, selector, count):
        assert len(body.query(selector)) == count


class TestCombinators:
    def test_child_and_descendant(self, body):
        assert _texts(body.query("ul > li > a")) == ["Three"]
        assert _texts(body.query("ul a")) == ["Three"]
        assert body.query("ul > a") == []

    def test_siblings(self, body):
        assert _texts(body.query("li + li")) == ["Two", "Three"]
        assert _texts(body.query(".active ~ li")) == []
        assert _texts(body.query("[data-kind] ~ li")) == ["Two", "Three"]


class TestPseudoClasses:
    @pytest.mark.parametrize(
        ("selector", "texts"),
        [
            ("li:first-child", ["One"]),
            ("li:last-child", ["Three"]),
            ("li:nth-child(2)", ["Two"]),
            ("li:nth-child(odd)", ["One", "Three"]),
            ("li:nth-child(2n)", ["Two"]),
            ("li:nth-last-child(1)", ["Three"]),
            ("li:not(.active)", ["One", "Two"]),
            ("li:is(.active, [data-kind])", ["One", "Three"]),
            ("li:has(a)", ["Three"]),
            ("li:has(> a[href])", ["Three"]),
        ],
    )
    def test_structural(self, body, selector, texts):
        assert _texts(body.query(selector)) == texts

    def test_form_states(self, body):
        assert [el.attrs["name"] for el in body.query("input:required")] == ["q"]
        assert [el.attrs["name"] for el in body.query("input:disabled")] == ["off"]
        assert [el.name for el in body.query("form :enabled")] == ["input", "button"]

    def test_empty_and_link(self, body):
        assert [el.name for el in body.query(":empty")] == ["input", "input", "p"]
        assert _texts(body.query(":link")) == ["Three"]

    def test_root_and_scope(self):
        doc = parse_html("<div><span>x</span></div>")
        assert doc.query(":root")[0].name == "html"
        div = doc.body.element_children[0]
        assert [el.name for el in query(div, ":scope > span")] == ["span"]

    def test_checked(self):
        body = parse_fragment(
            "<input type=checkbox checked><input type=checkbox>"
            "<select><option>a</option><option selected>b</option></select>"
        )
        assert [el.name for el in body.query(":checked")] == ["input", "option"]


class TestMatching:
    def test_matches_and_closest(self, body):
        link = body.query_one("a")
        assert link.matches("li.active > a")
        assert not link.matches("p a")
        assert link.closest("ul").attrs["id"] == "menu"
        assert link.closest("table") is None
        assert matches(link, "a[href^='/']")

    def test_query_does_not_include_the_root(self, body):
        ul = body.query_one("ul")
        assert query(ul, "ul") == []


class TestInvalidSelectors:
    @pytest.mark.parametrize(
        "selector",
        [
            "",
            "   ",
            "div >",
            "li:hover",
            "a::before",
            '[title="open',
            "div $ span",
            "[=x]",
            "li:nth-child(x)",
            "li:not",
            "li:first-child()",
            "div, ",
        ],
    )
    def test_invalid(self, selector):
        with pytest.raises(SelectorError):
            parse_selector(selector)

    def test_query_propagates_parse_errors(self, body):
        with pytest.raises(SelectorError, match="Unsupported pseudo-class"):
            body.query("li:hover")
