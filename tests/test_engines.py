import logging
import re

import pytest

from ariaprobe.engine import (
    ParsedSelector,
    SelectorEngine,
    SelectorEngineRegistry,
    parse_selector,
    split_selector_chain,
)
from ariaprobe.engines import (
    CssEngine,
    RoleEngine,
    TextEngine,
    XPathEngine,
    builtin_engines,
    parse_role_body,
    parse_text_body,
)
from ariaprobe.errors import SelectorError, XPathError
from ariaprobe.parser import parse_fragment


class TestParseSelector:
    @pytest.mark.parametrize(
        ("selector", "engine", "body"),
        [
            ("css=div.a", "css", "div.a"),
            ("text=Hello", "text", "Hello"),
            ("XPATH=//a", "xpath", "//a"),
            ("internal:has-text=x", "internal:has-text", "x"),
            ("div.a", "css", "div.a"),
            ("a[href='x=y']", "css", "a[href='x=y']"),
            ("role=button[name=\"a=b\"]", "role", 'button[name="a=b"]'),
        ],
    )
    def test_engine_prefix(self, selector, engine, body):
        assert parse_selector(selector) == ParsedSelector(engine, body)

    def test_chain_split(self):
        assert split_selector_chain('css=.a >> text="x >> y" >> b') == ["css=.a", 'text="x >> y"', "b"]
        assert split_selector_chain(" >> ") == []
        assert split_selector_chain("div") == ["div"]


class TestRegistry:
    def test_register_and_lookup(self):
        registry = SelectorEngineRegistry()
        for engine in builtin_engines():
            registry.register(engine)
        assert registry.names() == ["css", "xpath", "text", "role"]
        assert "css" in registry
        assert isinstance(registry.get("role"), RoleEngine)
        assert registry.get("nope") is None

    def test_engines_need_a_name(self):
        with pytest.raises(ValueError):
            SelectorEngineRegistry().register(SelectorEngine())

    def test_unknown_engine_warns(self, caplog):
        registry = SelectorEngineRegistry()
        body = parse_fragment("<p>x</p>")
        with caplog.at_level(logging.WARNING, logger="ariaprobe.engine"):
            assert registry.query_all(body, "bogus=x") == []
        assert "Unknown selector engine: bogus" in caplog.text

    def test_custom_engine(self):
        class TagEngine(SelectorEngine):
            name = "tag"

            def query_all(self, root, body):
                return [el for el in root.iter_elements() if el.name == body]

        registry = SelectorEngineRegistry()
        registry.register(TagEngine())
        body = parse_fragment("<p>a</p><b>b</b><p>c</p>")
        assert [el.text_content for el in registry.query_all(body, "tag=p")] == ["a", "c"]
        assert registry.query(body, "tag=b").text_content == "b"


class TestCssAndXPathEngines:
    def test_css(self):
        body = parse_fragment("<ul><li class=x>a</li><li>b</li></ul>")
        assert [el.text_content for el in CssEngine().query_all(body, "li.x")] == ["a"]

    def test_invalid_css_yields_nothing(self):
        body = parse_fragment("<p>x</p>")
        assert CssEngine().query_all(body, "p[") == []
        with pytest.raises(SelectorError):
            CssEngine().validate("p[")

    def test_xpath(self):
        body = parse_fragment("<ul><li>a</li><li>b</li></ul>")
        assert [el.text_content for el in XPathEngine().query_all(body, "//li[2]")] == ["b"]
        assert XPathEngine().query_all(body, "//li[") == []
        with pytest.raises(XPathError):
            XPathEngine().validate("//li[")


class TestTextEngine:
    @pytest.fixture
    def body(self):
        return parse_fragment(
            "<div>Hello <span>World</span></div>"
            '<p style="display:none">Hello hidden</p>'
            "<p>hello, again</p>"
        )

    def test_substring_is_case_insensitive(self, body):
        assert [el.name for el in TextEngine().query_all(body, "hello")] == ["div", "p"]

    def test_matches_direct_text_only(self, body):
        assert [el.name for el in TextEngine().query_all(body, "World")] == ["span"]

    def test_quoted_body_is_exact(self, body):
        assert [el.name for el in TextEngine().query_all(body, '"Hello"')] == ["div"]
        assert TextEngine().query_all(body, '"hello"') == []

    def test_regex_body(self, body):
        assert [el.name for el in TextEngine().query_all(body, "/wor.d/i")] == ["span"]
        assert TextEngine().query(body, "/^hello,/").name == "p"

    def test_hidden_elements_are_skipped(self, body):
        assert TextEngine().query_all(body, "hidden") == []


class TestParseTextBody:
    def test_plain(self):
        pattern = parse_text_body("Sign in")
        assert not pattern.exact
        assert pattern.regex is None
        assert pattern.matches("Please SIGN IN now")

    def test_exact_trims_content(self):
        pattern = parse_text_body("'Sign in'")
        assert pattern.exact
        assert pattern.matches("  Sign in ")
        assert not pattern.matches("Sign in now")

    def test_regex_flags(self):
        pattern = parse_text_body("/^b.r$/ims")
        assert pattern.regex.flags & re.IGNORECASE
        assert pattern.regex.flags & re.MULTILINE
        assert pattern.regex.flags & re.DOTALL
        assert pattern.matches("foo\nBAR")

    def test_invalid_regex_is_literal(self):
        pattern = parse_text_body("/a(/")
        assert pattern.regex is None
        assert pattern.text == "/a(/"
        assert pattern.matches("x /A(/ y")


class TestRoleEngine:
    @pytest.fixture
    def body(self):
        return parse_fragment(
            "<button>Save draft</button>"
            "<button>Save</button>"
            '<div role="button" aria-label="Cancel"></div>'
            '<button style="display:none">Save hidden</button>'
            "<h2>Title</h2>"
        )

    def test_role_only(self, body):
        assert len(RoleEngine().query_all(body, "button")) == 3

    def test_name_is_a_case_insensitive_substring(self, body):
        names = [el.text_content for el in RoleEngine().query_all(body, 'button[name="save"]')]
        assert names == ["Save draft", "Save"]

    def test_exact_name(self, body):
        found = RoleEngine().query_all(body, 'button[name="Save"][exact=true]')
        assert [el.text_content for el in found] == ["Save"]

    def test_aria_label_name(self, body):
        assert RoleEngine().query(body, "button[name='cancel']").get_attribute("role") == "button"

    def test_parse_role_body(self):
        query = parse_role_body("Button [name='Sub mit'] [exact=TRUE]")
        assert (query.role, query.name, query.exact) == ("button", "Sub mit", True)
        query = parse_role_body("  heading ")
        assert (query.role, query.name, query.exact) == ("heading", None, False)
