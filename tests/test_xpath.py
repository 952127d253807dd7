import pytest

from ariaprobe.errors import SelectorError, XPathError
from ariaprobe.node import Text
from ariaprobe.parser import parse_fragment, parse_html
from ariaprobe.xpath import compile_xpath, evaluate_xpath, query_xpath, tokenize_xpath


@pytest.fixture
def doc():
    return parse_html(
        "<div id=list class='box wide'>"
        "<p title='first'>Alpha</p>"
        "<p>Beta <b>bold</b></p>"
        "<p lang='en-GB'>Gamma</p>"
        "</div>"
        "<section><p>Delta</p></section>"
    )


def _texts(elements):
    return [el.text_content for el in elements]


class TestLocationPaths:
    def test_absolute_and_descendant(self, doc):
        assert [el.name for el in query_xpath(doc, "/html/body/*")] == ["div", "section"]
        assert len(query_xpath(doc, "//p")) == 4

    def test_positional_predicates(self, doc):
        assert _texts(query_xpath(doc, "//div/p[2]")) == ["Beta bold"]
        assert _texts(query_xpath(doc, "//div/p[last()]")) == ["Gamma"]
        assert _texts(query_xpath(doc, "//div/p[position() < 3]")) == ["Alpha", "Beta bold"]

    def test_attribute_predicates(self, doc):
        assert _texts(query_xpath(doc, "//p[@title]")) == ["Alpha"]
        assert _texts(query_xpath(doc, "//p[@title='first']")) == ["Alpha"]
        assert _texts(query_xpath(doc, "//p[not(@title)]")) == ["Beta bold", "Gamma", "Delta"]

    def test_string_functions(self, doc):
        assert _texts(query_xpath(doc, "//p[contains(., 'ta')]")) == ["Beta bold", "Delta"]
        assert _texts(query_xpath(doc, "//p[starts-with(@lang, 'en')]")) == ["Gamma"]
        assert _texts(query_xpath(doc, "//p[normalize-space(text())='Beta']")) == ["Beta bold"]
        assert _texts(query_xpath(doc, "//p[string-length(.) = 5]")) == ["Alpha", "Gamma", "Delta"]
        assert query_xpath(doc, "//*[contains(concat(' ', @class, ' '), ' wide ')]")[0].attrs["id"] == "list"

    def test_axes(self, doc):
        assert _texts(query_xpath(doc, "//b/ancestor::div")) == ["AlphaBeta boldGamma"]
        assert _texts(query_xpath(doc, "//p[@title]/following-sibling::p")) == ["Beta bold", "Gamma"]
        assert _texts(query_xpath(doc, "//p[@lang]/preceding-sibling::p[1]")) == ["Beta bold"]
        assert [el.name for el in query_xpath(doc, "//b/..")] == ["p"]
        assert _texts(query_xpath(doc, "//section/preceding::p[@title]")) == ["Alpha"]

    def test_union_is_in_document_order(self, doc):
        assert [el.name for el in query_xpath(doc, "//section | //div")] == ["div", "section"]

    def test_boolean_operators(self, doc):
        assert _texts(query_xpath(doc, "//p[@title or @lang]")) == ["Alpha", "Gamma"]
        assert _texts(query_xpath(doc, "//p[b and contains(., 'Beta')]")) == ["Beta bold"]

    def test_count(self, doc):
        assert [el.name for el in query_xpath(doc, "//*[count(p) = 3]")] == ["div"]


class TestScoping:
    def test_absolute_path_stays_inside_element_root(self):
        body = parse_fragment("<div><span>in</span></div><span>out</span>")
        div = body.element_children[0]
        assert _texts(query_xpath(div, "//span")) == ["in"]

    def test_relative_path_from_element(self):
        body = parse_fragment("<div><span>in</span></div>")
        div = body.element_children[0]
        assert _texts(query_xpath(div, "span")) == ["in"]
        assert query_xpath(div, ".")[0] is div

    def test_text_nodes_are_filtered_from_queries(self, doc):
        nodes = evaluate_xpath(doc, "//p[1]/text()")
        assert all(isinstance(node, Text) for node in nodes)
        assert query_xpath(doc, "//p[1]/text()") == []


class TestErrors:
    @pytest.mark.parametrize(
        ("expression", "message"),
        [
            ("", "Empty XPath"),
            ("//p[", "Unexpected token"),
            ("//p[@title='x]", "Unterminated"),
            ("//p/sideways::b", "Unsupported XPath axis"),
            ("//p[frobnicate()]", "Unsupported XPath function"),
            ("//p[contains(.)]", "takes 2-2 arguments"),
            ("//p $", "Unexpected token"),
        ],
    )
    def test_malformed(self, expression, message):
        with pytest.raises(XPathError, match=message):
            compile_xpath(expression)

    def test_non_node_set_result(self, doc):
        with pytest.raises(XPathError, match="node-set"):
            evaluate_xpath(doc, "count(//p)")

    def test_xpath_errors_are_selector_errors(self):
        with pytest.raises(SelectorError):
            compile_xpath("//[")

    def test_tokenizer(self):
        types = [token.type for token in tokenize_xpath("//a[@href != '#']")]
        assert types == [
            "DOUBLE_SLASH",
            "NAME",
            "LBRACKET",
            "AT",
            "NAME",
            "OPERATOR",
            "LITERAL",
            "RBRACKET",
            "EOF",
        ]
