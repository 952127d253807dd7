import pytest

from ariaprobe.parser import parse_fragment
from ariaprobe.roles import get_aria_role, get_explicit_role, get_heading_level, is_focusable


def _first(markup):
    return parse_fragment(markup).element_children[0]


@pytest.mark.parametrize(
    ("markup", "role"),
    [
        ('<a href="/x">x</a>', "link"),
        ("<a>x</a>", None),
        ("<button>b</button>", "button"),
        ('<input type="checkbox">', "checkbox"),
        ('<input type="search">', "searchbox"),
        ('<input type="file">', "button"),
        ('<input type="hidden">', None),
        ("<input>", "textbox"),
        ("<select><option>a</option></select>", "combobox"),
        ("<select multiple><option>a</option></select>", "listbox"),
        ('<select size="3"><option>a</option></select>', "listbox"),
        ("<ul><li>a</li></ul>", "list"),
        ("<nav></nav>", "navigation"),
        ("<section></section>", None),
        ('<section aria-label="S"></section>', "region"),
        ("<h3>t</h3>", "heading"),
        ("<div>plain</div>", None),
        ('<img alt="" src="x.png">', "presentation"),
        ('<img alt="cat" src="x.png">', "img"),
    ],
)
def test_implicit_roles(markup, role):
    assert get_aria_role(_first(markup)) == role


def test_header_is_banner_only_outside_sectioning():
    body = parse_fragment("<header id=top></header><article><header id=inner></header></article>")
    doc = body.owner_document
    assert get_aria_role(doc.get_element_by_id("top")) == "banner"
    assert get_aria_role(doc.get_element_by_id("inner")) is None


def test_input_with_datalist_is_combobox():
    body = parse_fragment('<input list="opts"><datalist id="opts"><option>a</option></datalist>')
    assert get_aria_role(body.element_children[0]) == "combobox"


class TestExplicitRoles:
    def test_first_valid_token_wins(self):
        element = _first('<div role="bogus tab button"></div>')
        assert get_explicit_role(element) == "tab"
        assert get_aria_role(element) == "tab"

    def test_role_is_case_insensitive(self):
        assert get_aria_role(_first('<div role="BUTTON"></div>')) == "button"

    def test_unknown_role_falls_back_to_implicit(self):
        assert get_aria_role(_first('<nav role="bogus"></nav>')) == "navigation"


class TestPresentation:
    def test_presentation_removes_the_role(self):
        assert get_aria_role(_first('<ul role="presentation"><li>a</li></ul>')) is None

    def test_focusable_element_keeps_implicit_role(self):
        assert get_aria_role(_first('<button role="none">b</button>')) == "button"

    def test_global_aria_attribute_is_a_conflict(self):
        assert get_aria_role(_first('<h2 role="none" aria-describedby="x">t</h2>')) == "heading"

    def test_tabindex_is_a_conflict(self):
        assert get_aria_role(_first('<nav role="presentation" tabindex="0"></nav>')) == "navigation"

    def test_disabled_button_is_not_focusable(self):
        element = _first('<button role="none" disabled>b</button>')
        assert not is_focusable(element)
        assert get_aria_role(element) is None

    def test_list_items_inherit_presentation(self):
        ul = _first('<ul role="none"><li>a</li></ul>')
        assert get_aria_role(ul.element_children[0]) is None

    def test_table_parts_inherit_presentation(self):
        table = _first('<table role="presentation"><tr><td>cell</td></tr></table>')
        tbody = table.element_children[0]
        row = tbody.element_children[0]
        assert get_aria_role(tbody) is None
        assert get_aria_role(row) is None
        assert get_aria_role(row.element_children[0]) is None

    def test_inheritance_stops_at_unrelated_children(self):
        ul = _first('<ul role="none"><li><a href="/">x</a></li></ul>')
        link = ul.element_children[0].element_children[0]
        assert get_aria_role(link) == "link"


class TestTables:
    def test_cells_in_grid_are_gridcells(self):
        table = _first('<table role="grid"><tr><td>a</td><td>b</td></tr></table>')
        cell = next(el for el in table.iter_elements() if el.name == "td")
        assert get_aria_role(cell) == "gridcell"

    def test_header_cells(self):
        table = _first(
            "<table><tr><th>Name</th><th>Age</th></tr><tr><th>Ann</th><td>30</td></tr></table>"
        )
        ths = [el for el in table.iter_elements() if el.name == "th"]
        assert get_aria_role(ths[0]) == "columnheader"
        assert get_aria_role(ths[2]) == "rowheader"

    def test_scope_attribute(self):
        table = _first('<table><tr><th scope="row">r</th><td>1</td></tr><tr><td>2</td></tr></table>')
        th = next(el for el in table.iter_elements() if el.name == "th")
        assert get_aria_role(th) == "rowheader"


class TestHeadingLevel:
    def test_from_tag(self):
        assert get_heading_level(_first("<h4>x</h4>")) == 4

    def test_aria_level_wins(self):
        assert get_heading_level(_first('<div role="heading" aria-level="7">x</div>')) == 7

    def test_invalid_aria_level_falls_back(self):
        assert get_heading_level(_first('<h2 aria-level="zero">x</h2>')) == 2

    def test_non_heading(self):
        assert get_heading_level(_first("<p>x</p>")) is None
