from ariaprobe.evaluator import query_selector_all
from ariaprobe.name import compute_accessible_name
from ariaprobe.node import Element, Rect, compare_document_position, sort_in_document_order
from ariaprobe.parser import parse_fragment, parse_html
from ariaprobe.roles import get_aria_role


class TestTreeLoader:
    def test_scaffold_is_created_for_fragments(self):
        doc = parse_html("<p>Hello</p>")
        assert doc.document_element.name == "html"
        assert doc.head is not None
        assert doc.body.element_children[0].name == "p"

    def test_head_content_stays_in_head(self):
        doc = parse_html("<title>T</title><p>x</p>")
        assert doc.head.element_children[0].name == "title"
        assert doc.body.element_children[0].name == "p"

    def test_paragraph_is_closed_by_next_paragraph(self):
        body = parse_fragment("<p>one<p>two")
        assert [el.name for el in body.element_children] == ["p", "p"]
        assert body.element_children[1].text_content == "two"

    def test_list_items_close_each_other(self):
        body = parse_fragment("<ul><li>a<li>b<li>c</ul>")
        ul = body.element_children[0]
        assert [li.text_content for li in ul.element_children] == ["a", "b", "c"]

    def test_bare_rows_get_a_tbody(self):
        body = parse_fragment("<table><tr><td>1</td></tr></table>")
        table = body.element_children[0]
        assert table.element_children[0].name == "tbody"
        assert table.element_children[0].element_children[0].name == "tr"

    def test_button_start_tag_closes_open_button(self):
        body = parse_fragment("<button>a<button>b")
        assert [(el.name, el.text_content) for el in body.element_children] == [("button", "a"), ("button", "b")]
        names = [compute_accessible_name(el) for el in query_selector_all(body, "role=button")]
        assert names == ["a", "b"]

    def test_bare_cells_get_a_row_and_tbody(self):
        doc = parse_html("<table><td>x</table>")
        cell = doc.body.query_one("td")
        assert cell.parent.name == "tr"
        assert cell.parent.parent.name == "tbody"
        assert get_aria_role(cell) == "cell"

    def test_formatting_elements_are_reopened_after_a_closed_paragraph(self):
        body = parse_fragment("<p><b>bold</p>after")
        assert [el.name for el in body.element_children] == ["p", "b"]
        assert body.element_children[1].text_content == "after"

    def test_void_elements_do_not_nest(self):
        body = parse_fragment("<input><span>after</span>")
        assert [el.name for el in body.element_children] == ["input", "span"]

    def test_style_elements_register_rules(self):
        doc = parse_html("<style>.x { display: none }</style><div class=x></div>")
        assert len(doc.style_rules) == 1

    def test_declarative_shadow_root(self):
        body = parse_fragment(
            '<div id="host"><template shadowrootmode="open"><slot></slot></template><span>light</span></div>'
        )
        host = body.element_children[0]
        assert host.shadow_root is not None
        slot = host.shadow_root.element_children[0]
        span = host.element_children[0]
        assert span.assigned_slot is slot
        assert slot.assigned_nodes() == [span]

    def test_plain_template_keeps_its_content(self):
        body = parse_fragment("<template><p>inert</p></template>")
        template = body.element_children[0]
        assert template.element_children == []
        assert template.content.element_children[0].name == "p"


class TestFormState:
    def test_input_type_defaults_to_text(self):
        body = parse_fragment('<input type="bogus"><button>b</button>')
        assert body.element_children[0].type == "text"
        assert body.element_children[1].type == "submit"

    def test_value_property_overrides_attribute(self):
        body = parse_fragment('<input value="a">')
        field = body.element_children[0]
        assert field.value == "a"
        field.value = "b"
        assert field.value == "b"
        assert field.get_attribute("value") == "a"

    def test_checkbox_checked(self):
        body = parse_fragment('<input type="checkbox" checked><input type="checkbox">')
        first, second = body.element_children
        assert first.checked
        assert not second.checked
        second.checked = True
        assert second.checked

    def test_select_defaults_to_first_enabled_option(self):
        body = parse_fragment("<select><option disabled>x</option><option>y</option><option>z</option></select>")
        select = body.element_children[0]
        assert [option.value for option in select.selected_options] == ["y"]
        assert select.value == "y"

    def test_select_value_setter(self):
        body = parse_fragment('<select><option value="1">One</option><option value="2">Two</option></select>')
        select = body.element_children[0]
        select.value = "2"
        assert select.value == "2"

    def test_fieldset_disables_descendants_but_not_legend(self):
        body = parse_fragment(
            "<fieldset disabled><legend><button id=l>in legend</button></legend><button id=b>b</button></fieldset>"
        )
        doc = body.owner_document
        assert doc.get_element_by_id("b").disabled
        assert not doc.get_element_by_id("l").disabled

    def test_label_for_and_nested(self):
        body = parse_fragment('<label for="a">A</label><input id="a"><label>B <input id="b"></label>')
        doc = body.owner_document
        first, second = doc.get_element_by_id("a"), doc.get_element_by_id("b")
        assert [label.text_content for label in first.labels] == ["A"]
        assert body.element_children[2].control is second

    def test_label_for_unlabelable_target(self):
        body = parse_fragment('<label for="d">D</label><div id="d"></div>')
        assert body.element_children[0].control is None


class TestDocumentOrder:
    def test_sort_and_dedupe(self):
        body = parse_fragment("<a></a><b></b><i></i>")
        a, b, i = body.element_children
        assert sort_in_document_order([i, a, b, a]) == [a, b, i]

    def test_shadow_content_sorts_before_host_children(self):
        body = parse_fragment(
            '<div id="host"><template shadowrootmode="open"><em>shadow</em></template><span>light</span></div>'
        )
        host = body.element_children[0]
        em = host.shadow_root.element_children[0]
        span = host.element_children[0]
        assert sort_in_document_order([span, em, host]) == [host, em, span]
        assert compare_document_position(em, span) == -1
        assert compare_document_position(span, span) == 0


class TestGeometry:
    def test_rect_edges(self):
        rect = Rect(10, 20, 30, 40)
        assert (rect.left, rect.top, rect.right, rect.bottom) == (10, 20, 40, 60)
        assert not rect.is_empty
        assert Rect(0, 0, 0, 5).is_empty

    def test_box_from_inline_style(self):
        body = parse_fragment('<div style="left: 5px; top: 6px; width: 70px; height: 8px"></div>')
        assert body.element_children[0].get_bounding_client_rect() == Rect(5, 6, 70, 8)

    def test_assigned_rect_wins(self):
        body = parse_fragment('<div style="width: 70px"></div>')
        div = body.element_children[0]
        div.rect = Rect(1, 2, 3, 4)
        assert div.get_bounding_client_rect() == Rect(1, 2, 3, 4)

    def test_display_none_has_empty_box(self):
        body = parse_fragment('<div hidden style="width: 70px; height: 8px"></div>')
        assert body.element_children[0].get_bounding_client_rect().is_empty

    def test_detached_element_has_empty_box(self):
        assert Element("div").get_bounding_client_rect().is_empty
