import asyncio

import pytest

from ariaprobe.hidden import check_element_visibility, is_element_hidden_for_aria, is_ignored_for_aria
from ariaprobe.node import Element, Rect
from ariaprobe.parser import parse_fragment, parse_html
from ariaprobe.visibility import (
    compute_element_box,
    get_cursor,
    get_element_center,
    get_viewport_ratio,
    intersection_ratio,
    is_element_interactable,
    is_element_visible,
    is_in_viewport,
    receives_pointer_events,
)


def _by_id(markup, element_id):
    return parse_fragment(markup).owner_document.get_element_by_id(element_id)


class TestHiddenForAria:
    def test_aria_hidden_applies_to_descendants(self):
        element = _by_id('<div aria-hidden="true"><span id=t>x</span></div>', "t")
        assert is_element_hidden_for_aria(element)
        assert not is_element_hidden_for_aria(element, include_aria=False)

    def test_display_none_ancestor(self):
        assert is_element_hidden_for_aria(_by_id('<div style="display:none"><b id=t>x</b></div>', "t"))

    def test_visibility_hidden(self):
        element = _by_id('<div style="visibility: hidden" id=t>x</div>', "t")
        assert is_element_hidden_for_aria(element)
        assert not is_element_hidden_for_aria(element, include_css=False)

    def test_inert_subtree(self):
        assert is_element_hidden_for_aria(_by_id("<div inert><button id=t>b</button></div>", "t"))

    def test_display_contents_with_content_is_not_hidden(self):
        element = _by_id('<div style="display: contents" id=t>text</div>', "t")
        assert not is_element_hidden_for_aria(element)

    def test_empty_display_contents_is_hidden(self):
        assert is_element_hidden_for_aria(_by_id('<div style="display: contents" id=t></div>', "t"))

    def test_ignored_tags(self):
        doc = parse_html("<script>1</script><p>x</p>")
        script = doc.head.element_children[0]
        assert is_ignored_for_aria(script)
        assert is_element_hidden_for_aria(script, include_aria=False, include_css=False)

    def test_unslotted_light_child_is_hidden(self):
        body = parse_fragment(
            '<div><template shadowrootmode="open"><slot name="a"></slot></template><span id=t>x</span></div>'
        )
        span = body.owner_document.get_element_by_id("t")
        assert is_element_hidden_for_aria(span)
        assert not is_element_hidden_for_aria(span, include_css=False, include_slot=False)

    def test_detached_element_is_hidden(self):
        assert is_element_hidden_for_aria(Element("div"))


class TestVisibilityModes:
    def test_modes(self):
        body = parse_fragment('<div aria-hidden="true" id=a>x</div><div style="visibility:hidden" id=b>y</div>')
        doc = body.owner_document
        aria_hidden, css_hidden = doc.get_element_by_id("a"), doc.get_element_by_id("b")

        assert not check_element_visibility(aria_hidden, "aria")
        assert check_element_visibility(aria_hidden, "ariaOrVisible")
        assert not check_element_visibility(aria_hidden, "ariaAndVisible")
        assert not check_element_visibility(css_hidden, "ariaOrVisible")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            check_element_visibility(Element("div"), "sometimes")


class TestElementVisibility:
    def test_rendered_element_is_visible(self):
        assert is_element_visible(_by_id("<span id=t>x</span>", "t"))

    @pytest.mark.parametrize(
        "markup",
        [
            '<span id=t style="display:none">x</span>',
            '<span id=t style="visibility:hidden">x</span>',
            '<span id=t style="opacity:0">x</span>',
            '<span id=t style="width:0px">x</span>',
            "<details><summary>s</summary><p id=t>body</p></details>",
            '<span id=t style="content-visibility: hidden">x</span>',
        ],
    )
    def test_invisible(self, markup):
        assert not is_element_visible(_by_id(markup, "t"))

    def test_open_details_content_is_visible(self):
        assert is_element_visible(_by_id("<details open><summary>s</summary><p id=t>body</p></details>", "t"))

    def test_summary_of_closed_details_is_visible(self):
        assert is_element_visible(_by_id("<details><summary id=t>s</summary><p>body</p></details>", "t"))

    def test_display_contents_depends_on_children(self):
        assert is_element_visible(_by_id('<div style="display:contents" id=t><span>x</span></div>', "t"))
        assert not is_element_visible(_by_id('<div style="display:contents" id=t></div>', "t"))

    def test_detached_element(self):
        assert not is_element_visible(Element("div"))


class TestBoxes:
    def test_box_records_inline_and_cursor(self):
        element = _by_id('<a href="#" id=t style="cursor: pointer">x</a>', "t")
        box = compute_element_box(element)
        assert box.visible
        assert box.inline
        assert box.cursor == "pointer"

    def test_default_cursor_is_not_reported(self):
        assert get_cursor(_by_id("<div id=t>x</div>", "t")) is None

    def test_pointer_events_inherit(self):
        element = _by_id('<div style="pointer-events: none"><button id=t>b</button></div>', "t")
        assert not receives_pointer_events(element)
        assert not is_element_interactable(element)

    def test_disabled_is_not_interactable(self):
        assert not is_element_interactable(_by_id("<button id=t disabled>b</button>", "t"))
        assert is_element_interactable(_by_id("<button id=t>b</button>", "t"))


class TestViewport:
    def test_element_center(self):
        doc = parse_html("<div id=t></div>")
        element = doc.get_element_by_id("t")
        element.rect = Rect(10, 20, 30, 40)
        assert get_element_center(element) == (25, 40)

    def test_intersection_ratio(self):
        doc = parse_html("<div id=t></div>", viewport=(100, 100))
        element = doc.get_element_by_id("t")
        element.rect = Rect(50, 0, 100, 10)
        assert intersection_ratio(element) == 0.5
        assert is_in_viewport(element)
        assert not is_in_viewport(element, threshold=0.75)

    def test_outside_viewport(self):
        doc = parse_html("<div id=t></div>", viewport=(100, 100))
        element = doc.get_element_by_id("t")
        element.rect = Rect(200, 200, 10, 10)
        assert intersection_ratio(element) == 0.0

    def test_get_viewport_ratio_resolves_once(self):
        doc = parse_html("<div id=t></div>", viewport=(100, 100))
        element = doc.get_element_by_id("t")
        element.rect = Rect(0, 0, 10, 10)
        assert asyncio.run(get_viewport_ratio(element)) == 1.0

    def test_get_viewport_ratio_for_hidden_element(self):
        doc = parse_html('<div id=t style="display:none"></div>')
        assert asyncio.run(get_viewport_ratio(doc.get_element_by_id("t"))) == 0.0
