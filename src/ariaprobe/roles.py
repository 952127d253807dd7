"""ARIA role resolution.

Roles come from the first recognised token of the `role` attribute, else
from the element's implicit HTML mapping. `none`/`presentation` only stick
when the element has no presentation conflict (a global ARIA attribute valid
for its implicit role, or focusability), and they propagate to required-owned
children such as list items and table parts.
"""

from __future__ import annotations

from collections.abc import Callable

from .cache import aria_cache
from .node import Element

# Global ARIA attributes with the roles on which they are prohibited.
GLOBAL_ARIA_ATTRIBUTES: tuple[tuple[str, frozenset[str]], ...] = (
    ("aria-atomic", frozenset()),
    ("aria-busy", frozenset()),
    ("aria-controls", frozenset()),
    ("aria-current", frozenset()),
    ("aria-describedby", frozenset()),
    ("aria-details", frozenset()),
    ("aria-dropeffect", frozenset()),
    ("aria-flowto", frozenset()),
    ("aria-grabbed", frozenset()),
    ("aria-hidden", frozenset()),
    ("aria-keyshortcuts", frozenset()),
    (
        "aria-label",
        frozenset(
            {
                "caption",
                "code",
                "deletion",
                "emphasis",
                "generic",
                "insertion",
                "paragraph",
                "presentation",
                "strong",
                "subscript",
                "superscript",
            }
        ),
    ),
    (
        "aria-labelledby",
        frozenset(
            {
                "caption",
                "code",
                "deletion",
                "emphasis",
                "generic",
                "insertion",
                "paragraph",
                "presentation",
                "strong",
                "subscript",
                "superscript",
            }
        ),
    ),
    ("aria-live", frozenset()),
    ("aria-owns", frozenset()),
    ("aria-relevant", frozenset()),
    ("aria-roledescription", frozenset({"generic"})),
)

VALID_ROLES: frozenset[str] = frozenset(
    {
        "alert",
        "alertdialog",
        "application",
        "article",
        "banner",
        "blockquote",
        "button",
        "caption",
        "cell",
        "checkbox",
        "code",
        "columnheader",
        "combobox",
        "complementary",
        "contentinfo",
        "definition",
        "deletion",
        "dialog",
        "directory",
        "document",
        "emphasis",
        "feed",
        "figure",
        "form",
        "generic",
        "grid",
        "gridcell",
        "group",
        "heading",
        "img",
        "insertion",
        "link",
        "list",
        "listbox",
        "listitem",
        "log",
        "main",
        "mark",
        "marquee",
        "math",
        "meter",
        "menu",
        "menubar",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "navigation",
        "none",
        "note",
        "option",
        "paragraph",
        "presentation",
        "progressbar",
        "radio",
        "radiogroup",
        "region",
        "row",
        "rowgroup",
        "rowheader",
        "scrollbar",
        "search",
        "searchbox",
        "separator",
        "slider",
        "spinbutton",
        "status",
        "strong",
        "subscript",
        "superscript",
        "switch",
        "tab",
        "table",
        "tablist",
        "tabpanel",
        "term",
        "textbox",
        "time",
        "timer",
        "toolbar",
        "tooltip",
        "tree",
        "treegrid",
        "treeitem",
    }
)

_LANDMARK_ANCESTOR_TAGS: frozenset[str] = frozenset({"article", "aside", "main", "nav", "section"})
_LANDMARK_ANCESTOR_ROLES: frozenset[str] = frozenset({"article", "complementary", "main", "navigation", "region"})

_INPUT_TYPE_TO_ROLE: dict[str, str] = {
    "button": "button",
    "checkbox": "checkbox",
    "image": "button",
    "number": "spinbutton",
    "radio": "radio",
    "range": "slider",
    "reset": "button",
    "submit": "button",
}

# Child tag -> parent tags through which `presentation` propagates.
_PRESENTATION_INHERITANCE_PARENTS: dict[str, frozenset[str]] = {
    "dd": frozenset({"dl", "div"}),
    "div": frozenset({"dl"}),
    "dt": frozenset({"dl", "div"}),
    "li": frozenset({"ol", "ul"}),
    "tbody": frozenset({"table"}),
    "td": frozenset({"tr"}),
    "tfoot": frozenset({"table"}),
    "th": frozenset({"tr"}),
    "thead": frozenset({"table"}),
    "tr": frozenset({"thead", "tbody", "tfoot", "table"}),
}


def _is_within_landmark(element: Element) -> bool:
    parent = element.parent_element
    while parent is not None:
        if parent.name in _LANDMARK_ANCESTOR_TAGS:
            return True
        if (parent.get_attribute("role") or "") in _LANDMARK_ANCESTOR_ROLES:
            return True
        parent = parent.parent_element
    return False


def _has_explicit_accessible_name(element: Element) -> bool:
    return element.has_attribute("aria-label") or element.has_attribute("aria-labelledby")


def has_global_aria_attribute(element: Element, for_role: str | None = None) -> bool:
    """True when the element carries a global ARIA attribute not prohibited for `for_role`."""
    role = for_role or ""
    for attr, prohibited in GLOBAL_ARIA_ATTRIBUTES:
        if role in prohibited:
            continue
        if element.has_attribute(attr):
            return True
    return False


def _tabindex(element: Element) -> int | None:
    value = element.get_attribute("tabindex")
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_natively_focusable(element: Element) -> bool:
    name = element.name
    if name in ("button", "details", "select", "textarea"):
        return True
    if name in ("a", "area"):
        return element.has_attribute("href")
    if name == "input":
        return element.type != "hidden"
    return False


def is_natively_disabled(element: Element) -> bool:
    return element.name in ("button", "input", "select", "textarea", "option", "optgroup") and element.has_attribute(
        "disabled"
    )


def is_focusable(element: Element) -> bool:
    """Focusable by native tabbing or a non-negative tabindex, and not natively disabled."""
    if is_natively_disabled(element):
        return False
    if is_natively_focusable(element):
        return True
    tabindex = _tabindex(element)
    return tabindex is not None and tabindex >= 0


def _input_role(element: Element) -> str | None:
    input_type = element.type

    if input_type == "search":
        return "combobox" if element.has_attribute("list") else "searchbox"

    if input_type in ("email", "tel", "text", "url"):
        list_id = element.get_attribute("list")
        if list_id:
            root = element.root_node()
            get_by_id = getattr(root, "get_element_by_id", None)
            datalist = get_by_id(list_id) if get_by_id is not None else None
            if datalist is not None and datalist.name == "datalist":
                return "combobox"
        return "textbox"

    if input_type == "password":
        return "textbox"
    if input_type == "hidden":
        return None
    if input_type == "file":
        return "button"
    return _INPUT_TYPE_TO_ROLE.get(input_type, "textbox")


def _select_role(element: Element) -> str:
    if element.has_attribute("multiple"):
        return "listbox"
    try:
        size = int(element.get_attribute("size") or "")
    except ValueError:
        size = 0
    return "listbox" if size > 1 else "combobox"


def _closest_table(element: Element) -> Element | None:
    node = element.parent_element
    while node is not None:
        if node.name == "table":
            return node
        node = node.parent_element
    return None


def _cell_role(element: Element) -> str:
    table = _closest_table(element)
    if table is not None and table.get_attribute("role") in ("grid", "treegrid"):
        return "gridcell"
    return "cell"


def _header_cell_role(element: Element) -> str | None:
    scope = element.get_attribute("scope")
    if scope in ("col", "colgroup"):
        return "columnheader"
    if scope in ("row", "rowgroup"):
        return "rowheader"

    next_sibling = element.next_element_sibling
    prev_sibling = element.previous_element_sibling
    parent = element.parent_element
    row = parent if parent is not None and parent.name == "tr" else None

    if next_sibling is None and prev_sibling is None:
        # A lone header cell in a single-row table labels nothing.
        if row is not None:
            table = _closest_table(row)
            if table is not None and sum(1 for el in table.iter_elements() if el.name == "tr") <= 1:
                return None
        return "columnheader"

    def is_header_cell(el: Element | None) -> bool:
        return el is not None and el.name == "th"

    def is_non_empty_data_cell(el: Element | None) -> bool:
        return el is not None and el.name == "td" and bool(el.text_content.strip() or el.element_children)

    if is_header_cell(next_sibling) and is_header_cell(prev_sibling):
        return "columnheader"
    if is_non_empty_data_cell(next_sibling) or is_non_empty_data_cell(prev_sibling):
        return "rowheader"
    return "columnheader"


def _image_role(element: Element) -> str:
    if (
        element.get_attribute("alt") == ""
        and not element.get_attribute("title")
        and not has_global_aria_attribute(element, None)
        and _tabindex(element) is None
    ):
        return "presentation"
    return "img"


def _static(role: str) -> Callable[[Element], str | None]:
    return lambda _element: role


_IMPLICIT_ROLES: dict[str, Callable[[Element], str | None]] = {
    # Links
    "a": lambda el: "link" if el.has_attribute("href") else None,
    "area": lambda el: "link" if el.has_attribute("href") else None,
    # Sections and landmarks
    "article": _static("article"),
    "aside": _static("complementary"),
    "footer": lambda el: None if _is_within_landmark(el) else "contentinfo",
    "header": lambda el: None if _is_within_landmark(el) else "banner",
    "main": _static("main"),
    "nav": _static("navigation"),
    "section": lambda el: "region" if _has_explicit_accessible_name(el) else None,
    "search": _static("search"),
    # Forms
    "button": _static("button"),
    "datalist": _static("listbox"),
    "fieldset": _static("group"),
    "form": lambda el: "form" if _has_explicit_accessible_name(el) else None,
    "input": _input_role,
    "meter": _static("meter"),
    "optgroup": _static("group"),
    "option": _static("option"),
    "output": _static("status"),
    "progress": _static("progressbar"),
    "select": _select_role,
    "textarea": _static("textbox"),
    # Lists
    "dd": _static("definition"),
    "dl": _static("list"),
    "dt": _static("term"),
    "li": _static("listitem"),
    "menu": _static("list"),
    "ol": _static("list"),
    "ul": _static("list"),
    # Tables
    "caption": _static("caption"),
    "table": _static("table"),
    "tbody": _static("rowgroup"),
    "td": _cell_role,
    "tfoot": _static("rowgroup"),
    "th": _header_cell_role,
    "thead": _static("rowgroup"),
    "tr": _static("row"),
    # Media
    "figure": _static("figure"),
    "img": _image_role,
    "svg": _static("img"),
    # Interactive
    "details": _static("group"),
    "dialog": _static("dialog"),
    "summary": _static("button"),
    # Text-level semantics
    "blockquote": _static("blockquote"),
    "code": _static("code"),
    "del": _static("deletion"),
    "dfn": _static("term"),
    "em": _static("emphasis"),
    "hr": _static("separator"),
    "ins": _static("insertion"),
    "mark": _static("mark"),
    "p": _static("paragraph"),
    "strong": _static("strong"),
    "sub": _static("subscript"),
    "sup": _static("superscript"),
    "time": _static("time"),
    # Grouping
    "address": _static("group"),
    "hgroup": _static("group"),
    # Headings
    "h1": _static("heading"),
    "h2": _static("heading"),
    "h3": _static("heading"),
    "h4": _static("heading"),
    "h5": _static("heading"),
    "h6": _static("heading"),
    # Document
    "html": _static("document"),
    "math": _static("math"),
}


def get_explicit_role(element: Element) -> str | None:
    """Return the first recognised token of the `role` attribute."""
    for token in (element.get_attribute("role") or "").split():
        role = token.lower()
        if role in VALID_ROLES:
            return role
    return None


def get_implicit_role(element: Element) -> str | None:
    resolver = _IMPLICIT_ROLES.get(element.name)
    if resolver is None:
        return None
    return resolver(element)


def has_presentation_conflict(element: Element, implicit_role: str | None = None) -> bool:
    """True when `presentation`/`none` must be ignored for this element."""
    return has_global_aria_attribute(element, implicit_role) or is_focusable(element)


def _inherits_presentation(element: Element) -> bool:
    current: Element = element
    while True:
        parent = current.parent_element
        valid_parents = _PRESENTATION_INHERITANCE_PARENTS.get(current.name)
        if parent is None or valid_parents is None or parent.name not in valid_parents:
            return False
        if get_explicit_role(parent) in ("none", "presentation") and not has_presentation_conflict(parent):
            return not has_presentation_conflict(element, get_implicit_role(element))
        current = parent


def _compute_role(element: Element) -> str | None:
    explicit_role = get_explicit_role(element)

    if explicit_role is None:
        if _inherits_presentation(element):
            return None
        return get_implicit_role(element)

    if explicit_role in ("none", "presentation"):
        implicit_role = get_implicit_role(element)
        if has_presentation_conflict(element, implicit_role):
            return implicit_role
        return None

    return explicit_role


def get_aria_role(element: Element) -> str | None:
    """Return the element's effective ARIA role, or None when it has none."""
    return aria_cache.lookup("role", element, lambda: _compute_role(element))


def get_heading_level(element: Element) -> int | None:
    level = element.get_attribute("aria-level")
    if level is not None:
        try:
            value = int(level.strip())
        except ValueError:
            value = 0
        if value >= 1:
            return value
    if element.name in ("h1", "h2", "h3", "h4", "h5", "h6"):
        return int(element.name[1])
    return None
