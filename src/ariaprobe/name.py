"""Accessible name and description computation (W3C accname).

The traversal mirrors the accname steps: hidden check, `aria-labelledby`,
embedded control values, `aria-label`, native text alternatives (labels, alt,
legend, caption, ...), name from content, then `title`.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Callable

from .cache import aria_cache, get_cached_pseudo_content, get_cached_style
from .hidden import is_element_hidden_for_aria, is_ignored_for_aria
from .node import Element, Node, Text
from .roles import get_aria_role, get_explicit_role

NAME_FROM_CONTENT_ROLES: frozenset[str] = frozenset(
    {
        "button",
        "cell",
        "checkbox",
        "columnheader",
        "gridcell",
        "heading",
        "link",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "option",
        "radio",
        "row",
        "rowheader",
        "switch",
        "tab",
        "tooltip",
        "treeitem",
    }
)

NAME_PROHIBITED_ROLES: frozenset[str] = frozenset(
    {
        "caption",
        "code",
        "definition",
        "deletion",
        "emphasis",
        "generic",
        "insertion",
        "mark",
        "paragraph",
        "presentation",
        "strong",
        "subscript",
        "suggestion",
        "superscript",
        "term",
        "time",
    }
)

# Roles that contribute their content when reached as a descendant of the target.
EMBEDDED_NAME_FROM_CONTENT_ROLES: frozenset[str] = frozenset(
    {
        "",
        "caption",
        "code",
        "contentinfo",
        "definition",
        "deletion",
        "emphasis",
        "generic",
        "insertion",
        "list",
        "listitem",
        "mark",
        "none",
        "paragraph",
        "presentation",
        "region",
        "row",
        "rowgroup",
        "section",
        "strong",
        "subscript",
        "superscript",
        "table",
        "term",
        "time",
    }
)

_PLACEHOLDER_INPUT_TYPES: frozenset[str] = frozenset({"text", "password", "search", "tel", "email", "url"})
_WHITESPACE_RE = re.compile(r"\s+")
_INVISIBLE_CHARS_RE = re.compile("[\u200b\u00ad]")


class ControlCategory(enum.Enum):
    """How an element contributes when it is embedded in another element's name."""

    TEXTBOX = "textbox"
    CHOICE = "choice"
    RANGE = "range"
    MENU = "menu"
    NONE = "none"

    @classmethod
    def for_role(cls, role: str) -> ControlCategory:
        return _ROLE_CATEGORIES.get(role, cls.NONE)


_ROLE_CATEGORIES: dict[str, ControlCategory] = {
    "textbox": ControlCategory.TEXTBOX,
    "combobox": ControlCategory.CHOICE,
    "listbox": ControlCategory.CHOICE,
    "progressbar": ControlCategory.RANGE,
    "scrollbar": ControlCategory.RANGE,
    "slider": ControlCategory.RANGE,
    "spinbutton": ControlCategory.RANGE,
    "meter": ControlCategory.RANGE,
    "menu": ControlCategory.MENU,
}


class NameOptions:
    """Options shared by the name and description entry points."""

    __slots__ = ("include_hidden",)

    include_hidden: bool

    def __init__(self, include_hidden: bool = False) -> None:
        self.include_hidden = bool(include_hidden)

    def __repr__(self) -> str:
        return f"NameOptions(include_hidden={self.include_hidden})"


class Embedding:
    """An element a traversal is nested in, with whether that element was hidden."""

    __slots__ = ("element", "hidden")

    element: Element
    hidden: bool

    def __init__(self, element: Element) -> None:
        self.element = element
        self.hidden = is_element_hidden_for_aria(element)


class NameContext:
    __slots__ = (
        "embedded_in_described_by",
        "embedded_in_label",
        "embedded_in_labelled_by",
        "embedded_in_native_text_alternative",
        "embedded_in_target",
        "include_hidden",
        "referrers",
        "visited",
    )

    visited: set[Element]
    # Elements whose labels or aria-labelledby are being resolved further up
    referrers: frozenset[Element]
    include_hidden: bool
    embedded_in_labelled_by: Embedding | None
    embedded_in_described_by: Embedding | None
    embedded_in_label: Embedding | None
    embedded_in_native_text_alternative: Embedding | None
    # "self" while computing the target, "descendant" below it, None inside a referenced subtree
    embedded_in_target: str | None

    def __init__(self, include_hidden: bool = False, embedded_in_target: str | None = None) -> None:
        self.visited = set()
        self.referrers = frozenset()
        self.include_hidden = include_hidden
        self.embedded_in_labelled_by = None
        self.embedded_in_described_by = None
        self.embedded_in_label = None
        self.embedded_in_native_text_alternative = None
        self.embedded_in_target = embedded_in_target

    def copy(self, **changes: object) -> NameContext:
        clone = NameContext.__new__(NameContext)
        for slot in NameContext.__slots__:
            setattr(clone, slot, getattr(self, slot))
        for key, value in changes.items():
            setattr(clone, key, value)
        return clone

    def fresh_reference(self, referrer: Element, **embedding: object) -> NameContext:
        """Context for a subtree that `referrer` points at.

        Each reference starts with its own visited set, so two references may
        reach the same text. Embeddings are cleared.
        """
        context = self.copy(
            visited=set(),
            referrers=self.referrers | {referrer},
            embedded_in_labelled_by=None,
            embedded_in_described_by=None,
            embedded_in_label=None,
            embedded_in_native_text_alternative=None,
            embedded_in_target=None,
        )
        for key, value in embedding.items():
            setattr(context, key, value)
        return context

    @property
    def in_hidden_traversal(self) -> bool:
        return any(
            embedding is not None and embedding.hidden
            for embedding in (
                self.embedded_in_labelled_by,
                self.embedded_in_described_by,
                self.embedded_in_native_text_alternative,
                self.embedded_in_label,
            )
        )


def normalize_whitespace(text: str) -> str:
    """Flatten to an accname string: drop zero-width characters, collapse whitespace, trim."""
    text = text.replace("\r\n", "\n")
    text = _INVISIBLE_CHARS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def get_id_refs(element: Element, id_refs: str | None) -> list[Element]:
    """Resolve a whitespace-separated id list in the element's own tree, deduplicated."""
    if not id_refs:
        return []
    root = element.root_node()
    get_by_id = getattr(root, "get_element_by_id", None)
    if get_by_id is None:
        return []
    elements: list[Element] = []
    for ref_id in id_refs.split():
        target = get_by_id(ref_id)
        if target is not None and target not in elements:
            elements.append(target)
    return elements


def _allows_name_from_content(role: str, is_descendant: bool) -> bool:
    if role in NAME_FROM_CONTENT_ROLES:
        return True
    return is_descendant and role in EMBEDDED_NAME_FROM_CONTENT_ROLES


def compute_accessible_name(
    element: Element, options: NameOptions | None = None, *, include_hidden: bool = False
) -> str:
    """Compute the accessible name of `element`.

    Args:
        element: The element to name
        options: Optional `NameOptions`; overrides `include_hidden` when given
        include_hidden: Include content hidden from assistive technology

    Returns:
        The normalized name, or an empty string
    """
    if options is not None:
        include_hidden = options.include_hidden
    store = "name_hidden" if include_hidden else "name"
    return aria_cache.lookup(store, element, lambda: _compute_accessible_name(element, include_hidden))


def _compute_accessible_name(element: Element, include_hidden: bool) -> str:
    role = get_aria_role(element) or ""
    if role in NAME_PROHIBITED_ROLES:
        return ""
    if role == "" and get_explicit_role(element) in ("presentation", "none"):
        return ""

    context = NameContext(include_hidden=include_hidden, embedded_in_target="self")
    return normalize_whitespace(_compute_name(element, context))


def compute_accessible_description(
    element: Element, options: NameOptions | None = None, *, include_hidden: bool = False
) -> str:
    """Compute the accessible description: `aria-describedby`, then `aria-description`, then `title`.

    `title` only counts when it was not already used as the name.
    """
    if options is not None:
        include_hidden = options.include_hidden
    store = "description_hidden" if include_hidden else "description"
    return aria_cache.lookup(
        store, element, lambda: _compute_accessible_description(element, include_hidden)
    )


def _compute_accessible_description(element: Element, include_hidden: bool) -> str:
    context = NameContext(include_hidden=include_hidden)

    refs = get_id_refs(element, element.get_attribute("aria-describedby"))
    if refs:
        parts = [
            _compute_name(ref, context.fresh_reference(element, embedded_in_described_by=Embedding(ref)))
            for ref in refs
        ]
        return normalize_whitespace(" ".join(parts))

    aria_description = element.get_attribute("aria-description")
    if aria_description and aria_description.strip():
        return normalize_whitespace(aria_description)

    title = element.get_attribute("title")
    if title and title.strip():
        name = compute_accessible_name(element, include_hidden=include_hidden)
        if name != normalize_whitespace(title):
            return normalize_whitespace(title)
    return ""


def _compute_name(element: Element, context: NameContext) -> str:
    if element in context.visited:
        return ""

    child_context = context.copy(
        embedded_in_target="descendant" if context.embedded_in_target == "self" else context.embedded_in_target
    )

    # Hidden, not referenced
    if not context.include_hidden and (
        is_ignored_for_aria(element)
        or (not context.in_hidden_traversal and is_element_hidden_for_aria(element))
    ):
        context.visited.add(element)
        return ""

    # aria-labelledby, unless already inside one
    if context.embedded_in_labelled_by is None and element not in context.referrers:
        refs = get_id_refs(element, element.get_attribute("aria-labelledby"))
        if refs:
            parts = [
                _compute_name(
                    ref,
                    context.fresh_reference(element, embedded_in_labelled_by=Embedding(ref)),
                )
                for ref in refs
            ]
            combined = " ".join(parts)
            if combined.strip():
                return combined

    role = get_aria_role(element) or ""

    # Embedded control
    if (
        context.embedded_in_label is not None
        or context.embedded_in_labelled_by is not None
        or context.embedded_in_target == "descendant"
    ):
        embedded_value = _embedded_control_value(element, role, context, child_context)
        if embedded_value is not None:
            context.visited.add(element)
            return embedded_value

    aria_label = element.get_attribute("aria-label")
    if aria_label and aria_label.strip():
        context.visited.add(element)
        return aria_label

    native_name = _native_text_alternative(element, context, child_context)
    if native_name is not None:
        return native_name

    if (
        _allows_name_from_content(role, context.embedded_in_target == "descendant")
        or (element.name == "summary" and role not in ("presentation", "none"))
        or context.embedded_in_labelled_by is not None
        or context.embedded_in_described_by is not None
        or context.embedded_in_label is not None
        or context.embedded_in_native_text_alternative is not None
    ):
        context.visited.add(element)
        content_name = _name_from_content(element, child_context)
        trimmed = content_name.strip() if context.embedded_in_target == "self" else content_name
        if trimmed:
            return content_name

    if role not in ("presentation", "none"):
        context.visited.add(element)
        title = element.get_attribute("title")
        if title and title.strip():
            return title

    context.visited.add(element)
    return ""


# Embedded controls


def _textbox_value(element: Element, role: str, context: NameContext) -> str | None:
    if element.name in ("input", "textarea"):
        return element.value
    return element.text_content


def _choice_value(element: Element, role: str, context: NameContext) -> str | None:
    if element.name == "select":
        selected = element.selected_options
        if not selected and element.options:
            selected = [element.options[0]]
        return " ".join(_compute_name(option, context) for option in selected)

    listbox: Element | None = element
    if role == "combobox":
        listbox = next((el for el in element.iter_elements() if get_aria_role(el) == "listbox"), None)
    if listbox is not None:
        selected = [
            el
            for el in listbox.iter_elements()
            if el.get_attribute("aria-selected") == "true" and get_aria_role(el) == "option"
        ]
        if selected:
            return " ".join(_compute_name(option, context) for option in selected)
    if element.name == "input":
        return element.value
    return None


def _range_value(element: Element, role: str, context: NameContext) -> str | None:
    value_text = element.get_attribute("aria-valuetext")
    if value_text:
        return value_text
    value_now = element.get_attribute("aria-valuenow")
    if value_now:
        return value_now
    return element.get_attribute("value") or ""


def _menu_value(element: Element, role: str, context: NameContext) -> str | None:
    return ""


_EMBEDDED_VALUE_HANDLERS: dict[ControlCategory, Callable[[Element, str, NameContext], str | None]] = {
    ControlCategory.TEXTBOX: _textbox_value,
    ControlCategory.CHOICE: _choice_value,
    ControlCategory.RANGE: _range_value,
    ControlCategory.MENU: _menu_value,
}


def _embedded_control_value(
    element: Element, role: str, context: NameContext, child_context: NameContext
) -> str | None:
    handler = _EMBEDDED_VALUE_HANDLERS.get(ControlCategory.for_role(role))
    if handler is None:
        return None
    # A control does not contribute its value to its own label.
    if context.embedded_in_label is not None and context.embedded_in_label.element in element.labels:
        return None
    if context.embedded_in_labelled_by is not None and context.embedded_in_labelled_by.element in get_id_refs(
        element, element.get_attribute("aria-labelledby")
    ):
        return None
    return handler(element, role, child_context)


# Native text alternatives


def _name_from_labels(element: Element, labels: list[Element], context: NameContext) -> str:
    if element in context.referrers:
        return ""
    names = [
        _compute_name(label, context.fresh_reference(element, embedded_in_label=Embedding(label))) for label in labels
    ]
    return " ".join(name for name in names if name)


def _first_child_named(element: Element, name: str) -> Element | None:
    for child in element.element_children:
        if child.name == name:
            return child
    return None


def _native_child_name(child: Element, child_context: NameContext) -> str:
    return _compute_name(child, child_context.copy(embedded_in_native_text_alternative=Embedding(child)))


def _native_text_alternative(element: Element, context: NameContext, child_context: NameContext) -> str | None:
    name = element.name
    labelled_by = element.get_attribute("aria-labelledby")

    if name == "input":
        input_type = element.type
        if input_type in ("button", "submit", "reset"):
            context.visited.add(element)
            value = element.value
            if value and value.strip():
                return value
            if input_type == "submit":
                return "Submit"
            if input_type == "reset":
                return "Reset"
            return element.get_attribute("title") or ""

        if input_type == "file":
            context.visited.add(element)
            labels = element.labels
            if labels and context.embedded_in_labelled_by is None:
                return _name_from_labels(element, labels, context)
            return "Choose File"

        if input_type == "image":
            context.visited.add(element)
            labels = element.labels
            if labels and context.embedded_in_labelled_by is None:
                return _name_from_labels(element, labels, context)
            alt = element.get_attribute("alt")
            if alt and alt.strip():
                return alt
            title = element.get_attribute("title")
            if title and title.strip():
                return title
            return "Submit"

    if name == "button" and not labelled_by:
        labels = element.labels
        if labels:
            context.visited.add(element)
            return _name_from_labels(element, labels, context)

    if name == "output" and not labelled_by:
        labels = element.labels
        if labels:
            context.visited.add(element)
            return _name_from_labels(element, labels, context)
        return element.get_attribute("title") or ""

    if name in ("input", "textarea", "select") and not labelled_by:
        context.visited.add(element)
        labels = element.labels
        if labels:
            return _name_from_labels(element, labels, context)
        use_placeholder = (name == "input" and element.type in _PLACEHOLDER_INPUT_TYPES) or name == "textarea"
        title = element.get_attribute("title")
        if not use_placeholder or title:
            return title or ""
        return element.get_attribute("placeholder") or ""

    if name == "fieldset" and not labelled_by:
        context.visited.add(element)
        legend = _first_child_named(element, "legend")
        if legend is not None:
            return _native_child_name(legend, child_context)
        return element.get_attribute("title") or ""

    if name == "figure" and not labelled_by:
        context.visited.add(element)
        figcaption = _first_child_named(element, "figcaption")
        if figcaption is not None:
            return _native_child_name(figcaption, child_context)
        return element.get_attribute("title") or ""

    if name in ("img", "area"):
        context.visited.add(element)
        alt = element.get_attribute("alt")
        if alt and alt.strip():
            return alt
        return element.get_attribute("title") or ""

    if name == "table":
        context.visited.add(element)
        caption = _first_child_named(element, "caption")
        if caption is not None:
            return _native_child_name(caption, child_context)
        summary = element.get_attribute("summary")
        if summary:
            return summary

    if element.namespace == "svg":
        context.visited.add(element)
        title = _first_child_named(element, "title")
        if title is not None:
            return _compute_name(title, child_context.copy(embedded_in_labelled_by=Embedding(title)))
        if name == "a":
            xlink_title = element.get_attribute("xlink:title")
            if xlink_title and xlink_title.strip():
                return xlink_title

    return None


# Name from content


def _pseudo_text(element: Element, pseudo: str) -> str:
    content = get_cached_pseudo_content(element, pseudo)
    if content in ("none", "normal", ""):
        return ""
    if len(content) >= 2 and content[0] == content[-1] and content[0] in "\"'":
        return content[1:-1]
    return ""


def _name_from_content(element: Element, context: NameContext) -> str:
    tokens: list[str] = []

    def visit(node: Node, skip_slotted: bool) -> None:
        if skip_slotted and node.assigned_slot is not None:
            return
        if isinstance(node, Element):
            token = _compute_name(node, context)
            if get_cached_style(node).display != "inline" or node.name == "br":
                token = f" {token} "
            tokens.append(token)
        elif isinstance(node, Text):
            tokens.append(node.data)

    tokens.append(_pseudo_text(element, "::before"))

    if element.name == "slot":
        assigned = element.assigned_nodes()
        if assigned:
            for node in assigned:
                visit(node, False)
            tokens.append(_pseudo_text(element, "::after"))
            return "".join(tokens)

    for child in element.children:
        visit(child, True)

    if element.shadow_root is not None:
        for child in element.shadow_root.children:
            visit(child, True)

    for owned in get_id_refs(element, element.get_attribute("aria-owns")):
        visit(owned, True)

    tokens.append(_pseudo_text(element, "::after"))
    return "".join(tokens)
