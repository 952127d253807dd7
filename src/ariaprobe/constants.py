"""Shared element tables for the DOM model, parser, and style cascade."""

from __future__ import annotations

VOID_ELEMENTS: frozenset[str] = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# User-agent `display` defaults. Anything not listed is inline.
BLOCK_ELEMENTS: frozenset[str] = frozenset(
    {
        "address",
        "article",
        "aside",
        "blockquote",
        "body",
        "center",
        "dd",
        "details",
        "dialog",
        "dir",
        "div",
        "dl",
        "dt",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "html",
        "legend",
        "main",
        "menu",
        "nav",
        "ol",
        "p",
        "pre",
        "search",
        "section",
        "summary",
        "ul",
    }
)

SPECIAL_DISPLAY: dict[str, str] = {
    "li": "list-item",
    "table": "table",
    "caption": "table-caption",
    "thead": "table-header-group",
    "tbody": "table-row-group",
    "tfoot": "table-footer-group",
    "tr": "table-row",
    "td": "table-cell",
    "th": "table-cell",
    "col": "table-column",
    "colgroup": "table-column-group",
    "button": "inline-block",
    "input": "inline-block",
    "select": "inline-block",
    "textarea": "inline-block",
    "meter": "inline-block",
    "progress": "inline-block",
    "slot": "contents",
}

NONE_DISPLAY_ELEMENTS: frozenset[str] = frozenset(
    {
        "area",
        "base",
        "datalist",
        "head",
        "link",
        "meta",
        "noscript",
        "param",
        "rp",
        "script",
        "source",
        "style",
        "template",
        "title",
        "track",
    }
)

LABELABLE_ELEMENTS: frozenset[str] = frozenset(
    {"button", "input", "meter", "output", "progress", "select", "textarea"}
)

# Elements whose `disabled` attribute is honoured natively.
DISABLEABLE_ELEMENTS: frozenset[str] = frozenset(
    {"button", "fieldset", "input", "optgroup", "option", "select", "textarea"}
)

INPUT_TYPES: frozenset[str] = frozenset(
    {
        "button",
        "checkbox",
        "color",
        "date",
        "datetime-local",
        "email",
        "file",
        "hidden",
        "image",
        "month",
        "number",
        "password",
        "radio",
        "range",
        "reset",
        "search",
        "submit",
        "tel",
        "text",
        "time",
        "url",
        "week",
    }
)
