"""Minimal CSS stylesheet and declaration-block parsing.

Only what the style cascade consumes is understood: plain style rules with
selector lists and `prop: value` declarations. At-rules are skipped whole,
`!important` is dropped, and rules whose selector the selector engine rejects
are ignored.
"""

from __future__ import annotations

import logging
import re

from .errors import SelectorError
from .selector import SelectorList, parse_selector

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_PSEUDO_ELEMENT_RE = re.compile(r"::?(before|after)\s*$", re.IGNORECASE)


class StyleRule:
    __slots__ = ("declarations", "pseudo", "selector", "selector_text")

    selector_text: str
    selector: SelectorList
    pseudo: str | None
    declarations: dict[str, str]

    def __init__(
        self,
        selector_text: str,
        selector: SelectorList,
        declarations: dict[str, str],
        pseudo: str | None = None,
    ) -> None:
        self.selector_text = selector_text
        self.selector = selector
        self.declarations = declarations
        self.pseudo = pseudo

    def __repr__(self) -> str:
        return f"StyleRule({self.selector_text!r}, {self.declarations!r})"


def _split_top_level(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote = ""
    start = 0
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        elif ch == separator and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def parse_declarations(text: str | None) -> dict[str, str]:
    """Parse a declaration block body (`color: red; display: none`) into a dict."""
    declarations: dict[str, str] = {}
    if not text:
        return declarations
    for chunk in _split_top_level(text, ";"):
        if ":" not in chunk:
            continue
        prop, _, value = chunk.partition(":")
        prop = prop.strip().lower()
        value = value.strip()
        if value.lower().endswith("!important"):
            value = value[: -len("!important")].rstrip()
        if prop and value:
            declarations[prop] = value
    return declarations


def _skip_block(css: str, pos: int) -> int:
    """Return the index just past the `{...}` block starting at or after `pos`."""
    depth = 0
    length = len(css)
    while pos < length:
        ch = css[pos]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth <= 0:
                return pos + 1
        elif ch == ";" and depth == 0:
            return pos + 1
        pos += 1
    return length


def parse_stylesheet(css: str) -> list[StyleRule]:
    """Parse stylesheet text into style rules, one per selector in each selector list."""
    rules: list[StyleRule] = []
    css = _COMMENT_RE.sub("", css or "")
    pos = 0
    length = len(css)

    while pos < length:
        while pos < length and css[pos] in " \t\r\n\f":
            pos += 1
        if pos >= length:
            break

        if css[pos] == "@":
            pos = _skip_block(css, pos)
            continue

        open_brace = css.find("{", pos)
        if open_brace == -1:
            break
        close_brace = css.find("}", open_brace)
        if close_brace == -1:
            close_brace = length

        prelude = css[pos:open_brace].strip()
        declarations = parse_declarations(css[open_brace + 1 : close_brace])
        pos = close_brace + 1

        for selector_text in _split_top_level(prelude, ","):
            selector_text = selector_text.strip()
            if not selector_text:
                continue
            pseudo: str | None = None
            base = selector_text
            match = _PSEUDO_ELEMENT_RE.search(selector_text)
            if match:
                pseudo = "::" + match.group(1).lower()
                base = selector_text[: match.start()].strip() or "*"
            try:
                parsed = parse_selector(base)
            except SelectorError:
                logger.debug("Skipping unsupported style rule selector %r", selector_text)
                continue
            rules.append(StyleRule(selector_text, parsed, dict(declarations), pseudo))

    return rules
