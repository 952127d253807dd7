"""Built-in selector dialects: css, xpath, text and role."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

from .cache import selector_cache
from .engine import SelectorEngine
from .errors import SelectorError
from .name import compute_accessible_name
from .node import Element, Node, Text
from .roles import get_aria_role
from .selector import parse_selector as parse_css_selector
from .selector import query as css_query
from .visibility import is_element_visible
from .xpath import compile_xpath, query_xpath

logger = logging.getLogger(__name__)

_REGEX_BODY_RE = re.compile(r"^/(.+)/([a-z]*)$", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
_WHITESPACE_RE = re.compile(r"\s+")


class TextPattern:
    """A text selector body: substring (case-insensitive), `"exact"` or `/regex/flags`."""

    __slots__ = ("exact", "regex", "text")

    text: str
    exact: bool
    regex: re.Pattern[str] | None

    def __init__(self, text: str, exact: bool = False, regex: re.Pattern[str] | None = None) -> None:
        self.text = text
        self.exact = exact
        self.regex = regex

    def __repr__(self) -> str:
        if self.regex is not None:
            return f"TextPattern(/{self.regex.pattern}/)"
        return f"TextPattern({self.text!r}, exact={self.exact})"

    def matches(self, content: str) -> bool:
        if self.regex is not None:
            return self.regex.search(content) is not None
        if self.exact:
            return content.strip() == self.text
        return self.text.lower() in content.lower()


def parse_text_body(body: str) -> TextPattern:
    """Parse a text body. A regex that fails to compile is matched as a plain substring."""
    match = _REGEX_BODY_RE.match(body)
    if match:
        flags = 0
        for flag in match.group(2):
            flags |= _REGEX_FLAGS.get(flag, 0)
        try:
            return TextPattern(match.group(1), regex=re.compile(match.group(1), flags))
        except re.error as exc:
            logger.debug("Treating invalid regex %r as literal text: %s", body, exc)
    if len(body) >= 2 and body[0] == body[-1] and body[0] in "\"'":
        return TextPattern(body[1:-1], exact=True)
    return TextPattern(body)


def normalized_text(element: Element) -> str:
    """Whitespace-collapsed text content, memoized in the selector cache."""
    return selector_cache.lookup(
        "text", element, lambda: _WHITESPACE_RE.sub(" ", element.text_content).strip()
    )


def direct_text(element: Element) -> str:
    return "".join(child.data for child in element.children if isinstance(child, Text))


def iter_visible_descendants(root: Node) -> Iterator[Element]:
    """Descendants of `root` that are visible; hidden elements are skipped but their children are not."""
    for element in root.iter_elements():
        if is_element_visible(element):
            yield element


class CssEngine(SelectorEngine):
    name = "css"

    def validate(self, body: str) -> None:
        parse_css_selector(body)

    def query_all(self, root: Node, body: str) -> list[Element]:
        try:
            return css_query(root, body)
        except SelectorError as exc:
            logger.debug("Invalid CSS selector %r: %s", body, exc)
            return []


class XPathEngine(SelectorEngine):
    name = "xpath"

    def validate(self, body: str) -> None:
        compile_xpath(body)

    def query_all(self, root: Node, body: str) -> list[Element]:
        try:
            return query_xpath(root, body)
        except SelectorError as exc:
            logger.debug("Invalid XPath expression %r: %s", body, exc)
            return []


class TextEngine(SelectorEngine):
    """Matches visible elements by their own (direct) text."""

    name = "text"

    def query(self, root: Node, body: str) -> Element | None:
        pattern = parse_text_body(body)
        return next((el for el in iter_visible_descendants(root) if pattern.matches(direct_text(el))), None)

    def query_all(self, root: Node, body: str) -> list[Element]:
        pattern = parse_text_body(body)
        return [el for el in iter_visible_descendants(root) if pattern.matches(direct_text(el))]


_ROLE_BODY_RE = re.compile(r"^([a-zA-Z]+)\s*((?:\[[^\]]*\]\s*)*)$")
_ROLE_NAME_RE = re.compile(r"""name\s*=\s*(["'])(.*?)\1""", re.IGNORECASE)
_ROLE_EXACT_RE = re.compile(r"exact\s*=\s*(true|false)", re.IGNORECASE)


class RoleQuery:
    __slots__ = ("exact", "name", "role")

    role: str
    name: str | None
    exact: bool

    def __init__(self, role: str, name: str | None = None, exact: bool = False) -> None:
        self.role = role
        self.name = name
        self.exact = exact

    def __repr__(self) -> str:
        return f"RoleQuery({self.role!r}, name={self.name!r}, exact={self.exact})"

    def matches(self, element: Element) -> bool:
        if get_aria_role(element) != self.role:
            return False
        if self.name is None:
            return True
        accessible_name = compute_accessible_name(element)
        if self.exact:
            return accessible_name == self.name
        return self.name.lower() in accessible_name.lower()


def parse_role_body(body: str) -> RoleQuery:
    """Parse `button`, `button[name="Submit"]` or `button[name="Submit"][exact=true]`."""
    body = body.strip()
    match = _ROLE_BODY_RE.match(body)
    if not match:
        return RoleQuery(body.lower())
    attributes = match.group(2)
    name_match = _ROLE_NAME_RE.search(attributes)
    exact_match = _ROLE_EXACT_RE.search(attributes)
    return RoleQuery(
        match.group(1).lower(),
        name_match.group(2) if name_match else None,
        exact_match is not None and exact_match.group(1).lower() == "true",
    )


class RoleEngine(SelectorEngine):
    """Matches visible elements by computed ARIA role and, optionally, accessible name."""

    name = "role"

    def query(self, root: Node, body: str) -> Element | None:
        role_query = parse_role_body(body)
        return next((el for el in iter_visible_descendants(root) if role_query.matches(el)), None)

    def query_all(self, root: Node, body: str) -> list[Element]:
        role_query = parse_role_body(body)
        return [el for el in iter_visible_descendants(root) if role_query.matches(el)]


def builtin_engines() -> list[SelectorEngine]:
    return [CssEngine(), XPathEngine(), TextEngine(), RoleEngine()]
