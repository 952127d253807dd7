"""CSS selectors for the `css` engine, `Node.query` and the style cascade.

Selectors are read in a single pass straight from the source string into a
small AST (`SelectorList` > `ComplexSelector` > `CompoundSelector` >
`SimpleSelector`). Functional pseudo-class arguments are compiled at parse
time, so a selector that parses is always safe to match.

Matching runs right to left: the rightmost compound is tested first, then
the combinators are walked back towards the root, backtracking over
ancestors and preceding siblings where the combinator allows more than one
candidate.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from functools import lru_cache
from typing import Any

from .errors import SelectorError, generate_error_message

_WHITESPACE = " \t\n\r\f"
_COMBINATORS = ">+~"

_NTH_RE = re.compile(r"^(?:(?P<a>[+-]?\d*)n(?P<b>[+-]\d+)?|(?P<index>[+-]?\d+))$")


def _error(code: str, detail: Any = None) -> SelectorError:
    return SelectorError(generate_error_message(code, None if detail is None else str(detail)), code)


class SimpleSelector:
    """One condition on an element.

    `kind` is one of "universal", "tag", "id", "class", "attribute" or
    "pseudo". For pseudo-classes `argument` holds the compiled argument:
    a `SelectorList` for :not/:is/:where, a `(combinator, SelectorList)`
    pair for :has and an `(a, b)` pair for the :nth-* family.
    """

    __slots__ = ("argument", "case_insensitive", "kind", "name", "operator", "value")

    kind: str
    name: str
    operator: str | None
    value: str
    case_insensitive: bool
    argument: Any

    def __init__(
        self,
        kind: str,
        name: str = "",
        operator: str | None = None,
        value: str = "",
        case_insensitive: bool = False,
        argument: Any = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.operator = operator
        self.value = value
        self.case_insensitive = case_insensitive
        self.argument = argument

    def __repr__(self) -> str:
        if self.kind == "attribute" and self.operator:
            return f"<{self.kind} [{self.name}{self.operator}{self.value!r}]>"
        return f"<{self.kind} {self.name}>" if self.name else f"<{self.kind}>"


class CompoundSelector:
    __slots__ = ("simples",)

    simples: list[SimpleSelector]

    def __init__(self, simples: list[SimpleSelector]) -> None:
        self.simples = simples

    def __repr__(self) -> str:
        return f"CompoundSelector({self.simples!r})"


class ComplexSelector:
    """Compounds joined by combinators.

    Each step pairs a compound with the combinator that links it to the step
    before it; the first step's combinator is the empty string.
    """

    __slots__ = ("steps",)

    steps: list[tuple[str, CompoundSelector]]

    def __init__(self, steps: list[tuple[str, CompoundSelector]]) -> None:
        self.steps = steps

    def __repr__(self) -> str:
        return f"ComplexSelector({self.steps!r})"


class SelectorList:
    __slots__ = ("selectors",)

    selectors: list[ComplexSelector]

    def __init__(self, selectors: list[ComplexSelector]) -> None:
        self.selectors = selectors

    def __repr__(self) -> str:
        return f"SelectorList({self.selectors!r})"


# Pseudo-classes that take an argument and those that must not.
_FUNCTIONAL_PSEUDOS = frozenset(
    {"has", "is", "not", "nth-child", "nth-last-child", "nth-last-of-type", "nth-of-type", "where"}
)
_PLAIN_PSEUDOS = frozenset(
    {
        "checked",
        "disabled",
        "empty",
        "enabled",
        "first-child",
        "first-of-type",
        "last-child",
        "last-of-type",
        "link",
        "only-child",
        "only-of-type",
        "optional",
        "required",
        "root",
        "scope",
    }
)


def _starts_ident(ch: str) -> bool:
    return bool(ch) and (ch.isalpha() or ch in "_-\\" or ord(ch) > 127)


class _SelectorReader:
    """Recursive-descent reader over a selector string."""

    __slots__ = ("pos", "text")

    text: str
    pos: int

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def skip_whitespace(self) -> bool:
        start = self.pos
        while self.peek() and self.peek() in _WHITESPACE:
            self.pos += 1
        return self.pos > start

    def read_list(self) -> SelectorList:
        selectors = [self.read_complex()]
        while self.peek() == ",":
            self.pos += 1
            self.skip_whitespace()
            selectors.append(self.read_complex())
        if self.peek():
            raise _error("unexpected-character", f"{self.peek()!r} at position {self.pos}")
        return SelectorList(selectors)

    def read_complex(self) -> ComplexSelector:
        compound = self.read_compound()
        if compound is None:
            raise _error("unexpected-token", repr(self.peek() or "end of selector"))
        steps: list[tuple[str, CompoundSelector]] = [("", compound)]

        while True:
            spaced = self.skip_whitespace()
            ch = self.peek()
            if ch and ch in _COMBINATORS:
                self.pos += 1
                self.skip_whitespace()
                combinator = ch
            elif spaced and ch and ch != ",":
                combinator = " "
            else:
                return ComplexSelector(steps)

            compound = self.read_compound()
            if compound is None:
                raise _error("dangling-combinator")
            steps.append((combinator, compound))

    def read_compound(self) -> CompoundSelector | None:
        simples: list[SimpleSelector] = []
        while True:
            ch = self.peek()
            if not ch or ch in _WHITESPACE or ch in _COMBINATORS or ch == ",":
                break
            if ch == "*" and not simples:
                self.pos += 1
                simples.append(SimpleSelector("universal"))
            elif ch == "#":
                self.pos += 1
                simples.append(SimpleSelector("id", self.read_ident()))
            elif ch == ".":
                self.pos += 1
                simples.append(SimpleSelector("class", self.read_ident()))
            elif ch == "[":
                simples.append(self.read_attribute())
            elif ch == ":":
                simples.append(self.read_pseudo())
            elif _starts_ident(ch) and not simples:
                # Tag names match case-insensitively
                simples.append(SimpleSelector("tag", self.read_ident().lower()))
            else:
                raise _error("unexpected-character", f"{ch!r} at position {self.pos}")
        return CompoundSelector(simples) if simples else None

    def read_ident(self, code: str = "expected-identifier") -> str:
        chars: list[str] = []
        while True:
            ch = self.peek()
            if ch == "\\" and self.peek(1):
                chars.append(self.peek(1))
                self.pos += 2
            elif _starts_ident(ch) or ch.isdigit():
                chars.append(ch)
                self.pos += 1
            else:
                break
        if not chars:
            raise _error(code, self.pos)
        return "".join(chars)

    def read_quoted(self) -> str:
        quote = self.peek()
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(chars)
            if ch == "\\" and self.peek(1):
                ch = self.peek(1)
                self.pos += 1
            chars.append(ch)
            self.pos += 1
        raise _error("unterminated-string", repr(self.text))

    def read_attribute(self) -> SimpleSelector:
        self.pos += 1
        self.skip_whitespace()
        name = self.read_ident("expected-attribute-name").lower()
        self.skip_whitespace()

        if self.peek() == "]":
            self.pos += 1
            return SimpleSelector("attribute", name)

        if self.peek() == "=":
            operator = "="
        elif self.peek() and self.peek() in "~|^$*" and self.peek(1) == "=":
            operator = self.peek() + "="
        else:
            raise _error("unexpected-character", f"{self.peek()!r} in attribute selector")
        self.pos += len(operator)
        self.skip_whitespace()

        if self.peek() in ('"', "'"):
            value = self.read_quoted()
        else:
            start = self.pos
            while self.peek() and self.peek() not in _WHITESPACE + "]":
                self.pos += 1
            value = self.text[start : self.pos]
        self.skip_whitespace()

        case_insensitive = False
        if self.peek().lower() in ("i", "s"):
            case_insensitive = self.peek().lower() == "i"
            self.pos += 1
            self.skip_whitespace()

        if self.peek() != "]":
            raise _error("expected-attribute-end", self.pos)
        self.pos += 1
        return SimpleSelector("attribute", name, operator, value, case_insensitive)

    def read_pseudo(self) -> SimpleSelector:
        self.pos += 1
        if self.peek() == ":":
            raise _error("unsupported-pseudo-class", self.text[self.pos :])
        name = self.read_ident().lower()
        if name not in _FUNCTIONAL_PSEUDOS and name not in _PLAIN_PSEUDOS:
            raise _error("unsupported-pseudo-class", name)

        if self.peek() != "(":
            if name in _FUNCTIONAL_PSEUDOS:
                raise _error("expected-argument", name)
            return SimpleSelector("pseudo", name)
        if name in _PLAIN_PSEUDOS:
            raise _error("unexpected-argument", name)

        self.pos += 1
        return SimpleSelector("pseudo", name, argument=_compile_argument(name, self.read_argument()))

    def read_argument(self) -> str:
        """Read up to the matching ")" and consume it; quotes may contain parentheses."""
        start = self.pos
        depth = 1
        quote = ""
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if quote:
                if ch == "\\":
                    self.pos += 1
                elif ch == quote:
                    quote = ""
            elif ch in "\"'":
                quote = ch
            elif ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    argument = self.text[start : self.pos].strip()
                    self.pos += 1
                    return argument
            self.pos += 1
        raise _error("expected-closing-paren", self.pos)


def _compile_argument(name: str, argument: str) -> Any:
    if name.startswith("nth-"):
        return _parse_nth(argument)
    if name == "has":
        combinator = " "
        if argument[:1] and argument[0] in _COMBINATORS:
            combinator = argument[0]
            argument = argument[1:]
        return combinator, parse_selector(argument)
    return parse_selector(argument)


def _parse_nth(expression: str) -> tuple[int, int]:
    """Parse An+B notation (`odd`, `even`, `3`, `-n+2`, `2n + 1`) into `(a, b)`."""
    compact = "".join(expression.split()).lower()
    if compact == "odd":
        return 2, 1
    if compact == "even":
        return 2, 0
    match = _NTH_RE.match(compact)
    if match is None:
        raise _error("invalid-nth", expression)
    if match.group("index") is not None:
        return 0, int(match.group("index"))
    a = match.group("a")
    a_value = {"": 1, "+": 1, "-": -1}.get(a)
    return (int(a) if a_value is None else a_value), int(match.group("b") or 0)


# Matching


def _is_element(node: Any) -> bool:
    return node is not None and hasattr(node, "attrs") and not node.name.startswith("#")


def _sibling_elements(element: Any) -> list[Any]:
    parent = element.parent
    return parent.element_children if parent is not None else []


def _position(element: Any, of_type: bool = False, from_end: bool = False) -> int:
    """1-based index among element siblings, or 0 for a detached element."""
    siblings = _sibling_elements(element)
    if of_type:
        siblings = [sibling for sibling in siblings if sibling.name == element.name]
    if from_end:
        siblings.reverse()
    for index, sibling in enumerate(siblings, 1):
        if sibling is element:
            return index
    return 0


def _nth(index: int, a: int, b: int) -> bool:
    if index == 0:
        return False
    if a == 0:
        return index == b
    steps, remainder = divmod(index - b, a)
    return remainder == 0 and steps >= 0


def _ancestors(element: Any) -> Iterator[Any]:
    parent = element.parent_element
    while parent is not None:
        yield parent
        parent = parent.parent_element


def _preceding_siblings(element: Any) -> Iterator[Any]:
    sibling = element.previous_element_sibling
    while sibling is not None:
        yield sibling
        sibling = sibling.previous_element_sibling


def _is_document_child(element: Any) -> bool:
    parent = element.parent
    return parent is not None and parent.name == "#document"


def _is_empty(element: Any) -> bool:
    # Comments do not count; text only counts when it has characters
    for child in element.children:
        if child.name == "#text":
            if child.data:
                return False
        elif not child.name.startswith("#"):
            return False
    return True


def _has_relative(element: Any, argument: tuple[str, SelectorList]) -> bool:
    combinator, selector = argument
    candidates: Iterator[Any] | list[Any]
    if combinator == " ":
        candidates = element.iter_elements()
    elif combinator == ">":
        candidates = element.element_children
    else:
        siblings = _sibling_elements(element)
        following = siblings[siblings.index(element) + 1 :] if element in siblings else []
        candidates = following[:1] if combinator == "+" else following
    return any(_matches_list(candidate, selector, element) for candidate in candidates)


def _is_checked(element: Any) -> bool:
    if element.name == "input":
        return element.type in ("checkbox", "radio") and bool(element.checked)
    return element.name == "option" and bool(element.selected)


_FORM_CONTROLS = ("button", "input", "select", "textarea", "option", "optgroup", "fieldset")

_PseudoTest = Callable[[Any, SimpleSelector, Any], bool]

_PSEUDO_TESTS: dict[str, _PseudoTest] = {
    "first-child": lambda el, sel, scope: _position(el) == 1,
    "last-child": lambda el, sel, scope: _position(el, from_end=True) == 1,
    "only-child": lambda el, sel, scope: len(_sibling_elements(el)) == 1 and el.parent is not None,
    "nth-child": lambda el, sel, scope: _nth(_position(el), *sel.argument),
    "nth-last-child": lambda el, sel, scope: _nth(_position(el, from_end=True), *sel.argument),
    "first-of-type": lambda el, sel, scope: _position(el, of_type=True) == 1,
    "last-of-type": lambda el, sel, scope: _position(el, of_type=True, from_end=True) == 1,
    "only-of-type": lambda el, sel, scope: (
        _position(el, of_type=True) == 1 and _position(el, of_type=True, from_end=True) == 1
    ),
    "nth-of-type": lambda el, sel, scope: _nth(_position(el, of_type=True), *sel.argument),
    "nth-last-of-type": lambda el, sel, scope: _nth(_position(el, of_type=True, from_end=True), *sel.argument),
    "not": lambda el, sel, scope: not _matches_list(el, sel.argument, scope),
    "is": lambda el, sel, scope: _matches_list(el, sel.argument, scope),
    "where": lambda el, sel, scope: _matches_list(el, sel.argument, scope),
    "has": lambda el, sel, scope: _has_relative(el, sel.argument),
    "empty": lambda el, sel, scope: _is_empty(el),
    "root": lambda el, sel, scope: _is_document_child(el),
    "scope": lambda el, sel, scope: el is scope if _is_element(scope) else _is_document_child(el),
    "checked": lambda el, sel, scope: _is_checked(el),
    "disabled": lambda el, sel, scope: bool(el.disabled),
    "enabled": lambda el, sel, scope: el.name in _FORM_CONTROLS and not el.disabled,
    "required": lambda el, sel, scope: bool(el.required),
    "optional": lambda el, sel, scope: el.name in ("input", "select", "textarea") and not el.required,
    "link": lambda el, sel, scope: el.name in ("a", "area") and "href" in el.attrs,
}

_ATTRIBUTE_TESTS: dict[str, Callable[[str, str], bool]] = {
    "=": lambda actual, wanted: actual == wanted,
    "~=": lambda actual, wanted: wanted in actual.split(),
    "|=": lambda actual, wanted: actual == wanted or actual.startswith(wanted + "-"),
    # Empty values never match the substring operators
    "^=": lambda actual, wanted: bool(wanted) and actual.startswith(wanted),
    "$=": lambda actual, wanted: bool(wanted) and actual.endswith(wanted),
    "*=": lambda actual, wanted: bool(wanted) and wanted in actual,
}


def _matches_simple(element: Any, simple: SimpleSelector, scope: Any) -> bool:
    kind = simple.kind
    if kind == "tag":
        return bool(element.name.lower() == simple.name)
    if kind == "class":
        return simple.name in element.attrs.get("class", "").split()
    if kind == "id":
        return bool(element.attrs.get("id") == simple.name)
    if kind == "attribute":
        actual = element.attrs.get(simple.name)
        if actual is None or simple.operator is None:
            return actual is not None
        wanted = simple.value
        if simple.case_insensitive:
            actual, wanted = actual.lower(), wanted.lower()
        return _ATTRIBUTE_TESTS[simple.operator](actual, wanted)
    if kind == "pseudo":
        return _PSEUDO_TESTS[simple.name](element, simple, scope)
    return True


def _matches_step(element: Any, steps: list[tuple[str, CompoundSelector]], index: int, scope: Any) -> bool:
    combinator, compound = steps[index]
    if not all(_matches_simple(element, simple, scope) for simple in compound.simples):
        return False
    if index == 0:
        return True

    candidates: Iterator[Any] | tuple[Any, ...]
    if combinator == " ":
        candidates = _ancestors(element)
    elif combinator == "~":
        candidates = _preceding_siblings(element)
    else:
        neighbour = element.parent_element if combinator == ">" else element.previous_element_sibling
        candidates = () if neighbour is None else (neighbour,)
    return any(_matches_step(candidate, steps, index - 1, scope) for candidate in candidates)


def _matches_list(element: Any, selector: SelectorList, scope: Any) -> bool:
    return any(
        _matches_step(element, complex_selector.steps, len(complex_selector.steps) - 1, scope)
        for complex_selector in selector.selectors
    )


@lru_cache(maxsize=512)
def parse_selector(selector_string: str) -> SelectorList:
    """Parse a CSS selector string, raising `SelectorError` when it is malformed or unsupported."""
    text = selector_string.strip() if selector_string else ""
    if not text:
        raise _error("empty-selector")
    return _SelectorReader(text).read_list()


def query(root: Any, selector_string: str) -> list[Any]:
    """
    Return the descendants of `root` that match, in tree order.

    `root` itself is never included and neither shadow roots nor template
    contents are entered. `:scope` refers to `root` when it is an element.

    Raises:
        SelectorError: If the selector is invalid
    """
    selector = parse_selector(selector_string)
    scope = root if _is_element(root) else None
    return [element for element in root.iter_elements() if _matches_list(element, selector, scope)]


def matches(node: Any, selector_string: str, scope: Any | None = None) -> bool:
    """Check whether `node` is an element matching the selector; `scope` is what `:scope` refers to."""
    return _is_element(node) and _matches_list(node, parse_selector(selector_string), scope)


def matches_parsed(node: Any, selector: SelectorList) -> bool:
    return _is_element(node) and _matches_list(node, selector, None)
