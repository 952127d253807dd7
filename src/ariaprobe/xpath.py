# XPath 1.0 subset for ariaprobe
# Location paths, predicates, comparisons, unions and the common string/node-set functions

from __future__ import annotations

import math
from collections.abc import Callable, Iterator
from functools import lru_cache
from typing import Any

from .errors import XPathError, generate_error_message
from .node import Comment, Document, Element, Node, ShadowRoot, Text, sort_in_document_order


class XPathTokenType:
    SLASH: str = "SLASH"  # /
    DOUBLE_SLASH: str = "DOUBLE_SLASH"  # //
    DOT: str = "DOT"  # .
    DOUBLE_DOT: str = "DOUBLE_DOT"  # ..
    AT: str = "AT"  # @
    AXIS_SEP: str = "AXIS_SEP"  # ::
    LBRACKET: str = "LBRACKET"
    RBRACKET: str = "RBRACKET"
    LPAREN: str = "LPAREN"
    RPAREN: str = "RPAREN"
    COMMA: str = "COMMA"
    PIPE: str = "PIPE"  # |
    OPERATOR: str = "OPERATOR"  # = != < <= > >=
    STAR: str = "STAR"  # *
    NAME: str = "NAME"  # div, contains, and, child
    LITERAL: str = "LITERAL"  # "x" or 'x'
    NUMBER: str = "NUMBER"
    EOF: str = "EOF"


class XPathToken:
    __slots__ = ("type", "value")

    type: str
    value: str

    def __init__(self, token_type: str, value: str = "") -> None:
        self.type = token_type
        self.value = value

    def __repr__(self) -> str:
        return f"XPathToken({self.type}, {self.value!r})"


def _error(code: str, detail: Any = None) -> XPathError:
    return XPathError(generate_error_message(code, None if detail is None else str(detail)), code)


_SINGLE_CHAR_TOKENS = {
    "[": XPathTokenType.LBRACKET,
    "]": XPathTokenType.RBRACKET,
    "(": XPathTokenType.LPAREN,
    ")": XPathTokenType.RPAREN,
    ",": XPathTokenType.COMMA,
    "|": XPathTokenType.PIPE,
    "@": XPathTokenType.AT,
    "*": XPathTokenType.STAR,
}


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_" or ord(ch) > 127


def _is_name_char(ch: str) -> bool:
    return _is_name_start(ch) or ch.isdigit() or ch in "-."


def tokenize_xpath(expression: str) -> list[XPathToken]:
    tokens: list[XPathToken] = []
    pos = 0
    length = len(expression)

    while pos < length:
        ch = expression[pos]
        if ch in " \t\n\r":
            pos += 1
            continue
        if ch == "/":
            if expression.startswith("//", pos):
                tokens.append(XPathToken(XPathTokenType.DOUBLE_SLASH, "//"))
                pos += 2
            else:
                tokens.append(XPathToken(XPathTokenType.SLASH, "/"))
                pos += 1
            continue
        if ch == ".":
            if expression.startswith("..", pos):
                tokens.append(XPathToken(XPathTokenType.DOUBLE_DOT, ".."))
                pos += 2
                continue
            if pos + 1 < length and expression[pos + 1].isdigit():
                start = pos
                pos += 1
                while pos < length and expression[pos].isdigit():
                    pos += 1
                tokens.append(XPathToken(XPathTokenType.NUMBER, expression[start:pos]))
                continue
            tokens.append(XPathToken(XPathTokenType.DOT, "."))
            pos += 1
            continue
        if ch == ":" and expression.startswith("::", pos):
            tokens.append(XPathToken(XPathTokenType.AXIS_SEP, "::"))
            pos += 2
            continue
        if ch in _SINGLE_CHAR_TOKENS:
            tokens.append(XPathToken(_SINGLE_CHAR_TOKENS[ch], ch))
            pos += 1
            continue
        if ch == "!" and expression.startswith("!=", pos):
            tokens.append(XPathToken(XPathTokenType.OPERATOR, "!="))
            pos += 2
            continue
        if ch in "<>":
            if expression.startswith("=", pos + 1):
                tokens.append(XPathToken(XPathTokenType.OPERATOR, ch + "="))
                pos += 2
            else:
                tokens.append(XPathToken(XPathTokenType.OPERATOR, ch))
                pos += 1
            continue
        if ch == "=":
            tokens.append(XPathToken(XPathTokenType.OPERATOR, "="))
            pos += 1
            continue
        if ch in "\"'":
            end = expression.find(ch, pos + 1)
            if end == -1:
                raise _error("xpath-unterminated-literal", expression[pos:])
            tokens.append(XPathToken(XPathTokenType.LITERAL, expression[pos + 1 : end]))
            pos = end + 1
            continue
        if ch.isdigit() or (ch == "-" and pos + 1 < length and expression[pos + 1].isdigit()):
            start = pos
            pos += 1
            while pos < length and (expression[pos].isdigit() or expression[pos] == "."):
                pos += 1
            tokens.append(XPathToken(XPathTokenType.NUMBER, expression[start:pos]))
            continue
        if _is_name_start(ch):
            start = pos
            while pos < length:
                c = expression[pos]
                if _is_name_char(c):
                    pos += 1
                # Prefixed names such as xlink:title, but not the axis separator
                elif c == ":" and not expression.startswith("::", pos) and pos + 1 < length and _is_name_start(expression[pos + 1]):
                    pos += 1
                else:
                    break
            tokens.append(XPathToken(XPathTokenType.NAME, expression[start:pos]))
            continue
        raise _error("xpath-unexpected-token", ch)

    tokens.append(XPathToken(XPathTokenType.EOF))
    return tokens


# Data model


class AttributeNode:
    """An attribute seen as an XPath node."""

    __slots__ = ("element", "name", "value")

    element: Element
    name: str
    value: str

    def __init__(self, element: Element, name: str, value: str) -> None:
        self.element = element
        self.name = name
        self.value = value

    def __repr__(self) -> str:
        return f"<AttributeNode {self.name}={self.value!r}>"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AttributeNode) and other.element is self.element and other.name == self.name

    def __hash__(self) -> int:
        return hash((id(self.element), self.name))


XNode = Node | AttributeNode
XValue = list[Any] | str | float | bool


class XPathContext:
    __slots__ = ("node", "position", "size")

    node: XNode
    position: int
    size: int

    def __init__(self, node: XNode, position: int = 1, size: int = 1) -> None:
        self.node = node
        self.position = position
        self.size = size


def string_value(node: XNode) -> str:
    if isinstance(node, AttributeNode):
        return node.value
    if isinstance(node, (Text, Comment)):
        return node.data
    return node.text_content


def to_string(value: XValue) -> str:
    if isinstance(value, list):
        return string_value(value[0]) if value else ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value == int(value):
            return str(int(value))
        return str(value)
    return value


def to_number(value: XValue) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    try:
        return float(to_string(value).strip())
    except ValueError:
        return math.nan


def to_boolean(value: XValue) -> bool:
    if isinstance(value, list):
        return bool(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return value != 0 and not math.isnan(value)
    return bool(value)


def _document_order(nodes: list[XNode]) -> list[XNode]:
    plain = sort_in_document_order(node for node in nodes if not isinstance(node, AttributeNode))
    attributes: list[XNode] = []
    seen: set[AttributeNode] = set()
    for node in nodes:
        if isinstance(node, AttributeNode) and node not in seen:
            seen.add(node)
            attributes.append(node)
    return [*plain, *attributes]


# Axes


def _children(node: XNode) -> list[Node]:
    if isinstance(node, AttributeNode):
        return []
    return list(node.children)


def _parent(node: XNode) -> Node | None:
    if isinstance(node, AttributeNode):
        return node.element
    return node.parent


def _ancestors(node: XNode) -> Iterator[Node]:
    current = _parent(node)
    while current is not None:
        yield current
        current = current.parent


def _descendants(node: XNode) -> list[Node]:
    if isinstance(node, AttributeNode):
        return []
    return list(node.iter_descendants())


def _tree_order(node: XNode) -> list[Node]:
    anchor = node.element if isinstance(node, AttributeNode) else node
    root = anchor.root_node()
    return [root, *root.iter_descendants()]


def _following(node: XNode) -> list[Node]:
    anchor = node.element if isinstance(node, AttributeNode) else node
    nodes = _tree_order(anchor)
    index = next(i for i, candidate in enumerate(nodes) if candidate is anchor)
    if isinstance(node, AttributeNode):
        return [candidate for candidate in nodes[index + 1 :]]
    return [candidate for candidate in nodes[index + 1 :] if not anchor.contains(candidate)]


def _preceding(node: XNode) -> list[Node]:
    anchor = node.element if isinstance(node, AttributeNode) else node
    nodes = _tree_order(anchor)
    index = next(i for i, candidate in enumerate(nodes) if candidate is anchor)
    return [candidate for candidate in reversed(nodes[:index]) if not candidate.contains(anchor)]


def _siblings(node: XNode, following: bool) -> list[Node]:
    if isinstance(node, AttributeNode) or node.parent is None:
        return []
    siblings = node.parent.children
    index = next(i for i, candidate in enumerate(siblings) if candidate is node)
    if following:
        return list(siblings[index + 1 :])
    return list(reversed(siblings[:index]))


def _attributes(node: XNode) -> list[XNode]:
    if not isinstance(node, Element):
        return []
    return [AttributeNode(node, name, value) for name, value in node.attrs.items()]


_AXES: dict[str, Callable[[XNode], list[Any]]] = {
    "child": _children,
    "descendant": _descendants,
    "descendant-or-self": lambda node: [node, *_descendants(node)],
    "parent": lambda node: [parent] if (parent := _parent(node)) is not None else [],
    "ancestor": lambda node: list(_ancestors(node)),
    "ancestor-or-self": lambda node: [node, *_ancestors(node)],
    "following-sibling": lambda node: _siblings(node, True),
    "preceding-sibling": lambda node: _siblings(node, False),
    "following": _following,
    "preceding": _preceding,
    "self": lambda node: [node],
    "attribute": _attributes,
}


# AST


class NodeTest:
    __slots__ = ("kind", "name")

    kind: str  # "name", "any", "text", "node", "comment"
    name: str | None

    def __init__(self, kind: str, name: str | None = None) -> None:
        self.kind = kind
        self.name = name

    def __repr__(self) -> str:
        return f"NodeTest({self.kind}, {self.name!r})"

    def matches(self, node: XNode, axis: str) -> bool:
        if self.kind == "node":
            return True
        if self.kind == "text":
            return isinstance(node, Text)
        if self.kind == "comment":
            return isinstance(node, Comment)
        if axis == "attribute":
            if not isinstance(node, AttributeNode):
                return False
            return self.kind == "any" or node.name == (self.name or "").lower()
        if not isinstance(node, Element):
            return False
        return self.kind == "any" or node.name == (self.name or "").lower()


class Expr:
    __slots__ = ()

    def evaluate(self, context: XPathContext) -> XValue:
        raise NotImplementedError


class Step:
    __slots__ = ("axis", "node_test", "predicates")

    axis: str
    node_test: NodeTest
    predicates: list[Expr]

    def __init__(self, axis: str, node_test: NodeTest, predicates: list[Expr] | None = None) -> None:
        self.axis = axis
        self.node_test = node_test
        self.predicates = predicates or []

    def __repr__(self) -> str:
        return f"Step({self.axis}::{self.node_test!r}, {self.predicates!r})"

    def select(self, node: XNode) -> list[XNode]:
        candidates = [candidate for candidate in _AXES[self.axis](node) if self.node_test.matches(candidate, self.axis)]
        for predicate in self.predicates:
            candidates = _filter(candidates, predicate)
        return candidates


def _filter(nodes: list[XNode], predicate: Expr) -> list[XNode]:
    size = len(nodes)
    kept: list[XNode] = []
    for position, node in enumerate(nodes, 1):
        value = predicate.evaluate(XPathContext(node, position, size))
        if isinstance(value, float):
            if value == position:
                kept.append(node)
        elif to_boolean(value):
            kept.append(node)
    return kept


def _apply_steps(start: list[XNode], steps: list[Step]) -> list[XNode]:
    nodes = start
    for step in steps:
        collected: list[XNode] = []
        for node in nodes:
            collected.extend(step.select(node))
        nodes = _document_order(collected)
    return nodes


class LocationPath(Expr):
    __slots__ = ("absolute", "steps")

    absolute: bool
    steps: list[Step]

    def __init__(self, absolute: bool, steps: list[Step]) -> None:
        self.absolute = absolute
        self.steps = steps

    def __repr__(self) -> str:
        return f"LocationPath(absolute={self.absolute}, {self.steps!r})"

    def evaluate(self, context: XPathContext) -> XValue:
        node = context.node
        if self.absolute:
            anchor = node.element if isinstance(node, AttributeNode) else node
            start: list[XNode] = [anchor.root_node()]
        else:
            start = [node]
        return _apply_steps(start, self.steps)


class FilterPath(Expr):
    """A primary expression with predicates, optionally followed by more steps."""

    __slots__ = ("predicates", "primary", "steps")

    primary: Expr
    predicates: list[Expr]
    steps: list[Step]

    def __init__(self, primary: Expr, predicates: list[Expr], steps: list[Step]) -> None:
        self.primary = primary
        self.predicates = predicates
        self.steps = steps

    def evaluate(self, context: XPathContext) -> XValue:
        value = self.primary.evaluate(context)
        if not self.predicates and not self.steps:
            return value
        if not isinstance(value, list):
            raise _error("xpath-not-a-node-set")
        nodes = _document_order(value)
        for predicate in self.predicates:
            nodes = _filter(nodes, predicate)
        return _apply_steps(nodes, self.steps)


class Literal(Expr):
    __slots__ = ("value",)

    value: str | float

    def __init__(self, value: str | float) -> None:
        self.value = value

    def evaluate(self, context: XPathContext) -> XValue:
        return self.value


class UnionExpr(Expr):
    __slots__ = ("parts",)

    parts: list[Expr]

    def __init__(self, parts: list[Expr]) -> None:
        self.parts = parts

    def evaluate(self, context: XPathContext) -> XValue:
        nodes: list[XNode] = []
        for part in self.parts:
            value = part.evaluate(context)
            if not isinstance(value, list):
                raise _error("xpath-not-a-node-set")
            nodes.extend(value)
        return _document_order(nodes)


class BooleanOp(Expr):
    __slots__ = ("left", "op", "right")

    op: str
    left: Expr
    right: Expr

    def __init__(self, op: str, left: Expr, right: Expr) -> None:
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, context: XPathContext) -> XValue:
        left = to_boolean(self.left.evaluate(context))
        if self.op == "and":
            return left and to_boolean(self.right.evaluate(context))
        return left or to_boolean(self.right.evaluate(context))


def _compare_atoms(op: str, left: Any, right: Any) -> bool:
    if op in ("=", "!="):
        if isinstance(left, bool) or isinstance(right, bool):
            a: Any = to_boolean(left)
            b: Any = to_boolean(right)
        elif isinstance(left, float) or isinstance(right, float):
            a, b = to_number(left), to_number(right)
        else:
            a, b = to_string(left), to_string(right)
        return (a == b) if op == "=" else (a != b)
    x, y = to_number(left), to_number(right)
    if op == "<":
        return x < y
    if op == "<=":
        return x <= y
    if op == ">":
        return x > y
    return x >= y


class Comparison(Expr):
    __slots__ = ("left", "op", "right")

    op: str
    left: Expr
    right: Expr

    def __init__(self, op: str, left: Expr, right: Expr) -> None:
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, context: XPathContext) -> XValue:
        left = self.left.evaluate(context)
        right = self.right.evaluate(context)
        if isinstance(left, list) and isinstance(right, list):
            right_values = [string_value(node) for node in right]
            return any(
                _compare_atoms(self.op, string_value(node), other) for node in left for other in right_values
            )
        if isinstance(left, list):
            if isinstance(right, bool):
                return _compare_atoms(self.op, to_boolean(left), right)
            return any(_compare_atoms(self.op, string_value(node), right) for node in left)
        if isinstance(right, list):
            if isinstance(left, bool):
                return _compare_atoms(self.op, left, to_boolean(right))
            return any(_compare_atoms(self.op, left, string_value(node)) for node in right)
        return _compare_atoms(self.op, left, right)


def _node_name(args: list[XValue], context: XPathContext) -> str:
    if args:
        nodes = args[0]
        if not isinstance(nodes, list):
            raise _error("xpath-not-a-node-set")
        if not nodes:
            return ""
        node = _document_order(nodes)[0]
    else:
        node = context.node
    if isinstance(node, (Element, AttributeNode)):
        return node.name
    return ""


def _string_arg(args: list[XValue], context: XPathContext) -> str:
    if args:
        return to_string(args[0])
    return string_value(context.node)


def _count(args: list[XValue], context: XPathContext) -> float:
    if not args or not isinstance(args[0], list):
        raise _error("xpath-not-a-node-set")
    return float(len(args[0]))


_FUNCTIONS: dict[str, Callable[[list[XValue], XPathContext], XValue]] = {
    "contains": lambda args, ctx: to_string(args[0]).find(to_string(args[1])) >= 0,
    "starts-with": lambda args, ctx: to_string(args[0]).startswith(to_string(args[1])),
    "ends-with": lambda args, ctx: to_string(args[0]).endswith(to_string(args[1])),
    "normalize-space": lambda args, ctx: " ".join(_string_arg(args, ctx).split()),
    "string": lambda args, ctx: _string_arg(args, ctx),
    "string-length": lambda args, ctx: float(len(_string_arg(args, ctx))),
    "concat": lambda args, ctx: "".join(to_string(arg) for arg in args),
    "not": lambda args, ctx: not to_boolean(args[0]),
    "boolean": lambda args, ctx: to_boolean(args[0]),
    "number": lambda args, ctx: to_number(args[0]) if args else to_number(string_value(ctx.node)),
    "position": lambda args, ctx: float(ctx.position),
    "last": lambda args, ctx: float(ctx.size),
    "count": _count,
    "name": _node_name,
    "local-name": lambda args, ctx: _node_name(args, ctx).split(":")[-1],
    "true": lambda args, ctx: True,
    "false": lambda args, ctx: False,
}

_FUNCTION_ARITY: dict[str, tuple[int, int]] = {
    "contains": (2, 2),
    "starts-with": (2, 2),
    "ends-with": (2, 2),
    "normalize-space": (0, 1),
    "string": (0, 1),
    "string-length": (0, 1),
    "concat": (2, 64),
    "not": (1, 1),
    "boolean": (1, 1),
    "number": (0, 1),
    "position": (0, 0),
    "last": (0, 0),
    "count": (1, 1),
    "name": (0, 1),
    "local-name": (0, 1),
    "true": (0, 0),
    "false": (0, 0),
}


class FunctionCall(Expr):
    __slots__ = ("args", "name")

    name: str
    args: list[Expr]

    def __init__(self, name: str, args: list[Expr]) -> None:
        self.name = name
        self.args = args

    def __repr__(self) -> str:
        return f"FunctionCall({self.name}, {self.args!r})"

    def evaluate(self, context: XPathContext) -> XValue:
        values = [arg.evaluate(context) for arg in self.args]
        return _FUNCTIONS[self.name](values, context)


# Parser

_NODE_TYPES = {"text": "text", "node": "node", "comment": "comment"}


class XPathParser:
    """Recursive-descent parser producing an `Expr` tree."""

    __slots__ = ("pos", "tokens")

    tokens: list[XPathToken]
    pos: int

    def __init__(self, tokens: list[XPathToken]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _peek(self, offset: int = 0) -> XPathToken:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> XPathToken:
        token = self.tokens[self.pos]
        if token.type != XPathTokenType.EOF:
            self.pos += 1
        return token

    def _expect(self, token_type: str) -> XPathToken:
        token = self._peek()
        if token.type != token_type:
            raise _error("xpath-unexpected-token", token.value or token.type)
        return self._advance()

    def _at_operator_name(self, name: str) -> bool:
        token = self._peek()
        return token.type == XPathTokenType.NAME and token.value == name

    def parse(self) -> Expr:
        if self._peek().type == XPathTokenType.EOF:
            raise _error("empty-xpath")
        expr = self._parse_or()
        if self._peek().type != XPathTokenType.EOF:
            token = self._peek()
            raise _error("xpath-unexpected-token", token.value or token.type)
        return expr

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._at_operator_name("or"):
            self._advance()
            left = BooleanOp("or", left, self._parse_and())
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_equality()
        while self._at_operator_name("and"):
            self._advance()
            left = BooleanOp("and", left, self._parse_equality())
        return left

    def _parse_equality(self) -> Expr:
        left = self._parse_relational()
        while self._peek().type == XPathTokenType.OPERATOR and self._peek().value in ("=", "!="):
            op = self._advance().value
            left = Comparison(op, left, self._parse_relational())
        return left

    def _parse_relational(self) -> Expr:
        left = self._parse_union()
        while self._peek().type == XPathTokenType.OPERATOR and self._peek().value in ("<", "<=", ">", ">="):
            op = self._advance().value
            left = Comparison(op, left, self._parse_union())
        return left

    def _parse_union(self) -> Expr:
        parts = [self._parse_path()]
        while self._peek().type == XPathTokenType.PIPE:
            self._advance()
            parts.append(self._parse_path())
        if len(parts) == 1:
            return parts[0]
        return UnionExpr(parts)

    def _is_primary_start(self) -> bool:
        token = self._peek()
        if token.type in (XPathTokenType.LITERAL, XPathTokenType.NUMBER, XPathTokenType.LPAREN):
            return True
        if token.type == XPathTokenType.NAME and self._peek(1).type == XPathTokenType.LPAREN:
            return token.value not in _NODE_TYPES
        return False

    def _parse_path(self) -> Expr:
        if self._is_primary_start():
            primary = self._parse_primary()
            predicates = self._parse_predicates()
            steps: list[Step] = []
            if self._peek().type in (XPathTokenType.SLASH, XPathTokenType.DOUBLE_SLASH):
                steps = self._parse_relative_steps(continuation=True)
            if not predicates and not steps:
                return primary
            return FilterPath(primary, predicates, steps)
        return self._parse_location_path()

    def _parse_primary(self) -> Expr:
        token = self._advance()
        if token.type == XPathTokenType.LITERAL:
            return Literal(token.value)
        if token.type == XPathTokenType.NUMBER:
            try:
                return Literal(float(token.value))
            except ValueError:
                raise _error("xpath-unexpected-token", token.value) from None
        if token.type == XPathTokenType.LPAREN:
            expr = self._parse_or()
            self._expect(XPathTokenType.RPAREN)
            return expr
        name = token.value
        if name not in _FUNCTIONS:
            raise _error("xpath-unknown-function", name)
        self._expect(XPathTokenType.LPAREN)
        args: list[Expr] = []
        if self._peek().type != XPathTokenType.RPAREN:
            args.append(self._parse_or())
            while self._peek().type == XPathTokenType.COMMA:
                self._advance()
                args.append(self._parse_or())
        self._expect(XPathTokenType.RPAREN)
        low, high = _FUNCTION_ARITY[name]
        if not low <= len(args) <= high:
            raise _error("xpath-unexpected-token", f"{name}() takes {low}-{high} arguments")
        return FunctionCall(name, args)

    def _parse_predicates(self) -> list[Expr]:
        predicates: list[Expr] = []
        while self._peek().type == XPathTokenType.LBRACKET:
            self._advance()
            predicates.append(self._parse_or())
            self._expect(XPathTokenType.RBRACKET)
        return predicates

    def _parse_location_path(self) -> Expr:
        token = self._peek()
        if token.type == XPathTokenType.SLASH:
            self._advance()
            if self._is_step_start():
                return LocationPath(True, self._parse_relative_steps())
            return LocationPath(True, [])
        if token.type == XPathTokenType.DOUBLE_SLASH:
            return LocationPath(True, self._parse_relative_steps(continuation=True))
        if not self._is_step_start():
            raise _error("xpath-unexpected-token", token.value or token.type)
        return LocationPath(False, self._parse_relative_steps())

    def _is_step_start(self) -> bool:
        return self._peek().type in (
            XPathTokenType.NAME,
            XPathTokenType.STAR,
            XPathTokenType.AT,
            XPathTokenType.DOT,
            XPathTokenType.DOUBLE_DOT,
        )

    def _parse_relative_steps(self, continuation: bool = False) -> list[Step]:
        steps: list[Step] = []
        if not continuation:
            steps.append(self._parse_step())
        while self._peek().type in (XPathTokenType.SLASH, XPathTokenType.DOUBLE_SLASH):
            if self._advance().type == XPathTokenType.DOUBLE_SLASH:
                steps.append(Step("descendant-or-self", NodeTest("node")))
            steps.append(self._parse_step())
        return steps

    def _parse_step(self) -> Step:
        token = self._peek()
        if token.type == XPathTokenType.DOT:
            self._advance()
            return Step("self", NodeTest("node"))
        if token.type == XPathTokenType.DOUBLE_DOT:
            self._advance()
            return Step("parent", NodeTest("node"))

        axis = "child"
        if token.type == XPathTokenType.AT:
            self._advance()
            axis = "attribute"
        elif token.type == XPathTokenType.NAME and self._peek(1).type == XPathTokenType.AXIS_SEP:
            axis = token.value
            if axis not in _AXES:
                raise _error("xpath-unknown-axis", axis)
            self._advance()
            self._advance()

        node_test = self._parse_node_test()
        return Step(axis, node_test, self._parse_predicates())

    def _parse_node_test(self) -> NodeTest:
        token = self._advance()
        if token.type == XPathTokenType.STAR:
            return NodeTest("any")
        if token.type != XPathTokenType.NAME:
            raise _error("xpath-unexpected-token", token.value or token.type)
        if token.value in _NODE_TYPES and self._peek().type == XPathTokenType.LPAREN:
            self._advance()
            self._expect(XPathTokenType.RPAREN)
            return NodeTest(_NODE_TYPES[token.value])
        return NodeTest("name", token.value)


@lru_cache(maxsize=256)
def compile_xpath(expression: str) -> Expr:
    """Parse an XPath expression, raising `XPathError` when it is malformed."""
    return XPathParser(tokenize_xpath(expression.strip())).parse()


def _scoped_expression(root: Node, expression: str) -> str:
    # Absolute paths stay inside a non-document root.
    stripped = expression.strip()
    if stripped.startswith("/") and not isinstance(root, (Document, ShadowRoot)):
        return "." + stripped
    return stripped


def evaluate_xpath(root: Node, expression: str) -> list[XNode]:
    """Evaluate `expression` with `root` as the context node.

    Returns the resulting node-set in document order. Raises `XPathError`
    when the expression is malformed or is not a node-set expression.
    """
    compiled = compile_xpath(_scoped_expression(root, expression))
    value = compiled.evaluate(XPathContext(root))
    if not isinstance(value, list):
        raise _error("xpath-not-a-node-set")
    return value


def query_xpath(root: Node, expression: str) -> list[Element]:
    return [node for node in evaluate_xpath(root, expression) if isinstance(node, Element)]
