from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from .constants import DISABLEABLE_ELEMENTS, INPUT_TYPES, LABELABLE_ELEMENTS
from .selector import matches, query
from .serialize import to_html
from .stylesheet import parse_stylesheet

if TYPE_CHECKING:
    from .stylesheet import StyleRule

_uid_counter = itertools.count(1)


class Rect:
    """An axis-aligned box in viewport coordinates."""

    __slots__ = ("height", "width", "x", "y")

    x: float
    y: float
    width: float
    height: float

    def __init__(self, x: float = 0, y: float = 0, width: float = 0, height: float = 0) -> None:
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rect):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.width, self.height))

    def __repr__(self) -> str:
        return f"Rect(x={self.x}, y={self.y}, width={self.width}, height={self.height})"


def _text_collect(node: Node, parts: list[str], strip: bool) -> None:
    if isinstance(node, Text):
        data = node.data
        if not data:
            return
        if strip:
            data = data.strip()
            if not data:
                return
        parts.append(data)
        return

    for child in node.children:
        _text_collect(child, parts, strip=strip)


class Node:
    __slots__ = ("__weakref__", "children", "name", "parent", "uid")

    name: str
    parent: Node | None
    children: list[Node]
    uid: int

    def __init__(self, name: str) -> None:
        self.name = name
        self.parent = None
        self.children = []
        self.uid = next(_uid_counter)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def append_child(self, node: Node) -> Node:
        if node.parent is not None:
            node.parent.remove_child(node)
        self.children.append(node)
        node.parent = self
        return node

    def remove_child(self, node: Node) -> Node:
        try:
            self.children.remove(node)
        except ValueError:
            raise ValueError("The node to be removed is not a child of this node") from None
        node.parent = None
        return node

    def insert_before(self, node: Node, reference_node: Node | None) -> Node:
        """
        Insert a node before a reference node.

        Args:
            node: The node to insert
            reference_node: The node to insert before. If None, append to end.

        Raises:
            ValueError: If reference_node is not a child of this node
        """
        if reference_node is None:
            return self.append_child(node)

        try:
            index = self.children.index(reference_node)
        except ValueError:
            raise ValueError("Reference node is not a child of this node") from None
        if node.parent is not None:
            node.parent.remove_child(node)
            index = self.children.index(reference_node)
        self.children.insert(index, node)
        node.parent = self
        return node

    def replace_child(self, new_node: Node, old_node: Node) -> Node:
        try:
            index = self.children.index(old_node)
        except ValueError:
            raise ValueError("The node to be replaced is not a child of this node") from None

        if new_node.parent is not None:
            new_node.parent.remove_child(new_node)
            index = self.children.index(old_node)
        self.children[index] = new_node
        new_node.parent = self
        old_node.parent = None
        return old_node

    def has_child_nodes(self) -> bool:
        return bool(self.children)

    @property
    def element_children(self) -> list[Element]:
        return [child for child in self.children if isinstance(child, Element)]

    def root_node(self) -> Node:
        """Return the root of the tree this node lives in (document, shadow root, or detached subtree)."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def is_connected(self) -> bool:
        return self.owner_document is not None

    @property
    def owner_document(self) -> Document | None:
        """Return the document this node is connected to, crossing shadow boundaries."""
        root = self.root_node()
        while isinstance(root, ShadowRoot):
            root = root.host.root_node()
        if isinstance(root, Document):
            return root
        return None

    @property
    def parent_element(self) -> Element | None:
        parent = self.parent
        if isinstance(parent, Element):
            return parent
        return None

    @property
    def assigned_slot(self) -> Element | None:
        """Return the <slot> in the parent's shadow tree this node is distributed to."""
        parent = self.parent
        if not isinstance(parent, Element) or parent.shadow_root is None:
            return None
        if isinstance(self, Element):
            slot_name = self.get_attribute("slot") or ""
        elif isinstance(self, Text):
            slot_name = ""
        else:
            return None
        for candidate in parent.shadow_root.iter_elements():
            if candidate.name == "slot" and (candidate.get_attribute("name") or "") == slot_name:
                return candidate
        return None

    def contains(self, other: Node | None) -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def iter_descendants(self) -> Iterator[Node]:
        """Yield every descendant in tree order, not entering shadow roots or template contents."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def iter_elements(self) -> Iterator[Element]:
        for node in self.iter_descendants():
            if isinstance(node, Element):
                yield node

    @property
    def text_content(self) -> str:
        parts: list[str] = []
        for node in self.iter_descendants():
            if isinstance(node, Text) and node.data:
                parts.append(node.data)
        return "".join(parts)

    def to_text(self, separator: str = " ", strip: bool = True) -> str:
        """Return the concatenated text of this node's descendants.

        - `separator` controls how text nodes are joined (default: a single space).
        - `strip=True` strips each text node and drops empty segments.
        """
        parts: list[str] = []
        _text_collect(self, parts, strip=strip)
        if not parts:
            return ""
        return separator.join(parts)

    def to_html(self, indent: int = 0, indent_size: int = 2, pretty: bool = True) -> str:
        """Convert node to HTML string."""
        return to_html(self, indent, indent_size, pretty=pretty)

    def query(self, selector: str) -> list[Element]:
        """
        Query this subtree using a CSS selector.

        Args:
            selector: A CSS selector string

        Returns:
            A list of matching elements in tree order

        Raises:
            SelectorError: If the selector is invalid
        """
        result: list[Element] = query(self, selector)
        return result

    def query_one(self, selector: str) -> Element | None:
        result = self.query(selector)
        return result[0] if result else None


class _IdLookupMixin:
    __slots__ = ()

    def get_element_by_id(self, element_id: str) -> Element | None:
        if not element_id:
            return None
        for element in self.iter_elements():  # type: ignore[attr-defined]
            if element.attrs.get("id") == element_id:
                return element
        return None


class Document(_IdLookupMixin, Node):
    __slots__ = ("active_element", "style_rules", "viewport")

    active_element: Element | None
    style_rules: list[StyleRule]
    viewport: tuple[float, float]

    def __init__(self, viewport: tuple[float, float] = (1280, 720)) -> None:
        super().__init__("#document")
        self.active_element = None
        self.style_rules = []
        self.viewport = viewport

    @property
    def document_element(self) -> Element | None:
        for child in self.children:
            if isinstance(child, Element):
                return child
        return None

    def _html_child(self, name: str) -> Element | None:
        html = self.document_element
        if html is None:
            return None
        for child in html.children:
            if isinstance(child, Element) and child.name == name:
                return child
        return None

    @property
    def head(self) -> Element | None:
        return self._html_child("head")

    @property
    def body(self) -> Element | None:
        return self._html_child("body")

    def focus(self, element: Element | None) -> None:
        self.active_element = element

    def add_stylesheet(self, css: str) -> None:
        self.style_rules.extend(parse_stylesheet(css))


class ShadowRoot(_IdLookupMixin, Node):
    __slots__ = ("host", "mode", "style_rules")

    host: Element
    mode: str
    style_rules: list[StyleRule]

    def __init__(self, host: Element, mode: str = "open") -> None:
        super().__init__("#shadow-root")
        self.host = host
        self.mode = mode
        self.style_rules = []

    def add_stylesheet(self, css: str) -> None:
        self.style_rules.extend(parse_stylesheet(css))


class DocumentFragment(_IdLookupMixin, Node):
    __slots__ = ()

    def __init__(self) -> None:
        super().__init__("#document-fragment")


class Element(Node):
    __slots__ = ("_checked", "_selected", "_value", "attrs", "indeterminate", "namespace", "rect", "shadow_root")

    attrs: dict[str, str]
    namespace: str
    shadow_root: ShadowRoot | None
    rect: Rect | None
    indeterminate: bool
    _value: str | None
    _checked: bool | None
    _selected: bool | None

    def __init__(self, name: str, attrs: dict[str, str] | None = None, namespace: str = "html") -> None:
        super().__init__(name.lower() if namespace == "html" else name)
        self.attrs = attrs if attrs is not None else {}
        self.namespace = namespace
        self.shadow_root = None
        self.rect = None
        self.indeterminate = False
        self._value = None
        self._checked = None
        self._selected = None

    def __repr__(self) -> str:
        element_id = self.attrs.get("id")
        if element_id:
            return f"<Element {self.name}#{element_id}>"
        return f"<Element {self.name}>"

    @property
    def tag_name(self) -> str:
        return self.name

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @property
    def class_list(self) -> list[str]:
        return self.attrs.get("class", "").split()

    def get_attribute(self, name: str) -> str | None:
        return self.attrs.get(name.lower())

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.attrs

    def set_attribute(self, name: str, value: str) -> None:
        self.attrs[name.lower()] = str(value)

    def remove_attribute(self, name: str) -> None:
        self.attrs.pop(name.lower(), None)

    def attach_shadow(self, mode: str = "open") -> ShadowRoot:
        if self.shadow_root is not None:
            raise ValueError(f"<{self.name}> already hosts a shadow root")
        self.shadow_root = ShadowRoot(self, mode)
        return self.shadow_root

    def matches(self, selector: str) -> bool:
        return matches(self, selector)

    def closest(self, selector: str) -> Element | None:
        node: Element | None = self
        while node is not None:
            if matches(node, selector):
                return node
            node = node.parent_element
        return None

    @property
    def next_element_sibling(self) -> Element | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        for child in siblings[siblings.index(self) + 1 :]:
            if isinstance(child, Element):
                return child
        return None

    @property
    def previous_element_sibling(self) -> Element | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        for child in reversed(siblings[: siblings.index(self)]):
            if isinstance(child, Element):
                return child
        return None

    def get_bounding_client_rect(self) -> Rect:
        """Return the layout box: the host-assigned `rect`, else one derived from computed style."""
        from .style import layout_rect

        return layout_rect(self)

    # Form state

    @property
    def type(self) -> str:
        if self.name == "input":
            value = (self.attrs.get("type") or "").strip().lower()
            return value if value in INPUT_TYPES else "text"
        if self.name == "button":
            value = (self.attrs.get("type") or "").strip().lower()
            return value if value in ("submit", "reset", "button") else "submit"
        return self.attrs.get("type", "")

    @property
    def value(self) -> str:
        if self._value is not None:
            return self._value
        if self.name == "textarea":
            return self.text_content
        if self.name == "select":
            selected = self.selected_options
            return selected[0].value if selected else ""
        if self.name == "option":
            if "value" in self.attrs:
                return self.attrs["value"]
            return " ".join(self.text_content.split())
        if self.name == "input" and self.type in ("checkbox", "radio"):
            return self.attrs.get("value", "on")
        return self.attrs.get("value", "")

    @value.setter
    def value(self, value: str) -> None:
        if self.name == "select":
            for option in self.options:
                option.selected = option.value == value
            return
        self._value = value

    @property
    def checked(self) -> bool:
        if self._checked is not None:
            return self._checked
        return "checked" in self.attrs

    @checked.setter
    def checked(self, value: bool) -> None:
        self._checked = bool(value)

    @property
    def options(self) -> list[Element]:
        return [el for el in self.iter_elements() if el.name == "option"]

    @property
    def selected(self) -> bool:
        if self.name != "option":
            return False
        if self._selected is not None:
            return self._selected
        if "selected" in self.attrs:
            return True
        select = self.parent_element
        while select is not None and select.name != "select":
            select = select.parent_element
        if select is None or select.has_attribute("multiple") or _select_size(select) > 1:
            return False
        options = select.options
        if any(opt._selected or (opt._selected is None and "selected" in opt.attrs) for opt in options):
            return False
        for option in options:
            if not option.disabled:
                return option is self
        return False

    @selected.setter
    def selected(self, value: bool) -> None:
        self._selected = bool(value)

    @property
    def selected_options(self) -> list[Element]:
        return [option for option in self.options if option.selected]

    @property
    def disabled(self) -> bool:
        """Native disabled state, including inheritance from disabled fieldsets and optgroups."""
        if self.name not in DISABLEABLE_ELEMENTS:
            return False
        if "disabled" in self.attrs:
            return True
        if self.name == "option":
            parent = self.parent_element
            return parent is not None and parent.name == "optgroup" and "disabled" in parent.attrs
        child: Element = self
        ancestor = self.parent_element
        while ancestor is not None:
            if ancestor.name == "fieldset" and "disabled" in ancestor.attrs:
                legend = next((c for c in ancestor.element_children if c.name == "legend"), None)
                if legend is None or child is not legend:
                    return True
            child = ancestor
            ancestor = ancestor.parent_element
        return False

    @property
    def required(self) -> bool:
        return self.name in ("input", "select", "textarea") and "required" in self.attrs

    @property
    def is_labelable(self) -> bool:
        if self.name == "input":
            return self.type != "hidden"
        return self.name in LABELABLE_ELEMENTS

    @property
    def control(self) -> Element | None:
        """For a <label>, the labelled control."""
        if self.name != "label":
            return None
        if "for" in self.attrs:
            root = self.root_node()
            target = root.get_element_by_id(self.attrs["for"]) if isinstance(root, _IdLookupMixin) else None
            if target is not None and target.is_labelable:
                return target
            return None
        for element in self.iter_elements():
            if element.is_labelable:
                return element
        return None

    @property
    def labels(self) -> list[Element]:
        """The <label> elements associated with this control, in tree order."""
        if not self.is_labelable:
            return []
        root = self.root_node()
        return [label for label in root.iter_elements() if label.name == "label" and label.control is self]

    def assigned_nodes(self, flatten: bool = False) -> list[Node]:
        """For a <slot>, the light-tree nodes distributed to it."""
        if self.name != "slot":
            return []
        root = self.root_node()
        if not isinstance(root, ShadowRoot):
            return []
        assigned = [child for child in root.host.children if child.assigned_slot is self]
        if not flatten:
            return assigned
        flat: list[Node] = []
        for node in assigned:
            if isinstance(node, Element) and node.name == "slot":
                flat.extend(node.assigned_nodes(flatten=True))
            else:
                flat.append(node)
        return flat


def _select_size(select: Element) -> int:
    try:
        return int(select.attrs.get("size", "0"))
    except ValueError:
        return 0


class TemplateElement(Element):
    __slots__ = ("content",)

    content: DocumentFragment

    def __init__(self, name: str = "template", attrs: dict[str, str] | None = None, namespace: str = "html") -> None:
        super().__init__(name, attrs, namespace)
        self.content = DocumentFragment()


class CharacterData(Node):
    __slots__ = ("data",)

    data: str

    def __init__(self, name: str, data: str) -> None:
        super().__init__(name)
        self.data = data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.data!r}>"

    @property
    def text_content(self) -> str:
        return self.data


class Text(CharacterData):
    __slots__ = ()

    def __init__(self, data: str) -> None:
        super().__init__("#text", data)

    def to_text(self, separator: str = " ", strip: bool = True) -> str:  # noqa: ARG002
        if strip:
            return self.data.strip()
        return self.data


class Comment(CharacterData):
    __slots__ = ()

    def __init__(self, data: str) -> None:
        super().__init__("#comment", data)


def parent_element_or_shadow_host(node: Node) -> Element | None:
    parent = node.parent
    if isinstance(parent, Element):
        return parent
    if isinstance(parent, ShadowRoot):
        return parent.host
    return None


def composed_parent(node: Node) -> Element | None:
    """Parent in the flat tree: the assigned slot for distributed nodes, else the element or shadow host."""
    slot = node.assigned_slot
    if slot is not None:
        return slot
    return parent_element_or_shadow_host(node)


def _position_key(node: Node) -> tuple[int, ...]:
    path: list[int] = []
    current = node
    while current.parent is not None:
        path.append(current.parent.children.index(current))
        current = current.parent
    path.reverse()
    if isinstance(current, ShadowRoot):
        # Shadow content sorts after its host and before the host's light children.
        return (*_position_key(current.host), -1, *path)
    return tuple(path)


def sort_in_document_order(nodes: Iterable[Node]) -> list[Node]:
    unique: dict[int, Node] = {}
    for node in nodes:
        unique.setdefault(id(node), node)
    return sorted(unique.values(), key=_position_key)


def compare_document_position(a: Node, b: Node) -> int:
    """Return -1, 0, or 1 as `a` precedes, is, or follows `b` in composed tree order."""
    if a is b:
        return 0
    key_a = _position_key(a)
    key_b = _position_key(b)
    return -1 if key_a < key_b else 1


def walk_elements(root: Node) -> Iterator[Element]:
    """Yield `root` (when it is an element) followed by its element descendants."""
    if isinstance(root, Element):
        yield root
    yield from root.iter_elements()


def to_element_list(nodes: Iterable[Any]) -> list[Element]:
    return [node for node in nodes if isinstance(node, Element)]
