"""Accessibility tree snapshots.

Two shapes are produced from the same role and name primitives:

- `generate_a11y_tree` returns a flat list of `LegacyNode` in tree-walker
  order, one per element that is not hidden by ARIA markup.
- `generate_aria_tree` returns a nested `AriaNode` tree rooted at a
  `fragment` node. Text becomes string children, `aria-owns` targets are
  visited after the regular children, slots are replaced by their assigned
  nodes, and unnamed generic wrappers can be folded into their only child.

Both run inside a cache session so each element's style, role and name are
computed once per call.
"""

from __future__ import annotations

import re
from typing import Any

from .cache import caching, get_cached_style
from .hidden import VISIBILITY_MODES, check_element_visibility, is_element_hidden_for_aria, is_ignored_for_aria
from .name import compute_accessible_description, compute_accessible_name, get_id_refs
from .node import Document, Element, Node, Text
from .refs import RefRegistry, ref_registry
from .roles import get_aria_role, get_heading_level
from .selector import query
from .states import is_content_editable
from .visibility import ElementBox, compute_element_box, get_cursor, receives_pointer_events

TREE_MODES: frozenset[str] = frozenset({"default", "ai", "strict"})
REF_MODES: frozenset[str] = frozenset({"all", "interactable", "none"})

INTERACTIVE_ROLES: frozenset[str] = frozenset(
    {
        "button",
        "checkbox",
        "combobox",
        "link",
        "listbox",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "option",
        "radio",
        "searchbox",
        "slider",
        "spinbutton",
        "switch",
        "tab",
        "textbox",
        "treeitem",
    }
)

INTERACTIVE_TAGS: frozenset[str] = frozenset({"a", "button", "input", "select", "textarea"})

CHECKED_ROLES: frozenset[str] = frozenset(
    {"checkbox", "menuitemcheckbox", "menuitemradio", "option", "radio", "switch", "treeitem"}
)

DISABLED_ROLES: frozenset[str] = INTERACTIVE_ROLES | {"gridcell"}

EXPANDED_ROLES: frozenset[str] = frozenset(
    {"button", "checkbox", "combobox", "gridcell", "link", "listbox", "menuitem", "row", "rowheader", "tab", "treeitem"}
)

PRESSED_ROLES: frozenset[str] = frozenset({"button"})

SELECTED_ROLES: frozenset[str] = frozenset(
    {"columnheader", "gridcell", "option", "row", "rowheader", "tab", "treeitem"}
)

LEVEL_ROLES: frozenset[str] = frozenset({"heading", "listitem", "row", "treeitem"})

_NO_VALUE_INPUT_TYPES: frozenset[str] = frozenset({"checkbox", "radio", "file", "password"})
_INVALID_VALUES: frozenset[str] = frozenset({"true", "spelling", "grammar"})
_WHITESPACE_RE = re.compile(r"\s+")


class TreeOptions:
    """Options for tree generation.

    `mode` selects the flavour: `default` (flat-compatible output), `ai`
    (text children, boxes, cursor and pointer-events, refs only on
    interactable elements) or `strict` (every non-ignored element, no
    visibility pruning). Options left as None take the mode's default.
    """

    __slots__ = (
        "block_spacing",
        "fold_generic",
        "include_bbox",
        "include_cursor",
        "include_generic_role",
        "include_pointer_events",
        "interactive_only",
        "max_depth",
        "mode",
        "pierce_shadow_dom",
        "refs",
        "selector",
        "visibility",
    )

    mode: str
    visibility: str
    refs: str
    max_depth: int | None
    include_bbox: bool
    include_cursor: bool
    include_pointer_events: bool
    interactive_only: bool
    selector: str | None
    pierce_shadow_dom: bool
    include_generic_role: bool
    fold_generic: bool
    block_spacing: bool

    def __init__(
        self,
        mode: str = "default",
        visibility: str = "ariaAndVisible",
        refs: str | None = None,
        max_depth: int | None = None,
        include_bbox: bool = False,
        include_cursor: bool | None = None,
        include_pointer_events: bool | None = None,
        interactive_only: bool = False,
        selector: str | None = None,
        pierce_shadow_dom: bool = True,
        include_generic_role: bool | None = None,
        fold_generic: bool | None = None,
        block_spacing: bool = True,
    ) -> None:
        if mode not in TREE_MODES:
            raise ValueError(f"Unknown tree mode: {mode!r}")
        if visibility not in VISIBILITY_MODES:
            raise ValueError(f"Unknown visibility mode: {visibility!r}")
        if refs is not None and refs not in REF_MODES:
            raise ValueError(f"Unknown refs mode: {refs!r}")

        is_ai = mode == "ai"
        self.mode = mode
        self.visibility = visibility
        self.refs = refs if refs is not None else ("interactable" if is_ai else "all")
        self.max_depth = max_depth
        self.include_bbox = bool(include_bbox)
        self.include_cursor = is_ai if include_cursor is None else bool(include_cursor)
        self.include_pointer_events = is_ai if include_pointer_events is None else bool(include_pointer_events)
        self.interactive_only = bool(interactive_only)
        self.selector = selector
        self.pierce_shadow_dom = bool(pierce_shadow_dom)
        self.include_generic_role = is_ai if include_generic_role is None else bool(include_generic_role)
        self.fold_generic = (not self.include_generic_role) if fold_generic is None else bool(fold_generic)
        self.block_spacing = bool(block_spacing)

    def __repr__(self) -> str:
        return f"TreeOptions(mode={self.mode!r}, visibility={self.visibility!r}, refs={self.refs!r})"


class _StateFields:
    __slots__ = (
        "busy",
        "checked",
        "current",
        "description",
        "disabled",
        "expanded",
        "focused",
        "invalid",
        "level",
        "pressed",
        "required",
        "selected",
        "value",
    )

    focused: bool | None
    disabled: bool | None
    selected: bool | None
    checked: bool | str | None
    expanded: bool | None
    pressed: bool | str | None
    level: int | None
    value: str | None
    description: str | None
    invalid: bool | None
    required: bool | None
    busy: bool | None
    current: str | None

    def _init_state(self) -> None:
        for field in _StateFields.__slots__:
            setattr(self, field, None)

    def _state_dict(self) -> dict[str, Any]:
        return {field: getattr(self, field) for field in _StateFields.__slots__ if getattr(self, field) is not None}


class AriaNode(_StateFields):
    """One node of a nested snapshot. Children are `AriaNode`s or text strings."""

    __slots__ = ("box", "children", "element", "name", "placeholder", "receives_pointer_events", "ref", "role", "tag", "url")

    role: str | None
    name: str
    tag: str
    children: list[AriaNode | str]
    ref: str | None
    box: ElementBox | None
    receives_pointer_events: bool | None
    url: str | None
    placeholder: str | None
    element: Element | None

    def __init__(self, role: str | None, name: str, tag: str, element: Element | None = None) -> None:
        self._init_state()
        self.role = role
        self.name = name
        self.tag = tag
        self.children = []
        self.ref = None
        self.box = None
        self.receives_pointer_events = None
        self.url = None
        self.placeholder = None
        self.element = element

    def __repr__(self) -> str:
        return f"<AriaNode {self.role or self.tag} {self.name!r}>"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"role": self.role, "name": self.name, "tag": self.tag}
        if self.ref is not None:
            result["ref"] = self.ref
        if self.box is not None:
            box: dict[str, Any] = {"visible": self.box.visible, "inline": self.box.inline}
            if self.box.cursor is not None:
                box["cursor"] = self.box.cursor
            result["box"] = box
        if self.receives_pointer_events is not None:
            result["receives_pointer_events"] = self.receives_pointer_events
        result.update(self._state_dict())
        if self.url is not None:
            result["url"] = self.url
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        if self.children:
            result["children"] = [child if isinstance(child, str) else child.to_dict() for child in self.children]
        return result


class LegacyNode(_StateFields):
    """One entry of a flat snapshot."""

    __slots__ = ("bbox", "name", "ref", "role", "tag")

    ref: str
    role: str | None
    name: str
    tag: str
    bbox: dict[str, int] | None

    def __init__(self, ref: str, role: str | None, name: str, tag: str) -> None:
        self._init_state()
        self.ref = ref
        self.role = role
        self.name = name
        self.tag = tag
        self.bbox = None

    def __repr__(self) -> str:
        return f"<LegacyNode [{self.ref}] {self.role or self.tag} {self.name!r}>"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ref": self.ref, "role": self.role, "name": self.name, "tag": self.tag}
        result.update(self._state_dict())
        if self.bbox is not None:
            result["bbox"] = dict(self.bbox)
        return result


class AriaTree:
    """Result of `generate_aria_tree`: the root plus ref lookups in both directions."""

    __slots__ = ("elements", "refs", "root")

    root: AriaNode
    elements: dict[str, Element]
    refs: dict[Element, str]

    def __init__(self, root: AriaNode) -> None:
        self.root = root
        self.elements = {}
        self.refs = {}

    def __repr__(self) -> str:
        return f"<AriaTree refs={len(self.elements)}>"


def _normalize(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_interactable(element: Element, role: str | None) -> bool:
    """Whether an element gets a ref in `interactable` mode."""
    if role in INTERACTIVE_ROLES or element.name in INTERACTIVE_TAGS:
        return True
    tabindex = (element.get_attribute("tabindex") or "").strip()
    if tabindex:
        try:
            if int(tabindex) >= 0:
                return True
        except ValueError:
            pass
    return is_content_editable(element)


def _tristate(value: str | None) -> bool | str | None:
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "mixed":
        return "mixed"
    return None


def get_checked_state(element: Element) -> bool | str | None:
    if element.name == "input":
        if element.indeterminate:
            return "mixed"
        if element.type in ("checkbox", "radio"):
            return element.checked
    return _tristate(element.get_attribute("aria-checked"))


def get_expanded_state(element: Element) -> bool | None:
    if element.name == "details":
        return element.has_attribute("open")
    value = element.get_attribute("aria-expanded")
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def get_selected_state(element: Element) -> bool | None:
    if element.name == "option":
        return element.selected
    value = element.get_attribute("aria-selected")
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _is_disabled(element: Element) -> bool:
    return element.disabled or element.get_attribute("aria-disabled") == "true"


def _fill_common_state(node: _StateFields, element: Element) -> None:
    document = element.owner_document
    if document is not None and document.active_element is element:
        node.focused = True
    if element.get_attribute("aria-invalid") in _INVALID_VALUES:
        node.invalid = True
    if element.get_attribute("aria-required") == "true" or element.required:
        node.required = True
    if element.get_attribute("aria-busy") == "true":
        node.busy = True
    current = element.get_attribute("aria-current")
    if current and current != "false":
        node.current = current
    description = compute_accessible_description(element)
    if description:
        node.description = description


def _start_node(root: Node, selector: str | None) -> Node | None:
    if selector:
        matches = query(root, selector)
        if matches:
            return matches[0]
    if isinstance(root, Document):
        return root.document_element
    return root


# Nested tree


class _AriaTreeBuilder:
    __slots__ = ("options", "registry", "tree", "visited")

    options: TreeOptions
    registry: RefRegistry
    tree: AriaTree
    visited: set[Node]

    def __init__(self, options: TreeOptions, registry: RefRegistry) -> None:
        self.options = options
        self.registry = registry
        self.tree = AriaTree(AriaNode("fragment", "", "fragment"))
        self.visited = set()

    def _is_visible(self, element: Element) -> bool:
        if self.options.mode == "strict":
            return not is_ignored_for_aria(element)
        return check_element_visibility(element, self.options.visibility)

    def visit(self, aria_node: AriaNode, node: Node, parent_visible: bool, depth: int) -> None:
        if node in self.visited:
            return
        self.visited.add(node)

        if isinstance(node, Text):
            # A textbox reports its value, not its content.
            if parent_visible and aria_node.role != "textbox" and node.data.strip():
                aria_node.children.append(node.data)
            return
        if not isinstance(node, Element):
            return
        if self.options.max_depth is not None and depth > self.options.max_depth:
            return

        visible = self._is_visible(node)
        if not visible and (self.options.visibility == "aria" or is_ignored_for_aria(node)):
            return

        child_node = self.create_node(node) if visible else None
        if child_node is not None:
            if child_node.ref is not None:
                self.tree.elements[child_node.ref] = node
                self.tree.refs[node] = child_node.ref
            aria_node.children.append(child_node)

        self.visit_children(child_node or aria_node, node, visible, depth)

    def visit_children(self, aria_node: AriaNode, element: Element, visible: bool, depth: int) -> None:
        is_block = self.options.block_spacing and (
            get_cached_style(element).display != "inline" or element.name == "br"
        )
        if is_block and aria_node.children:
            aria_node.children.append(" ")

        assigned = element.assigned_nodes() if element.name == "slot" else []
        if assigned:
            for child in assigned:
                self.visit(aria_node, child, visible, depth + 1)
        else:
            for child in element.children:
                if child.assigned_slot is None:
                    self.visit(aria_node, child, visible, depth + 1)
            if self.options.pierce_shadow_dom and element.shadow_root is not None:
                for child in element.shadow_root.children:
                    self.visit(aria_node, child, visible, depth + 1)

        for owned in get_id_refs(element, element.get_attribute("aria-owns")):
            self.visit(aria_node, owned, visible, depth + 1)

        if is_block and aria_node.children:
            aria_node.children.append(" ")

        if len(aria_node.children) == 1 and aria_node.children[0] == aria_node.name:
            aria_node.children = []

    def create_node(self, element: Element) -> AriaNode | None:
        options = self.options
        role = get_aria_role(element)
        if role is None and options.include_generic_role:
            role = "generic"
        if role in ("presentation", "none"):
            return None

        if options.mode == "ai" and role == "generic":
            box = compute_element_box(element)
            if box.inline and len(element.children) == 1 and isinstance(element.children[0], Text):
                return None

        node = AriaNode(role, _normalize(compute_accessible_name(element)), element.name, element)

        if options.refs == "all" or (options.refs == "interactable" and is_interactable(element, role)):
            node.ref = self.registry.get_element_ref(element)

        if options.include_bbox or options.mode == "ai":
            box = compute_element_box(element)
            node.box = ElementBox(box.visible, box.inline, get_cursor(element) if options.include_cursor else None)

        if options.include_pointer_events:
            node.receives_pointer_events = receives_pointer_events(element)

        if role in CHECKED_ROLES:
            node.checked = get_checked_state(element)
        if role in DISABLED_ROLES and _is_disabled(element):
            node.disabled = True
        if role in EXPANDED_ROLES or element.name == "details":
            node.expanded = get_expanded_state(element)
        if role in LEVEL_ROLES:
            node.level = get_heading_level(element)
        if role in PRESSED_ROLES:
            node.pressed = _tristate(element.get_attribute("aria-pressed"))
        if role in SELECTED_ROLES:
            node.selected = get_selected_state(element)

        if element.name in ("input", "textarea") and element.type not in _NO_VALUE_INPUT_TYPES:
            value = element.value
            if value:
                node.value = value

        _fill_common_state(node, element)

        if role == "link" and element.has_attribute("href"):
            node.url = element.get_attribute("href") or None
        if role == "textbox":
            placeholder = element.get_attribute("placeholder")
            if placeholder and placeholder != node.name:
                node.placeholder = placeholder
        return node


def _normalize_string_children(node: AriaNode) -> None:
    normalized: list[AriaNode | str] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            text = _normalize("".join(buffer))
            if text:
                normalized.append(text)
            buffer.clear()

    for child in node.children:
        if isinstance(child, str):
            buffer.append(child)
        else:
            flush()
            _normalize_string_children(child)
            normalized.append(child)
    flush()

    if len(normalized) == 1 and normalized[0] == node.name:
        normalized = []
    node.children = normalized


def _fold_generic(node: AriaNode, tree: AriaTree) -> list[AriaNode | str]:
    """Replace unnamed generic wrappers holding at most one referenceable node with that node.

    A folded wrapper's own ref leaves the tree's lookups with it.
    """
    result: list[AriaNode | str] = []
    for child in node.children:
        if isinstance(child, str):
            result.append(child)
        else:
            result.extend(_fold_generic(child, tree))

    if (
        node.role in (None, "generic")
        and not node.name
        and len(result) <= 1
        and all(not isinstance(child, str) and child.ref is not None for child in result)
    ):
        if node.ref is not None:
            tree.elements.pop(node.ref, None)
            if node.element is not None:
                tree.refs.pop(node.element, None)
        return result

    node.children = result
    return [node]


def generate_aria_tree(
    root: Node,
    options: TreeOptions | None = None,
    *,
    registry: RefRegistry | None = None,
    **kwargs: Any,
) -> AriaTree:
    """Build a nested accessibility snapshot of `root`.

    Args:
        root: A document, shadow root or element
        options: A `TreeOptions`; keyword arguments build one when omitted
        registry: Where reference ids come from (the process-wide registry by default)

    Returns:
        An `AriaTree` whose root is a `fragment` node
    """
    if options is None:
        options = TreeOptions(**kwargs)
    builder = _AriaTreeBuilder(options, registry if registry is not None else ref_registry)
    root_node = builder.tree.root

    with caching():
        start = _start_node(root, options.selector)
        if isinstance(start, Element):
            builder.visit(root_node, start, True, 0)
        elif start is not None:
            for child in start.children:
                builder.visit(root_node, child, True, 0)

    _normalize_string_children(root_node)
    if options.fold_generic:
        root_node.children = [folded for child in root_node.children for folded in _fold_or_keep(child, builder.tree)]
    return builder.tree


def _fold_or_keep(child: AriaNode | str, tree: AriaTree) -> list[AriaNode | str]:
    if isinstance(child, str):
        return [child]
    return _fold_generic(child, tree)


# Flat tree


def _create_legacy_node(element: Element, include_bbox: bool, registry: RefRegistry) -> LegacyNode:
    node = LegacyNode(
        registry.get_element_ref(element),
        get_aria_role(element),
        compute_accessible_name(element),
        element.name,
    )

    if _is_disabled(element):
        node.disabled = True

    if element.name == "input" and element.type in ("checkbox", "radio"):
        node.checked = "mixed" if element.indeterminate else element.checked
    aria_checked = element.get_attribute("aria-checked")
    if aria_checked is not None:
        node.checked = "mixed" if aria_checked == "mixed" else aria_checked == "true"

    if element.name == "option":
        node.selected = element.selected
    if element.get_attribute("aria-selected") == "true":
        node.selected = True

    if (element.name == "input" and element.type not in _NO_VALUE_INPUT_TYPES) or element.name in ("textarea", "select"):
        node.value = element.value

    node.level = get_heading_level(element)

    aria_expanded = element.get_attribute("aria-expanded")
    if aria_expanded is not None:
        node.expanded = aria_expanded == "true"
    elif element.name == "details":
        node.expanded = element.has_attribute("open")

    aria_pressed = element.get_attribute("aria-pressed")
    if aria_pressed is not None:
        node.pressed = "mixed" if aria_pressed == "mixed" else aria_pressed == "true"

    _fill_common_state(node, element)

    if include_bbox:
        rect = element.get_bounding_client_rect()
        node.bbox = {
            "x": round(rect.x),
            "y": round(rect.y),
            "width": round(rect.width),
            "height": round(rect.height),
        }
    return node


def _is_legacy_interactive(node: LegacyNode) -> bool:
    return node.role in INTERACTIVE_ROLES or node.tag in INTERACTIVE_TAGS


def generate_a11y_tree(
    root: Node,
    options: TreeOptions | None = None,
    *,
    registry: RefRegistry | None = None,
    **kwargs: Any,
) -> list[LegacyNode]:
    """Build a flat accessibility snapshot of `root` in tree order.

    Subtrees hidden by ARIA markup (`aria-hidden`, ignored tags) are skipped;
    CSS hiding is not consulted. Every listed element gets a reference id.
    """
    if options is None:
        options = TreeOptions(**kwargs)
    registry = registry if registry is not None else ref_registry
    nodes: list[LegacyNode] = []

    def collect(element: Element, depth: int) -> None:
        if options.max_depth is not None and depth > options.max_depth:
            return
        if is_element_hidden_for_aria(element, include_css=False):
            return
        node = _create_legacy_node(element, options.include_bbox, registry)
        if not options.interactive_only or _is_legacy_interactive(node):
            nodes.append(node)
        if options.pierce_shadow_dom and element.shadow_root is not None:
            for child in element.shadow_root.element_children:
                collect(child, depth + 1)
        for child in element.element_children:
            collect(child, depth + 1)

    with caching():
        start = _start_node(root, options.selector)
        if isinstance(start, Element):
            collect(start, 0)
        elif start is not None:
            for child in start.element_children:
                collect(child, 0)
    return nodes


# Formatting


def format_a11y_tree(nodes: list[LegacyNode], compact: bool = True) -> str:
    """Render a flat snapshot as one `[ref] role "name" (state)...` line per node."""
    lines: list[str] = []
    for node in nodes:
        parts = [f"[{node.ref}]", node.role or node.tag]
        if node.name:
            parts.append(f'"{node.name}"')
        if node.focused:
            parts.append("(focused)")
        if node.disabled:
            parts.append("(disabled)")
        if node.selected is not None:
            parts.append("(selected)" if node.selected else "(not selected)")
        if node.checked is not None:
            if node.checked == "mixed":
                parts.append("(mixed)")
            else:
                parts.append("(checked)" if node.checked else "(unchecked)")
        if node.expanded is not None:
            parts.append("(expanded)" if node.expanded else "(collapsed)")
        if node.pressed is not None:
            if node.pressed == "mixed":
                parts.append("(pressed=mixed)")
            else:
                parts.append("(pressed)" if node.pressed else "(not pressed)")
        if node.invalid:
            parts.append("(invalid)")
        if node.required:
            parts.append("(required)")
        if node.busy:
            parts.append("(busy)")
        if node.current:
            parts.append(f"(current={node.current})")
        if node.value:
            parts.append(f'value="{node.value}"')
        if node.level is not None:
            parts.append(f"level={node.level}")
        if not compact and node.description:
            parts.append(f'desc="{node.description}"')
        if not compact and node.bbox is not None:
            bbox = node.bbox
            parts.append(f"@{bbox['x']},{bbox['y']} {bbox['width']}x{bbox['height']}")
        lines.append(" ".join(parts))
    return "\n".join(lines)


def _aria_attributes(node: AriaNode) -> list[str]:
    attrs: list[str] = []
    if node.ref is not None:
        attrs.append(f"ref={node.ref}")
    if node.checked == "mixed":
        attrs.append("checked=mixed")
    elif node.checked:
        attrs.append("checked")
    if node.disabled:
        attrs.append("disabled")
    if node.expanded:
        attrs.append("expanded")
    if node.focused:
        attrs.append("active")
    if node.level:
        attrs.append(f"level={node.level}")
    if node.pressed == "mixed":
        attrs.append("pressed=mixed")
    elif node.pressed:
        attrs.append("pressed")
    if node.selected:
        attrs.append("selected")
    if node.box is not None and node.box.cursor == "pointer" and node.ref is not None:
        attrs.append("cursor=pointer")
    return attrs


def format_aria_tree(root: AriaNode, indent: int = 0) -> str:
    """Render a nested snapshot as YAML-like `- role "name" [attr]` lines."""
    lines: list[str] = []

    def format_node(node: AriaNode | str, level: int) -> None:
        prefix = "  " * level + "- "
        if isinstance(node, str):
            lines.append(f'{prefix}text: "{node}"')
            return

        line = node.role or node.tag
        if node.name:
            line += f' "{node.name}"'
        attrs = _aria_attributes(node)
        if attrs:
            line += " [" + "] [".join(attrs) + "]"

        if node.children:
            lines.append(f"{prefix}{line}:")
            for child in node.children:
                format_node(child, level + 1)
        elif node.value:
            lines.append(f'{prefix}{line}: "{node.value}"')
        else:
            lines.append(prefix + line)

    if root.role == "fragment":
        for child in root.children:
            format_node(child, indent)
    else:
        format_node(root, indent)
    return "\n".join(lines)
