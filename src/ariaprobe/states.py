"""Element state checks and interaction retargeting.

`check_element_state` answers whether an element is visible, enabled,
editable or checked the way an automation step would ask before acting on
it. `retarget` maps the node under a pointer to the element that should
receive the action: the control behind a label, or the button or link around
an icon.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .errors import ElementStateError, generate_error_message
from .node import Element, Node
from .roles import get_aria_role
from .visibility import is_element_visible

logger = logging.getLogger(__name__)

ELEMENT_STATES: tuple[str, ...] = (
    "visible",
    "hidden",
    "enabled",
    "disabled",
    "editable",
    "checked",
    "unchecked",
    "indeterminate",
    "stable",
)

RETARGET_BEHAVIORS: tuple[str, ...] = ("none", "follow-label", "button-link", "no-follow-label")

ARIA_DISABLED_ROLES: frozenset[str] = frozenset(
    {
        "application",
        "button",
        "checkbox",
        "columnheader",
        "combobox",
        "composite",
        "grid",
        "gridcell",
        "group",
        "input",
        "link",
        "listbox",
        "menu",
        "menubar",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "option",
        "radio",
        "radiogroup",
        "row",
        "rowheader",
        "scrollbar",
        "searchbox",
        "select",
        "separator",
        "slider",
        "spinbutton",
        "switch",
        "tab",
        "tablist",
        "textbox",
        "toolbar",
        "tree",
        "treegrid",
        "treeitem",
    }
)

ARIA_CHECKED_ROLES: frozenset[str] = frozenset(
    {"checkbox", "menuitemcheckbox", "menuitemradio", "option", "radio", "switch", "treeitem"}
)

ARIA_READONLY_ROLES: frozenset[str] = frozenset(
    {
        "checkbox",
        "columnheader",
        "combobox",
        "grid",
        "gridcell",
        "listbox",
        "radiogroup",
        "rowheader",
        "searchbox",
        "slider",
        "spinbutton",
        "switch",
        "textbox",
        "treegrid",
    }
)

_BUTTON_OR_LINK = 'button, [role="button"], a, [role="link"]'
_BUTTON_OR_TOGGLE = 'button, [role="button"], [role="checkbox"], [role="radio"]'


class StateCheckResult:
    """Outcome of one state check.

    `received` names the state the element is actually in ("visible",
    "disabled", "readonly", "mixed", ...) or "error:notconnected".
    """

    __slots__ = ("is_radio", "matches", "received")

    matches: bool
    received: str
    is_radio: bool

    def __init__(self, matches: bool, received: str, is_radio: bool = False) -> None:
        self.matches = matches
        self.received = received
        self.is_radio = is_radio

    def __repr__(self) -> str:
        return f"<StateCheckResult matches={self.matches} received={self.received!r}>"


def is_content_editable(element: Element) -> bool:
    node: Element | None = element
    while node is not None:
        value = node.get_attribute("contenteditable")
        if value is not None:
            return value.strip().lower() != "false"
        node = node.parent_element
    return False


def _aria_flag(element: Element, name: str) -> bool | None:
    value = (element.get_attribute(name) or "").lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def is_element_disabled(element: Element) -> bool:
    """Native disabled state, then `aria-disabled` on the element and its nearest ancestor that sets it."""
    if element.disabled:
        return True
    if get_aria_role(element) in ARIA_DISABLED_ROLES:
        own = _aria_flag(element, "aria-disabled")
        if own is not None:
            return own
    ancestor = element.parent_element
    while ancestor is not None:
        flag = _aria_flag(ancestor, "aria-disabled")
        if flag is not None:
            return flag
        ancestor = ancestor.parent_element
    return False


def _is_readonly(element: Element) -> bool | None:
    if element.name in ("input", "textarea", "select"):
        return element.has_attribute("readonly")
    if get_aria_role(element) in ARIA_READONLY_ROLES:
        return element.get_attribute("aria-readonly") == "true"
    if is_content_editable(element):
        return False
    return None


def _checked_state(element: Element, allow_mixed: bool) -> bool | str | None:
    if element.name == "input" and element.type in ("checkbox", "radio"):
        if allow_mixed and element.indeterminate:
            return "mixed"
        return element.checked
    if get_aria_role(element) in ARIA_CHECKED_ROLES:
        value = element.get_attribute("aria-checked")
        if value == "true":
            return True
        if allow_mixed and value == "mixed":
            return "mixed"
        return False
    return None


def check_element_state(element: Element, state: str) -> StateCheckResult:
    """Check one of `ELEMENT_STATES` against `element`.

    `stable` is answered from the current tree only: a connected element with
    a non-empty box.

    Raises:
        ElementStateError: For an unknown state, `editable` on an element that
            has no read-only notion, or `checked`/`unchecked`/`indeterminate`
            on an element that cannot be checked
    """
    if state not in ELEMENT_STATES:
        raise ElementStateError(generate_error_message("unknown-state", state), "unknown-state")

    if state == "stable":
        if not element.is_connected:
            return StateCheckResult(False, "disconnected")
        has_size = not element.get_bounding_client_rect().is_empty
        return StateCheckResult(has_size, "stable" if has_size else "no-size")

    if not element.is_connected:
        if state == "hidden":
            return StateCheckResult(True, "hidden")
        return StateCheckResult(False, "error:notconnected")

    if state in ("visible", "hidden"):
        visible = is_element_visible(element)
        return StateCheckResult(visible == (state == "visible"), "visible" if visible else "hidden")

    if state in ("enabled", "disabled"):
        disabled = is_element_disabled(element)
        return StateCheckResult(disabled == (state == "disabled"), "disabled" if disabled else "enabled")

    if state == "editable":
        readonly = _is_readonly(element)
        if readonly is None:
            raise ElementStateError(generate_error_message("not-editable"), "not-editable")
        disabled = is_element_disabled(element)
        received = "disabled" if disabled else "readonly" if readonly else "editable"
        return StateCheckResult(not disabled and not readonly, received)

    if state in ("checked", "unchecked"):
        checked = _checked_state(element, allow_mixed=False)
        if checked is None:
            raise ElementStateError(generate_error_message("not-checkable"), "not-checkable")
        is_radio = element.name == "input" and element.type == "radio"
        return StateCheckResult(checked == (state == "checked"), "checked" if checked else "unchecked", is_radio)

    mixed = _checked_state(element, allow_mixed=True)
    if mixed is None:
        raise ElementStateError(generate_error_message("not-checkable"), "not-checkable")
    received = "mixed" if mixed == "mixed" else "checked" if mixed else "unchecked"
    return StateCheckResult(mixed == "mixed", received)


def check_element_states(element: Element, states: Iterable[str]) -> str | None:
    """Return the first of `states` the element is not in, or None when all hold.

    A state the element cannot carry counts as missing.
    """
    for state in states:
        try:
            result = check_element_state(element, state)
        except ElementStateError as exc:
            logger.debug("State %r cannot be checked on <%s>: %s", state, element.name, exc)
            return state
        if not result.matches:
            return state
    return None


def is_input_like(element: Element) -> bool:
    return element.name in ("input", "textarea", "select") or is_content_editable(element)


def is_action_target(element: Element) -> bool:
    if element.name in ("a", "button", "input", "textarea", "select") or is_content_editable(element):
        return True
    return element.get_attribute("role") in ("button", "link", "checkbox", "radio")


def retarget(node: Node | None, behavior: str = "follow-label") -> Element | None:
    """Map the node an action lands on to the element that should handle it.

    Text nodes become their parent element. `button-link` climbs to the
    nearest button or link; `follow-label` and `no-follow-label` climb to the
    nearest button, checkbox or radio. Inputs, textareas, selects and editable
    content never climb. `follow-label` then moves from inside a `<label>` to
    its control unless the element is already an action target.

    Raises:
        ValueError: For a behavior outside `RETARGET_BEHAVIORS`
    """
    if behavior not in RETARGET_BEHAVIORS:
        raise ValueError(generate_error_message("unknown-retarget-behavior", behavior))
    if node is None:
        return None
    element = node if isinstance(node, Element) else node.parent_element
    if element is None or behavior == "none":
        return element

    if not is_input_like(element):
        selector = _BUTTON_OR_LINK if behavior == "button-link" else _BUTTON_OR_TOGGLE
        element = element.closest(selector) or element

    if behavior == "follow-label" and not is_action_target(element):
        label = element.closest("label")
        if label is not None and label.control is not None:
            element = label.control
    return element
