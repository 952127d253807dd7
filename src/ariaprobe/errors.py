"""Exception types and human-readable messages for selector and reference errors.

Selector engines raise these internally while parsing; the public query
functions catch them and degrade to empty results. Only `StaleRefError`
reaches callers from queries, and only through the strict reference lookup.
`ElementStateError` comes from state checks on elements that cannot carry
the requested state.
"""

from __future__ import annotations


class SelectorError(ValueError):
    """Raised when a selector body cannot be parsed by its engine."""

    code: str | None

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class XPathError(SelectorError):
    """Raised when an XPath expression is malformed or uses an unsupported feature."""


class StaleRefError(LookupError):
    """Raised when a reference id names no live, connected element."""


class ElementStateError(ValueError):
    """Raised when an element cannot carry the state being checked."""

    code: str | None

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


def generate_error_message(code: str, detail: str | None = None) -> str:
    """Generate a human-readable error message from an error code.

    Args:
        code: The error code string (kebab-case format)
        detail: Optional offending token, name, or position for context

    Returns:
        Human-readable error message string
    """
    messages = {
        # CSS selector errors
        "empty-selector": "Empty selector",
        "unterminated-string": f"Unterminated string in selector: {detail}",
        "expected-identifier": f"Expected identifier at position {detail}",
        "expected-attribute-name": f"Expected attribute name at position {detail}",
        "expected-attribute-end": f"Expected ] at position {detail}",
        "expected-closing-paren": f"Expected ) at position {detail}",
        "unexpected-character": f"Unexpected character {detail}",
        "unexpected-token": f"Unexpected token: {detail}",
        "unsupported-pseudo-class": f"Unsupported pseudo-class: :{detail}",
        "expected-argument": f"Pseudo-class :{detail} requires an argument",
        "unexpected-argument": f"Pseudo-class :{detail} takes no argument",
        "invalid-nth": f"Invalid An+B expression: {detail!r}",
        "dangling-combinator": "Expected selector after combinator",
        "unknown-engine": f"Unknown selector engine: {detail}",
        "empty-selector-chain": "Selector chain has no stages",
        # XPath errors
        "empty-xpath": "Empty XPath expression",
        "xpath-unexpected-token": f"Unexpected token in XPath expression: {detail}",
        "xpath-unterminated-literal": f"Unterminated string literal in XPath expression: {detail}",
        "xpath-unknown-axis": f"Unsupported XPath axis: {detail}",
        "xpath-unknown-function": f"Unsupported XPath function: {detail}()",
        "xpath-not-a-node-set": "XPath expression does not evaluate to a node-set",
        # Reference errors
        "unknown-ref": f"Unknown element reference: {detail}",
        "stale-ref": f"Element reference no longer points at a connected element: {detail}",
        # Element state errors
        "unknown-state": f"Unexpected element state: {detail!r}",
        "not-editable": (
            "Element is not an <input>, <textarea>, <select> or [contenteditable] "
            "and does not have a role allowing [aria-readonly]"
        ),
        "not-checkable": "Not a checkbox or radio button",
        "unknown-retarget-behavior": f"Unknown retarget behavior: {detail!r}",
    }

    # Return message or fall back to the code itself if not found
    return messages.get(code, code)
