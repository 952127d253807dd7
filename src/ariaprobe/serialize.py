"""HTML serialization for ariaprobe DOM nodes."""

from __future__ import annotations

from typing import Any

from .constants import VOID_ELEMENTS


def _escape_text(text: str | None) -> str:
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _escape_attr_value(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;")


def serialize_start_tag(name: str, attrs: dict[str, str] | None) -> str:
    parts: list[str] = ["<", name]
    for key, value in (attrs or {}).items():
        if value == "":
            parts.extend([" ", key])
        else:
            parts.extend([" ", key, '="', _escape_attr_value(str(value)), '"'])
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def to_html(node: Any, indent: int = 0, indent_size: int = 2, *, pretty: bool = True) -> str:
    """Convert node to HTML string.

    Open shadow roots are emitted as declarative `<template shadowrootmode>`
    children so the output round-trips through the parser.
    """
    if node.name in ("#document", "#document-fragment", "#shadow-root"):
        parts = [_node_to_html(child, indent, indent_size, pretty) for child in node.children]
        parts = [part for part in parts if part]
        return "\n".join(parts) if pretty else "".join(parts)
    return _node_to_html(node, indent, indent_size, pretty)


def _node_to_html(node: Any, indent: int = 0, indent_size: int = 2, pretty: bool = True) -> str:
    prefix = " " * (indent * indent_size) if pretty else ""
    newline = "\n" if pretty else ""
    name: str = node.name

    if name == "#text":
        text: str = node.data
        if pretty:
            text = text.strip()
            return f"{prefix}{_escape_text(text)}" if text else ""
        return _escape_text(text)

    if name == "#comment":
        return f"{prefix}<!--{node.data}-->"

    open_tag = serialize_start_tag(name, node.attrs)

    if name in VOID_ELEMENTS:
        return f"{prefix}{open_tag}"

    children: list[Any] = list(node.children)
    content = getattr(node, "content", None)
    if name == "template" and content is not None:
        children = list(content.children)

    shadow = getattr(node, "shadow_root", None)
    shadow_html = ""
    if shadow is not None and shadow.mode == "open":
        inner = to_html(shadow, indent + 2, indent_size, pretty=pretty)
        shadow_open = serialize_start_tag("template", {"shadowrootmode": shadow.mode})
        inner_prefix = " " * ((indent + 1) * indent_size) if pretty else ""
        if inner:
            shadow_html = newline.join([f"{inner_prefix}{shadow_open}", inner, f"{inner_prefix}</template>"])
        else:
            shadow_html = f"{inner_prefix}{shadow_open}</template>"

    if not children and not shadow_html:
        return f"{prefix}{open_tag}{serialize_end_tag(name)}"

    if pretty and not shadow_html and all(c.name == "#text" for c in children):
        text = "".join(c.data for c in children)
        return f"{prefix}{open_tag}{_escape_text(text)}{serialize_end_tag(name)}"

    parts = [f"{prefix}{open_tag}"]
    if shadow_html:
        parts.append(shadow_html)
    for child in children:
        child_html = _node_to_html(child, indent + 1, indent_size, pretty)
        if child_html:
            parts.append(child_html)
    parts.append(f"{prefix}{serialize_end_tag(name)}")
    return newline.join(parts)
