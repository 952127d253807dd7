"""Build ariaprobe documents from HTML markup.

Tree construction follows the HTML5 algorithm through justhtml's parser
(implied end tags, implied `tbody`/`tr`, foster parenting, adoption agency).
The resulting tree is copied into ariaprobe nodes: declarative shadow roots
(`<template shadowrootmode="open|closed">`) become real shadow roots and each
`<style>` element feeds the rule list of the document or shadow root that
owns it.
"""

from __future__ import annotations

import logging
from typing import Any

from justhtml import JustHTML

from .node import Comment, Document, Element, Node, ShadowRoot, TemplateElement, Text
from .stylesheet import parse_stylesheet

logger = logging.getLogger(__name__)


class TreeLoader:
    """Copies a justhtml tree into a `Document`."""

    __slots__ = ("document", "styles")

    document: Document
    styles: list[Element]

    def __init__(self, document: Document | None = None) -> None:
        self.document = document or Document()
        self.styles = []

    def load(self, markup: str) -> Document:
        parsed = JustHTML(markup, collect_errors=True)
        for error in parsed.errors:
            logger.debug("HTML parse error %s at %s:%s", error.code, error.line, error.column)
        self._copy_children(parsed.root, self.document)
        for style in self.styles:
            root = style.root_node()
            if isinstance(root, (Document, ShadowRoot)):
                root.style_rules.extend(parse_stylesheet(style.text_content))
        return self.document

    def _copy_children(self, source: Any, parent: Node) -> None:
        for child in source.children or ():
            name = child.name
            if name == "#text":
                if child.data:
                    parent.append_child(Text(child.data))
            elif name == "#comment":
                parent.append_child(Comment(child.data or ""))
            elif not name.startswith("#") and name != "!doctype":
                self._copy_element(child, parent)

    def _copy_element(self, source: Any, parent: Node) -> None:
        attrs = {key: "" if value is None else value for key, value in (source.attrs or {}).items()}
        namespace = source.namespace or "html"
        content = getattr(source, "template_content", None)

        if source.name == "template" and namespace == "html":
            mode = attrs.get("shadowrootmode", "").lower()
            if mode in ("open", "closed") and isinstance(parent, Element) and parent.shadow_root is None:
                shadow = parent.attach_shadow(mode)
                if content is not None:
                    self._copy_children(content, shadow)
                return
            template = TemplateElement("template", attrs)
            parent.append_child(template)
            if content is not None:
                self._copy_children(content, template.content)
            return

        element = Element(source.name, attrs, namespace=namespace)
        parent.append_child(element)
        if element.name == "style":
            self.styles.append(element)
        self._copy_children(source, element)


def parse_html(markup: str, *, viewport: tuple[float, float] = (1280, 720)) -> Document:
    """Parse markup into a connected `Document`.

    Args:
        markup: An HTML document or fragment
        viewport: The viewport size (width, height) used by geometry checks

    Returns:
        The document; fragments end up inside its body
    """
    return TreeLoader(Document(viewport=viewport)).load(markup or "")


def parse_fragment(markup: str, *, viewport: tuple[float, float] = (1280, 720)) -> Element:
    """Parse a fragment into the body of a fresh document and return that body."""
    document = parse_html(markup, viewport=viewport)
    body = document.body
    assert body is not None
    return body
