#!/usr/bin/env python3
"""Command-line interface for ariaprobe."""

from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import NoReturn

from .errors import SelectorError
from .evaluator import QueryOptions, default_evaluator
from .name import compute_accessible_name
from .node import Element, Node
from .parser import parse_html
from .roles import get_aria_role
from .tree import format_a11y_tree, format_aria_tree, generate_a11y_tree, generate_aria_tree


def _get_version() -> str:
    try:
        return version("ariaprobe")
    except PackageNotFoundError:  # pragma: no cover
        return "dev"


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ariaprobe",
        description="Query HTML with multi-dialect selectors and print accessibility snapshots.",
        epilog=(
            "Examples:\n"
            "  ariaprobe page.html --format aria\n"
            "  curl -s https://example.com | ariaprobe - --format tree --interactive-only\n"
            "  ariaprobe page.html --selector 'role=button[name=\"Save\"]' --format names\n"
            "  ariaprobe page.html --selector 'css=form >> text=Email' --first\n"
            "  ariaprobe page.html --selector 'internal:right-of=text=Name' --format names\n"
            "\n"
            "If you don't have the 'ariaprobe' command available, use:\n"
            "  python -m ariaprobe ...\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "path",
        nargs="?",
        help="HTML file to read, or '-' to read from stdin",
    )
    parser.add_argument(
        "--selector",
        help="Selector (engine=body, chained with >>) for choosing elements (defaults to the document root)",
    )
    parser.add_argument(
        "--format",
        choices=["html", "text", "names", "tree", "aria"],
        default="html",
        help="Output format (default: html)",
    )
    parser.add_argument(
        "--first",
        action="store_true",
        help="Only output the first matching element",
    )
    parser.add_argument(
        "--pierce",
        action="store_true",
        help="Let selectors match inside shadow roots",
    )
    parser.add_argument(
        "--visible-only",
        action="store_true",
        help="Drop matches that are not visible",
    )
    parser.add_argument(
        "--interactive-only",
        action="store_true",
        help="Flat tree only: list interactive elements only",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log warnings (-v) or debug detail (-vv) to stderr",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ariaprobe {_get_version()}",
    )

    args = parser.parse_args(argv)

    if not args.path:
        parser.print_help(sys.stderr)
        raise SystemExit(1)

    return args


def _configure_logging(verbosity: int) -> None:
    level = logging.ERROR
    if verbosity == 1:
        level = logging.WARNING
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _read_html(path: str) -> str:
    if path == "-":
        return sys.stdin.read()

    return Path(path).read_text()


def _describe(element: Element) -> str:
    role = get_aria_role(element) or element.name
    name = compute_accessible_name(element)
    return f'{role} "{name}"' if name else role


def _render(node: Node, fmt: str, interactive_only: bool) -> str:
    if fmt == "html":
        return node.to_html()
    if fmt == "text":
        return node.to_text()
    if fmt == "names":
        return _describe(node) if isinstance(node, Element) else ""
    if fmt == "tree":
        return format_a11y_tree(generate_a11y_tree(node, interactive_only=interactive_only))
    tree = generate_aria_tree(node, mode="ai")
    return format_aria_tree(tree.root)


def main() -> NoReturn | None:
    args = _parse_args(sys.argv[1:])
    _configure_logging(args.verbose)
    document = parse_html(_read_html(args.path))
    options = QueryOptions(pierce_shadow_dom=args.pierce, visible_only=args.visible_only)

    nodes: list[Node]
    if args.selector:
        try:
            default_evaluator.validate(args.selector)
        except SelectorError as e:
            print(str(e), file=sys.stderr)
            raise SystemExit(2) from e
        nodes = list(default_evaluator.query_selector_all(document, args.selector, options))
    else:
        root = document.document_element
        nodes = [root] if root is not None else []

    if not nodes:
        raise SystemExit(1)

    if args.first:
        nodes = [nodes[0]]

    outputs = [_render(node, args.format, args.interactive_only) for node in nodes]
    sys.stdout.write("\n".join(outputs))
    sys.stdout.write("\n")
    return None


if __name__ == "__main__":
    main()
