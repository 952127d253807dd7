from .cache import caching, clear_all_caches
from .engine import SelectorEngine, SelectorEngineRegistry, parse_selector, split_selector_chain
from .errors import ElementStateError, SelectorError, StaleRefError, XPathError
from .evaluator import (
    QueryEvaluator,
    QueryOptions,
    matches_selector,
    query_selector,
    query_selector_all,
    selector_engines,
)
from .hidden import is_element_hidden_for_aria
from .name import compute_accessible_description, compute_accessible_name
from .node import Comment, Document, DocumentFragment, Element, Node, Rect, ShadowRoot, Text
from .parser import parse_fragment, parse_html
from .refs import RefRegistry, get_element_by_ref, get_element_ref, ref_registry
from .roles import get_aria_role
from .states import StateCheckResult, check_element_state, check_element_states, retarget
from .tree import (
    AriaNode,
    AriaTree,
    LegacyNode,
    TreeOptions,
    format_a11y_tree,
    format_aria_tree,
    generate_a11y_tree,
    generate_aria_tree,
)
from .visibility import get_viewport_ratio, is_element_visible

__version__ = "0.1.0"

__all__ = [
    "AriaNode",
    "AriaTree",
    "Comment",
    "Document",
    "DocumentFragment",
    "Element",
    "ElementStateError",
    "LegacyNode",
    "Node",
    "QueryEvaluator",
    "QueryOptions",
    "Rect",
    "RefRegistry",
    "SelectorEngine",
    "SelectorEngineRegistry",
    "SelectorError",
    "ShadowRoot",
    "StaleRefError",
    "StateCheckResult",
    "Text",
    "TreeOptions",
    "XPathError",
    "__version__",
    "caching",
    "check_element_state",
    "check_element_states",
    "clear_all_caches",
    "compute_accessible_description",
    "compute_accessible_name",
    "format_a11y_tree",
    "format_aria_tree",
    "generate_a11y_tree",
    "generate_aria_tree",
    "get_aria_role",
    "get_element_by_ref",
    "get_element_ref",
    "get_viewport_ratio",
    "is_element_hidden_for_aria",
    "is_element_visible",
    "matches_selector",
    "parse_fragment",
    "parse_html",
    "parse_selector",
    "query_selector",
    "query_selector_all",
    "ref_registry",
    "retarget",
    "selector_engines",
    "split_selector_chain",
]
