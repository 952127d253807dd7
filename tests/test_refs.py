import gc

import pytest

from ariaprobe.errors import StaleRefError
from ariaprobe.node import Element
from ariaprobe.parser import parse_fragment
from ariaprobe.refs import RefRegistry, get_element_by_ref, get_element_ref, ref_registry


@pytest.fixture
def registry():
    return RefRegistry()


def test_refs_are_sequential_and_stable(registry):
    body = parse_fragment("<a></a><b></b>")
    a, b = body.element_children
    assert registry.get_element_ref(a) == "ref_1"
    assert registry.get_element_ref(b) == "ref_2"
    assert registry.get_element_ref(a) == "ref_1"
    assert len(registry) == 2


def test_lookup_round_trip(registry):
    body = parse_fragment("<button>b</button>")
    button = body.element_children[0]
    ref_id = registry.get_element_ref(button)
    assert registry.get_element_by_ref(ref_id) is button
    assert registry.is_valid_ref(ref_id)
    assert registry.require_element(ref_id) is button


def test_unknown_ref(registry):
    assert registry.get_element_by_ref("ref_99") is None
    with pytest.raises(StaleRefError, match="Unknown element reference"):
        registry.require_element("ref_99")


def test_removed_element_goes_stale(registry):
    body = parse_fragment("<button>b</button>")
    button = body.element_children[0]
    ref_id = registry.get_element_ref(button)
    body.remove_child(button)
    with pytest.raises(StaleRefError, match="no longer points"):
        registry.require_element(ref_id)
    assert registry.get_element_by_ref(ref_id) is None


def test_collected_element_is_pruned(registry):
    body = parse_fragment("<i></i>")
    registry.get_element_ref(body.element_children[0])
    registry.get_element_ref(Element("span"))
    gc.collect()
    assert registry.cleanup_stale_refs() == 1
    assert registry.ref_count() == 1


def test_clear_restarts_numbering(registry):
    body = parse_fragment("<i></i><b></b>")
    registry.create_element_refs(body.element_children)
    registry.clear_element_refs()
    assert len(registry) == 0
    assert registry.get_element_ref(body.element_children[1]) == "ref_1"


def test_resolve_many(registry):
    body = parse_fragment("<i></i><b></b>")
    refs = registry.create_element_refs(body.element_children)
    assert refs == ["ref_1", "ref_2"]
    assert registry.resolve_element_refs([*refs, "ref_3"]) == [*body.element_children, None]


def test_module_level_helpers_share_the_default_registry():
    body = parse_fragment("<i></i>")
    element = body.element_children[0]
    ref_id = get_element_ref(element)
    assert get_element_by_ref(ref_id) is element
    assert ref_registry.ref_count() == 1
