import pytest

from ariaprobe.cache import clear_all_caches
from ariaprobe.refs import ref_registry


@pytest.fixture(autouse=True)
def fresh_state():
    clear_all_caches()
    ref_registry.clear_element_refs()
    yield
    clear_all_caches()
    ref_registry.clear_element_refs()
