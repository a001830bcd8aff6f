"""
Root pytest configuration.

Loaded before test collection so that src is importable from every test.
"""

import sys
from pathlib import Path

src_path = Path(__file__).parent / "src"
src_str = str(src_path.absolute())

if src_str in sys.path:
    sys.path.remove(src_str)
sys.path.insert(0, src_str)


import pytest


@pytest.fixture(autouse=True)
def _reset_tag_cache():
    """Drop the process-wide cache between tests for isolation."""
    from cache.tag_cache import reset_tag_cache

    reset_tag_cache()
    yield
    reset_tag_cache()
