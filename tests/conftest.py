import sys, os

import pytest

# Ensure src is on path for test imports
ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, 'src')
for path in (SRC, ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)

from tests.helpers import RecordingProvider, build_engine, spawn_subject

__all__ = [
    "RecordingProvider",
    "build_engine",
    "spawn_subject",
]


@pytest.fixture
def engine():
    """Bus, world and effect system without the buff provider attached."""
    return build_engine()
