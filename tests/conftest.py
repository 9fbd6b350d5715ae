"""
Shared fixtures: in-memory store and a manually pumped main queue.
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from common.types import MainQueue
from persistence.store import PhotoStore


@pytest.fixture
def store():
    s = PhotoStore("sqlite://")
    yield s
    s.close()


@pytest.fixture
def main_queue():
    return MainQueue()


@pytest.fixture
def location(store):
    loc = store.add_pin(40.0, -70.0)
    store.save()
    return loc
