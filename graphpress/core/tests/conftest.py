"""
Pytest fixtures for graphpress.core tests
"""

import os
import tempfile

import pytest

from graphpress.core import GraphStorage


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_storage(temp_dir):
    """Create an empty GraphStorage instance for testing"""
    return GraphStorage(json_path=os.path.join(temp_dir, "test_graph.json"))


@pytest.fixture
def alice_and_bob(temp_storage):
    """Two users; returns (storage, alice node, bob node)"""
    alice = temp_storage.node(temp_storage.add_user("alice").id)
    bob = temp_storage.node(temp_storage.add_user("bob").id)
    return temp_storage, alice, bob
