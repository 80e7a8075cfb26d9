"""
Pytest fixtures for graphpress.service tests.

Provides:
- Temporary storage instances
- Users with known credentials
- MessagingService / AccountService instances
"""

import os
import tempfile
from typing import Generator

import pytest

from graphpress.core import GraphStorage
from graphpress.service import MessagingService, AccountService, hash_password

TEST_ITERATIONS = 1000
TEST_PASSWORD = "correct horse"


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def empty_storage(temp_dir: str) -> GraphStorage:
    """Create an empty GraphStorage instance for testing."""
    return GraphStorage(json_path=os.path.join(temp_dir, "test_graph.json"))


@pytest.fixture
def users(empty_storage: GraphStorage) -> dict:
    """Three users keyed by username -> node ID."""
    result = {}
    for name in ("alice", "bob", "carol"):
        user = empty_storage.add_user(name, hash_password(TEST_PASSWORD, TEST_ITERATIONS))
        result[name] = user.id
    return result


@pytest.fixture
def messaging(empty_storage: GraphStorage) -> MessagingService:
    """MessagingService over the test storage."""
    return MessagingService(empty_storage)


@pytest.fixture
def accounts(empty_storage: GraphStorage) -> AccountService:
    """AccountService with a cheap hash for fast tests."""
    return AccountService(empty_storage, pbkdf2_iterations=TEST_ITERATIONS)
