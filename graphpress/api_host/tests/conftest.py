"""
Pytest fixtures for graphpress.api_host tests.

Provides:
- A temporary graph file
- An app built with create_app() and a fixed session secret
- A TestClient factory; each client has its own cookie jar, i.e. its own session
"""

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

from graphpress.api_host import create_app, AppConfig
from graphpress.service import hash_password

TEST_PASSWORD = "correct horse"


@pytest.fixture
def temp_graph_file():
    """Path to a graph file inside a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "test_graph.json")


@pytest.fixture
def test_config(temp_graph_file) -> AppConfig:
    return AppConfig(
        graph_file=temp_graph_file,
        session_secret="test-secret",
        api_prefix="/api",
    )


@pytest.fixture
def app(test_config):
    return create_app(test_config)


@pytest.fixture
def storage(app):
    return app.state.graph_storage


@pytest.fixture
def users(storage) -> dict:
    """Three users keyed by username -> node ID."""
    return {
        name: storage.add_user(name, hash_password(TEST_PASSWORD, iterations=1000)).id
        for name in ("alice", "bob", "carol")
    }


@pytest.fixture
def client_for(app, users):
    """Return a function that builds a TestClient logged in as the given user."""
    clients = []

    def _make(username=None) -> TestClient:
        client = TestClient(app)
        clients.append(client)
        if username is not None:
            response = client.post("/api/login", params={"username": username, "password": TEST_PASSWORD})
            assert response.status_code == 200, response.text
        return client

    yield _make

    for client in clients:
        client.close()
