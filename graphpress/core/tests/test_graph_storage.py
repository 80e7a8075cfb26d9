"""
Unit tests for graphpress.core storage and handles
"""

import json
import os
from unittest.mock import patch

import pytest

from graphpress.core import (
    GraphStorage, NodeHandle, EdgeHandle,
    NodeNotFoundError, EdgeNotFoundError, DuplicateUsernameError, StorageError,
)
from graphpress.core.storage import _lock_file, _unlock_file


class TestGraphStorageInit:
    """Tests for GraphStorage initialization"""

    def test_creates_empty_graph_on_init(self, temp_storage):
        assert len(temp_storage.users) == 0
        assert len(temp_storage.messages) == 0

    def test_creates_json_file(self, temp_storage):
        assert temp_storage.json_path.exists()

    def test_loads_existing_graph(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        alice.message(bob, "hello")

        new_storage = GraphStorage(json_path=str(storage.json_path))

        assert len(new_storage.users) == 2
        assert len(new_storage.messages) == 1

    def test_corrupt_file_raises_storage_error(self, temp_dir):
        path = os.path.join(temp_dir, "broken.json")
        with open(path, "w") as f:
            f.write("{not json")

        with pytest.raises(StorageError):
            GraphStorage(json_path=path)


class TestUsers:
    """Tests for user nodes"""

    def test_add_user(self, temp_storage):
        user = temp_storage.add_user("alice", "hash")
        assert temp_storage.get_user(user.id) == user
        assert temp_storage.find_user_by_username("alice") == user

    def test_username_lookup_is_case_insensitive(self, temp_storage):
        user = temp_storage.add_user("Alice")
        assert temp_storage.find_user_by_username("alice") == user

    def test_duplicate_username_rejected(self, temp_storage):
        temp_storage.add_user("alice")
        with pytest.raises(DuplicateUsernameError):
            temp_storage.add_user("ALICE")
        assert len(temp_storage.users) == 1

    def test_node_lookup(self, temp_storage):
        user = temp_storage.add_user("alice")
        node = temp_storage.node(user.id)
        assert isinstance(node, NodeHandle)
        assert node.id == user.id
        assert node.username == "alice"

    def test_node_lookup_accepts_uppercase_id(self, temp_storage):
        user = temp_storage.add_user("alice")
        assert temp_storage.node(user.id.upper()).id == user.id

    def test_unknown_node_raises(self, temp_storage):
        with pytest.raises(NodeNotFoundError):
            temp_storage.node("0" * 32)


class TestMessages:
    """Tests for message edges"""

    def test_message_creates_edge(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")

        assert isinstance(msg, EdgeHandle)
        assert msg.tail() == alice
        assert msg.head() == bob
        assert msg.content == "hello"
        assert msg.is_read is False
        assert storage.graph.has_edge(alice.id, bob.id, key=msg.id)

    def test_message_to_unknown_node_raises(self, alice_and_bob):
        storage, alice, _ = alice_and_bob
        with pytest.raises(NodeNotFoundError):
            storage.add_message(alice.id, "0" * 32, "hello")
        assert len(storage.messages) == 0

    def test_incoming_messages_in_creation_order(self, temp_storage):
        alice = temp_storage.node(temp_storage.add_user("alice").id)
        bob = temp_storage.node(temp_storage.add_user("bob").id)
        carol = temp_storage.node(temp_storage.add_user("carol").id)

        first = alice.message(carol, "1")
        second = bob.message(carol, "2")
        third = alice.message(carol, "3")

        incoming = [m.id for m in carol.get_incoming_messages()]
        assert incoming == [first.id, second.id, third.id]

    def test_incoming_order_survives_reload(self, temp_storage):
        alice = temp_storage.node(temp_storage.add_user("alice").id)
        bob = temp_storage.node(temp_storage.add_user("bob").id)
        carol = temp_storage.node(temp_storage.add_user("carol").id)
        ids = [
            alice.message(carol, "1").id,
            bob.message(carol, "2").id,
            alice.message(carol, "3").id,
        ]

        reloaded = GraphStorage(json_path=str(temp_storage.json_path))
        assert [m.id for m in reloaded.node(carol.id).get_incoming_messages()] == ids

    def test_sent_messages(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")
        assert [m.id for m in alice.get_sent_messages()] == [msg.id]
        assert bob.get_sent_messages() == []

    def test_has_incoming_and_sent(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")

        assert bob.has_incoming_message(msg.id)
        assert not bob.has_sent_message(msg.id)
        assert alice.has_sent_message(msg.id)
        assert not alice.has_incoming_message(msg.id)

    def test_has_message_with_unknown_id(self, alice_and_bob):
        _, alice, _ = alice_and_bob
        assert not alice.has_incoming_message("f" * 32)
        assert not alice.has_sent_message("f" * 32)

    def test_message_to_self(self, alice_and_bob):
        _, alice, _ = alice_and_bob
        msg = alice.message(alice, "note to self")
        assert alice.has_incoming_message(msg.id)
        assert alice.has_sent_message(msg.id)
        assert len(alice.get_incoming_messages()) == 1

    def test_edge_lookup(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")
        edge = storage.edge(msg.id)
        assert edge.id == msg.id
        assert edge.attributes()["content"] == "hello"

    def test_unknown_edge_raises(self, temp_storage):
        with pytest.raises(EdgeNotFoundError):
            temp_storage.edge("0" * 32)

    def test_set_is_read_persists(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")
        msg.set_is_read(True)

        assert msg.is_read is True
        assert storage.edge(msg.id).is_read is True

        reloaded = GraphStorage(json_path=str(storage.json_path))
        assert reloaded.edge(msg.id).is_read is True

    def test_stats(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        alice.message(bob, "one")
        alice.message(bob, "two").set_is_read(True)

        stats = storage.get_stats()
        assert stats.total_users == 2
        assert stats.total_messages == 2
        assert stats.unread_messages == 1


class TestPersistenceFormat:
    """Tests for the JSON file layout"""

    def test_json_layout(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")

        with open(storage.json_path, encoding="utf-8") as f:
            data = json.load(f)

        assert {n["id"] for n in data["nodes"]} == {alice.id, bob.id}
        assert data["edges"][0]["id"] == msg.id
        assert data["edges"][0]["source"] == alice.id
        assert data["edges"][0]["target"] == bob.id
        assert data["edges"][0]["content"] == "hello"
        assert data["metadata"]["version"] == "1.0"


class TestStorageFailures:
    """Tests that failed writes leave the in-memory graph unchanged"""

    def test_failed_message_write_rolls_back(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        with patch("graphpress.core.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                alice.message(bob, "hello")

        assert len(storage.messages) == 0
        assert bob.get_incoming_messages() == []

    def test_failed_read_flag_write_rolls_back(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")
        with patch("graphpress.core.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                msg.set_is_read(True)

        assert storage.edge(msg.id).is_read is False

    def test_failed_user_write_rolls_back(self, temp_storage):
        with patch("graphpress.core.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                temp_storage.add_user("alice")

        assert temp_storage.find_user_by_username("alice") is None
        assert len(temp_storage.users) == 0

    def test_invalid_record_on_reload_keeps_graph(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")

        with open(storage.json_path) as f:
            data = json.load(f)
        data["nodes"].append({"id": "nothex", "username": "eve"})
        with open(storage.json_path, "w") as f:
            json.dump(data, f)

        with pytest.raises(StorageError):
            storage.reload()

        assert len(storage.users) == 2
        assert len(storage.messages) == 1
        assert bob.has_incoming_message(msg.id)

    def test_invalid_record_on_startup_raises_storage_error(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        alice.message(bob, "hello")

        with open(storage.json_path) as f:
            data = json.load(f)
        data["edges"][0]["content"] = None
        with open(storage.json_path, "w") as f:
            json.dump(data, f)

        with pytest.raises(StorageError):
            GraphStorage(json_path=str(storage.json_path))

    def test_message_to_unknown_user_rejected_on_load(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        msg = alice.message(bob, "hello")

        with open(storage.json_path) as f:
            data = json.load(f)
        data["edges"].append(dict(data["edges"][0], id="c" * 32, target="d" * 32))
        with open(storage.json_path, "w") as f:
            json.dump(data, f)

        with pytest.raises(StorageError):
            storage.reload()

        assert list(storage.messages) == [msg.id]
        assert [m.id for m in bob.get_incoming_messages()] == [msg.id]
        assert "d" * 32 not in storage.graph


class TestFileLocks:
    """Tests for the platform file lock helpers"""

    @pytest.mark.parametrize("exclusive", [True, False])
    def test_lock_and_unlock(self, temp_storage, exclusive):
        with open(temp_storage.json_path, "r+", encoding="utf-8") as f:
            _lock_file(f, exclusive=exclusive)
            _unlock_file(f)

    def test_save_after_read_lock_released(self, alice_and_bob):
        storage, alice, bob = alice_and_bob
        storage.reload()
        alice.message(bob, "hello")
        assert len(GraphStorage(json_path=str(storage.json_path)).messages) == 1
