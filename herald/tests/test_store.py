"""Tests for the PR/issue association store"""

import asyncio
import json
import threading

import pytest

from herald.common.store import (
    JsonFileAssociationStore,
    MemoryAssociationStore,
    associate_pull_request,
    association_key,
)


class TestAssociationKey:
    def test_numeric_and_node_ids(self):
        assert association_key(98765) == "chat-id-for-pr-98765"
        assert association_key("PR_kwDOtest123") == "chat-id-for-pr-PR_kwDOtest123"


class TestMemoryAssociationStore:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        store = MemoryAssociationStore()
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        store = MemoryAssociationStore({"a": "1"})
        await store.set("b", "2")
        assert await store.get("a") == "1"
        assert await store.get("b") == "2"


class TestJsonFileAssociationStore:
    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "associations.json"
        await JsonFileAssociationStore(path).set("chat-id-for-pr-1", "chat-1")

        assert await JsonFileAssociationStore(path).get("chat-id-for-pr-1") == "chat-1"
        assert json.loads(path.read_text()) == {"chat-id-for-pr-1": "chat-1"}

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileAssociationStore(tmp_path / "absent.json")
        assert await store.get("anything") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "associations.json"
        path.write_text("{not json")
        assert await JsonFileAssociationStore(path).get("anything") is None

    @pytest.mark.asyncio
    async def test_sees_writes_from_other_writers(self, tmp_path):
        path = tmp_path / "associations.json"
        store = JsonFileAssociationStore(path)
        assert await store.get("k") is None

        path.write_text(json.dumps({"k": "v"}))

        assert await store.get("k") == "v"


    @pytest.mark.asyncio
    async def test_file_io_runs_off_the_event_loop(self, tmp_path):
        store = JsonFileAssociationStore(tmp_path / "associations.json")
        loop_thread = threading.get_ident()
        io_threads = []
        load, save = store._load, store._save

        def recording_load():
            io_threads.append(threading.get_ident())
            return load()

        def recording_save(data):
            io_threads.append(threading.get_ident())
            save(data)

        store._load = recording_load
        store._save = recording_save

        await store.set("k", "v")
        assert await store.get("k") == "v"

        assert len(io_threads) == 3
        assert loop_thread not in io_threads

    @pytest.mark.asyncio
    async def test_concurrent_sets_keep_every_key(self, tmp_path):
        path = tmp_path / "associations.json"
        store = JsonFileAssociationStore(path)

        await asyncio.gather(*(store.set(f"chat-id-for-pr-{i}", f"chat-{i}") for i in range(10)))

        assert json.loads(path.read_text()) == {f"chat-id-for-pr-{i}": f"chat-{i}" for i in range(10)}

class TestAssociatePullRequest:
    @pytest.mark.asyncio
    async def test_writes_both_keys(self):
        store = MemoryAssociationStore()
        await associate_pull_request(store, "chat-1", pr_id=98765, node_id="PR_kwDOtest123")

        assert await store.get("chat-id-for-pr-98765") == "chat-1"
        assert await store.get("chat-id-for-pr-PR_kwDOtest123") == "chat-1"

    @pytest.mark.asyncio
    async def test_requires_an_id(self):
        with pytest.raises(ValueError):
            await associate_pull_request(MemoryAssociationStore(), "chat-1")
