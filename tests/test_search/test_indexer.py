"""Tests for the Indexer."""

import asyncio
from pathlib import Path

import pytest

from agentlens.search.chunker import Chunker
from agentlens.search.indexer import EMBED_BATCH_SIZE, Indexer
from agentlens.search.store import JsonFileStore
from agentlens.search.walker import scan_directory

from conftest import FakeEmbedder


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "index" / "index.json")


@pytest.fixture
def indexer(store, embedder) -> Indexer:
    return Indexer(store=store, embedder=embedder, chunker=Chunker())


def chunk_ids(store: JsonFileStore) -> list[str]:
    return sorted(c.id for c in asyncio.run(store.get_all_chunks()))


class TestIndexAll:
    def test_first_run(self, indexer: Indexer, store: JsonFileStore, project: Path):
        result = asyncio.run(indexer.index_all(project))

        assert result.files_processed == 3
        assert result.files_skipped == 0
        assert result.chunks_created == 4
        assert result.errors == []
        assert store.path.exists()
        assert chunk_ids(store) == [
            "auth.py:hash_password:4",
            "auth.py:verify_password:9",
            "notes.txt:block:1",
            "server.go:handleRequest:3",
        ]

    def test_documents_own_their_chunks(self, indexer: Indexer, store: JsonFileStore, project):
        asyncio.run(indexer.index_all(project))

        stored = set(chunk_ids(store))
        for path in asyncio.run(store.list_documents()):
            doc = asyncio.run(store.get_document(path))
            assert doc is not None
            assert doc.chunk_ids
            assert set(doc.chunk_ids) <= stored

    def test_reindex_is_idempotent(self, indexer: Indexer, embedder: FakeEmbedder, project):
        asyncio.run(indexer.index_all(project))
        calls = len(embedder.batch_calls)

        result = asyncio.run(indexer.index_all(project))

        assert result.files_processed == 0
        assert result.files_skipped == 3
        assert result.chunks_created == 0
        assert len(embedder.batch_calls) == calls

    def test_reindex_survives_restart(self, store: JsonFileStore, embedder, project):
        asyncio.run(Indexer(store, embedder, Chunker()).index_all(project))

        fresh = Indexer(JsonFileStore(store.path), embedder, Chunker())
        result = asyncio.run(fresh.index_all(project))

        assert result.files_skipped == 3

    def test_force_does_not_duplicate(self, indexer: Indexer, store: JsonFileStore, project):
        asyncio.run(indexer.index_all(project))
        before = chunk_ids(store)

        result = asyncio.run(indexer.index_all(project, force=True))

        assert result.files_processed == 3
        assert result.chunks_created == 4
        assert chunk_ids(store) == before

    def test_changed_file_drops_stale_chunks(self, indexer: Indexer, store: JsonFileStore, project):
        asyncio.run(indexer.index_all(project))

        (project / "auth.py").write_text("def check_token(token):\n    return bool(token)\n")
        result = asyncio.run(indexer.index_all(project))

        assert result.files_processed == 1
        assert result.files_skipped == 2
        assert "auth.py:hash_password:4" not in chunk_ids(store)
        assert "auth.py:check_token:1" in chunk_ids(store)
        doc = asyncio.run(store.get_document("auth.py"))
        assert doc.chunk_ids == ["auth.py:check_token:1"]

    def test_per_file_errors_do_not_abort(self, store: JsonFileStore, project):
        embedder = FakeEmbedder(fail_on="handleRequest")
        indexer = Indexer(store, embedder, Chunker())
        (project / "latin1.txt").write_bytes(b"caf\xe9 au lait\n")

        result = asyncio.run(indexer.index_all(project))

        assert result.files_processed == 2
        assert len(result.errors) == 2
        assert any(e.startswith("server.go: ") for e in result.errors)
        assert any(e.startswith("latin1.txt: ") for e in result.errors)
        # Nothing from a failed file is committed
        assert asyncio.run(store.get_document("server.go")) is None
        assert not any(i.startswith("server.go") for i in chunk_ids(store))

    def test_missing_root(self, indexer: Indexer, tmp_path):
        result = asyncio.run(indexer.index_all(tmp_path / "nope"))

        assert result.files_processed == 0
        assert result.errors == []


class TestIndexFile:
    def test_empty_file_creates_no_document(self, indexer: Indexer, store: JsonFileStore, project):
        (project / "empty.txt").write_text("")
        entry = next(f for f in scan_directory(project) if f.relative_path == "empty.txt")

        created = asyncio.run(indexer.index_file(entry))

        assert created == 0
        assert asyncio.run(store.get_document("empty.txt")) is None

    def test_unchanged_file_returns_none(self, indexer: Indexer, project):
        entry = next(f for f in scan_directory(project) if f.relative_path == "notes.txt")

        assert asyncio.run(indexer.index_file(entry)) == 1
        assert asyncio.run(indexer.index_file(entry)) is None
        assert asyncio.run(indexer.index_file(entry, force=True)) == 1

    def test_embeds_in_batches(self, store: JsonFileStore, embedder: FakeEmbedder, tmp_path):
        root = tmp_path / "many"
        root.mkdir()
        (root / "list.txt").write_text("".join(f"item {i}\n" for i in range(100)))
        indexer = Indexer(store, embedder, Chunker(max_chars=16, overlap_chars=0))
        entry = scan_directory(root)[0]

        created = asyncio.run(indexer.index_file(entry))

        assert created == 50
        assert [len(batch) for batch in embedder.batch_calls] == [EMBED_BATCH_SIZE, 50 - EMBED_BATCH_SIZE]


class TestPruneDeleted:
    def test_prunes_removed_files(self, indexer: Indexer, store: JsonFileStore, project):
        asyncio.run(indexer.index_all(project))
        (project / "notes.txt").unlink()

        pruned = asyncio.run(indexer.prune_deleted(project))

        assert pruned == 1
        assert sorted(asyncio.run(store.list_documents())) == ["auth.py", "server.go"]
        assert not any(i.startswith("notes.txt") for i in chunk_ids(store))

        reloaded = JsonFileStore(store.path)
        asyncio.run(reloaded.load())
        assert "notes.txt" not in asyncio.run(reloaded.list_documents())

    def test_nothing_to_prune(self, indexer: Indexer, project):
        asyncio.run(indexer.index_all(project))

        assert asyncio.run(indexer.prune_deleted(project)) == 0

    def test_missing_root_prunes_nothing(self, indexer: Indexer, store: JsonFileStore, project):
        asyncio.run(indexer.index_all(project))

        assert asyncio.run(indexer.prune_deleted(project.parent / "unmounted")) == 0
        assert sorted(asyncio.run(store.list_documents())) == ["auth.py", "notes.txt", "server.go"]
