"""Tests for DocumentStore."""

import numpy as np
import pytest

from doc_chat.core.chunk import Chunk, Document
from doc_chat.core.chunk_store import DocumentStore
from doc_chat.core.embedder import HashEmbedder


@pytest.fixture
def store():
    """Provide an in-memory document store."""
    s = DocumentStore(":memory:", dim=128)
    yield s
    s.close()


@pytest.fixture
def document():
    """Provide a document with three embedded chunks."""
    embedder = HashEmbedder()
    chunks = embedder.embed_chunks(
        ["First chunk of text.", "Second chunk of text.", "Third chunk of text."],
        document_id="doc-1",
    )
    return Document(
        id="doc-1",
        owner_id="alice",
        name="report.pdf",
        text="First chunk of text. Second chunk of text. Third chunk of text.",
        chunks=tuple(chunks),
    )


class TestDocumentStore:
    """Tests for DocumentStore persistence."""

    def test_round_trip(self, store, document):
        """Test that chunks come back in order with identical vectors."""
        store.add_document(document)
        loaded = store.get_document("doc-1")

        assert loaded.name == "report.pdf"
        assert loaded.owner_id == "alice"
        assert [c.index for c in loaded.chunks] == [0, 1, 2]
        assert [c.text for c in loaded.chunks] == [c.text for c in document.chunks]
        for stored, original in zip(loaded.chunks, document.chunks):
            np.testing.assert_allclose(stored.vector, original.vector, rtol=1e-6)

    def test_owner_filter(self, store, document):
        """Test that another user cannot see the document."""
        store.add_document(document)
        assert store.get_document("doc-1", owner_id="alice") is not None
        assert store.get_document("doc-1", owner_id="bob") is None

    def test_missing_document(self, store):
        assert store.get_document("nope") is None

    def test_without_chunks(self, store, document):
        store.add_document(document)
        assert store.get_document("doc-1", with_chunks=False).chunks == ()

    def test_document_with_no_chunks(self, store):
        """Test that a document with no extractable chunks is still stored."""
        store.add_document(Document(id="empty", owner_id="alice", name="blank.pdf", text=""))
        loaded = store.get_document("empty")
        assert loaded is not None
        assert loaded.chunks == ()

    def test_chunk_without_vector(self, store):
        store.add_document(
            Document(id="d", owner_id="alice", name="a.txt", text="x", chunks=(Chunk(text="x"),))
        )
        assert store.load_chunks("d")[0].vector is None

    def test_dimension_mismatch_rejected(self, store):
        """Test that vectors of the wrong width are rejected before writing."""
        bad = Document(
            id="bad",
            owner_id="alice",
            name="a.txt",
            text="x",
            chunks=(Chunk(text="x", vector=np.ones(64)),),
        )
        with pytest.raises(ValueError):
            store.add_document(bad)
        assert store.get_document("bad") is None

    def test_duplicate_id_rolls_back(self, store, document):
        """Test that a failed insert leaves the store unchanged."""
        store.add_document(document)
        with pytest.raises(Exception):
            store.add_document(document)
        assert store.count("doc-1") == 3

    def test_count(self, store, document):
        store.add_document(document)
        assert store.count() == 3
        assert store.count("doc-1") == 3
        assert store.count("other") == 0

    def test_list_documents(self, store, document):
        store.add_document(document)
        store.add_document(Document(id="doc-2", owner_id="bob", name="b.pdf", text="b"))

        docs = store.list_documents("alice")
        assert [d.id for d in docs] == ["doc-1"]

    def test_delete_document(self, store, document):
        """Test that deleting removes the document and its chunks."""
        store.add_document(document)
        assert store.delete_document("doc-1", owner_id="bob") is False
        assert store.delete_document("doc-1", owner_id="alice") is True
        assert store.get_document("doc-1") is None
        assert store.count("doc-1") == 0
        assert store.delete_document("doc-1") is False

    def test_persists_to_file(self, tmp_path, document):
        """Test that a file-backed store survives reopening."""
        db_path = str(tmp_path / "docs.duckdb")
        with DocumentStore(db_path) as s:
            s.add_document(document)
        with DocumentStore(db_path) as s:
            assert len(s.get_document("doc-1").chunks) == 3
