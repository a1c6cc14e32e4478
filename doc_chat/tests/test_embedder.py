"""Tests for HashEmbedder."""

import numpy as np
import pytest

from doc_chat.core.embedder import HashEmbedder, normalize_text, rolling_hash


class TestHelpers:
    """Tests for the text normalization and hashing helpers."""

    def test_normalize_text(self):
        """Test lowercasing and punctuation removal."""
        assert normalize_text("  Hello, World!  Node.js_rocks ") == "hello world node js rocks"

    def test_rolling_hash_matches_java_string_hash(self):
        """Test known values of the h*31 + c string hash."""
        assert rolling_hash("") == 0
        assert rolling_hash("a") == 97
        assert rolling_hash("hello") == 99162322

    def test_rolling_hash_wraps_to_signed_32_bits(self):
        """Test that long tokens wrap into the signed 32-bit range."""
        h = rolling_hash("supercalifragilisticexpialidocious")
        assert -(2**31) <= h < 2**31


class TestHashEmbedder:
    """Tests for HashEmbedder."""

    @pytest.fixture
    def embedder(self):
        """Provide an embedder with the default dimension."""
        return HashEmbedder()

    def test_dimension(self, embedder):
        """Test output shape and dtype."""
        vector = embedder.embed("The project uses React.")
        assert vector.shape == (128,)
        assert vector.dtype == np.float32

    def test_custom_dimension(self):
        """Test a non-default dimension."""
        assert HashEmbedder(dim=64).embed("some text").shape == (64,)

    def test_invalid_dimension(self):
        """Test that a non-positive dimension is rejected."""
        with pytest.raises(ValueError):
            HashEmbedder(dim=0)

    def test_deterministic(self, embedder):
        """Test that equal text gives an identical vector."""
        a = embedder.embed("React and Node.js")
        b = HashEmbedder().embed("React and Node.js")
        np.testing.assert_array_equal(a, b)

    def test_unit_norm(self, embedder):
        """Test that non-empty text gives a unit vector."""
        vector = embedder.embed("Retrieval augmented generation")
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-5)

    @pytest.mark.parametrize("text", ["", "   ", "a b c", "!!! ???"])
    def test_no_tokens_gives_zero_vector(self, embedder, text):
        """Test that text without usable tokens gives the zero vector."""
        vector = embedder.embed(text)
        assert vector.shape == (128,)
        assert not np.any(vector)

    def test_tokenize_drops_short_tokens(self, embedder):
        """Test that single-character tokens are dropped."""
        assert embedder.tokenize("I use a PC, OK?") == ["use", "pc", "ok"]

    def test_case_and_punctuation_insensitive(self, embedder):
        """Test that normalization makes equivalent texts embed equally."""
        np.testing.assert_array_equal(
            embedder.embed("React, Node.js!"),
            embedder.embed("react node js"),
        )

    def test_word_order_matters(self, embedder):
        """Test that position decay distinguishes word order."""
        a = embedder.embed("alpha beta")
        b = embedder.embed("beta alpha")
        assert not np.array_equal(a, b)

    def test_embed_batch(self, embedder):
        """Test batch embedding matches single embedding."""
        texts = ["first text", "second text"]
        batch = embedder.embed_batch(texts)
        assert batch.shape == (2, 128)
        np.testing.assert_array_equal(batch[1], embedder.embed("second text"))

    def test_embed_batch_empty(self, embedder):
        """Test batch embedding of no texts."""
        assert embedder.embed_batch([]).shape == (0, 128)

    def test_embed_chunks(self, embedder):
        """Test that chunks keep order, index and document ID."""
        chunks = embedder.embed_chunks(["one chunk", "two chunk"], document_id="doc-1")
        assert [c.index for c in chunks] == [0, 1]
        assert all(c.document_id == "doc-1" for c in chunks)
        assert all(c.dim == 128 for c in chunks)

    def test_get_info(self, embedder):
        """Test embedder info."""
        assert embedder.get_info() == {"embedder": "hash", "dimension": 128}
