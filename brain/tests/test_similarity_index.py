"""Tests for the file-backed memory index."""

import json
import math

import numpy as np
import pytest
from unittest.mock import Mock

from brain.memory import SimilarityIndex, cosine_similarity, extract_vector


class FakeEmbedder:
    """Deterministic bag-of-letters embedding."""

    def embed(self, text):
        vec = [0.0] * 26
        for ch in text.lower():
            if "a" <= ch <= "z":
                vec[ord(ch) - ord("a")] += 1.0
        return vec


@pytest.fixture
def index(tmp_path):
    return SimilarityIndex(tmp_path / "memory.json", FakeEmbedder())


class TestCosineSimilarity:
    @pytest.mark.parametrize("v", [[1.0], [3.0, 4.0], [0.1, -2.0, 7.5, 1e-3]])
    def test_self_similarity_is_one(self, v):
        assert math.isclose(cosine_similarity(v, v), 1.0, rel_tol=1e-9)

    def test_orthogonal_is_zero(self):
        assert cosine_similarity([1, 0], [0, 1]) == 0.0

    def test_opposite_is_minus_one(self):
        assert math.isclose(cosine_similarity([1, 2], [-1, -2]), -1.0)

    @pytest.mark.parametrize("a,b", [
        ([1, 2, 3], [1, 2]),
        ([], []),
        ([], [1.0]),
        (None, [1.0]),
        ([1.0], None),
        ([0, 0], [1, 1]),
        (["x", "y"], [1, 2]),
    ])
    def test_degenerate_inputs_return_zero(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_numpy_input(self):
        assert math.isclose(cosine_similarity(np.array([1.0, 1.0]), [2.0, 2.0]), 1.0)


class TestExtractVector:
    def test_flat_list(self):
        assert extract_vector([0.1, 0.2]) == [0.1, 0.2]

    def test_nested_single_element(self):
        assert extract_vector([[0.1, 0.2]]) == [0.1, 0.2]

    def test_list_of_embedding_dicts(self):
        assert extract_vector([{"embedding": [1, 2, 3]}]) == [1.0, 2.0, 3.0]

    def test_values_key(self):
        assert extract_vector({"values": [0.5]}) == [0.5]

    def test_object_attribute(self):
        class Response:
            embedding = [[0.3, 0.4]]
        assert extract_vector(Response()) == [0.3, 0.4]

    def test_numpy_row(self):
        assert extract_vector(np.array([[1.0, 2.0]])) == [1.0, 2.0]

    @pytest.mark.parametrize("raw", [None, [], {}, "text", [[]], {"other": [1]}, [[1, 2], [3, 4]]])
    def test_unusable(self, raw):
        assert extract_vector(raw) is None


class TestSimilarityIndex:
    def test_index_persists_whole_collection(self, index, tmp_path):
        index.index("buy milk", {"kind": "note"})
        index.index("call the bank")
        data = json.loads((tmp_path / "memory.json").read_text())
        assert [d["text"] for d in data] == ["buy milk", "call the bank"]
        assert data[0]["metadata"] == {"kind": "note"}
        assert data[0]["timestamp"]
        assert len(data[0]["embedding"]) == 26

    def test_reload_from_disk(self, index, tmp_path):
        index.index("buy milk")
        reopened = SimilarityIndex(tmp_path / "memory.json", FakeEmbedder())
        assert len(reopened) == 1
        assert reopened.records[0].text == "buy milk"

    def test_search_ranks_by_similarity(self, index):
        index.index("zzz zzz")
        index.index("abc abc")
        index.index("abd")
        hits = index.search("abc", limit=2)
        assert [h.text for h in hits] == ["abc abc", "abd"]
        assert hits[0].score >= hits[1].score
        assert math.isclose(hits[0].score, 1.0)

    def test_search_without_threshold_returns_low_scores(self, index):
        index.index("zzz")
        hits = index.search("abc", limit=3)
        assert len(hits) == 1
        assert hits[0].score == 0.0

    def test_search_empty_index(self, index):
        assert index.search("anything") == []

    def test_unusable_query_vector_returns_empty(self, tmp_path):
        embedder = Mock()
        embedder.embed.return_value = [[]]
        idx = SimilarityIndex(tmp_path / "m.json", embedder)
        assert idx.search("query") == []

    def test_embedder_error_on_search_returns_empty(self, tmp_path, caplog):
        import logging
        embedder = Mock()
        embedder.embed.return_value = [1.0, 0.0]
        idx = SimilarityIndex(tmp_path / "m.json", embedder)
        idx.index("first")

        embedder.embed.side_effect = RuntimeError("Embedding backend not initialized")
        with caplog.at_level(logging.WARNING, logger="brain.memory.similarity_index"):
            assert idx.search("anything") == []
        assert "backend not initialized" in caplog.text

    def test_embedder_error_on_index_propagates(self, tmp_path):
        embedder = Mock()
        embedder.embed.side_effect = RuntimeError("down")
        idx = SimilarityIndex(tmp_path / "m.json", embedder)
        with pytest.raises(RuntimeError):
            idx.index("text")

    def test_nested_provider_response_is_unwrapped(self, tmp_path):
        embedder = Mock()
        embedder.embed.return_value = [{"embedding": [1.0, 0.0]}]
        idx = SimilarityIndex(tmp_path / "m.json", embedder)
        idx.index("first")
        assert idx.records[0].embedding == [1.0, 0.0]
        assert math.isclose(idx.search("q")[0].score, 1.0)

    def test_index_rejects_unusable_vector(self, tmp_path):
        embedder = Mock()
        embedder.embed.return_value = None
        idx = SimilarityIndex(tmp_path / "m.json", embedder)
        with pytest.raises(ValueError):
            idx.index("text")
        assert len(idx) == 0

    def test_corrupt_file_starts_empty(self, tmp_path, caplog):
        import logging
        path = tmp_path / "memory.json"
        path.write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="brain.memory.similarity_index"):
            idx = SimilarityIndex(path, FakeEmbedder())
        assert len(idx) == 0
        assert "Failed to load" in caplog.text

    def test_independent_instances(self, tmp_path):
        a = SimilarityIndex(tmp_path / "a.json", FakeEmbedder())
        b = SimilarityIndex(tmp_path / "b.json", FakeEmbedder())
        a.index("only in a")
        assert len(b) == 0

    def test_no_delete_api(self, index):
        assert not hasattr(index, "delete")
