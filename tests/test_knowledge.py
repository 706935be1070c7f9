"""Knowledge base search over a fake Chroma collection."""

import pytest

from brandassist.config import settings
from brandassist.memory.vector_memory import KnowledgeIndex
from brandassist.tools import knowledge


class FakeCollection:
    def __init__(self, documents, metadatas, distances):
        self._result = {
            "documents": [documents],
            "metadatas": [metadatas],
            "distances": [distances],
        }
        self.queries = []

    def query(self, **kwargs):
        self.queries.append(kwargs)
        return self._result

    def count(self):
        return 1234


@pytest.fixture
def collection():
    return FakeCollection(
        documents=["Returns within 30 days.", "Returns policy overview.", "Pricing tiers.", "Noise."],
        metadatas=[
            {"file_id": "f1", "file_name": "Policy.pdf", "web_view_link": "https://docs/f1"},
            {"file_id": "f1", "file_name": "Policy.pdf"},
            {"file_id": "f2", "file_name": "Pricing.xlsx"},
            {"file_id": "f3", "file_name": "Other.txt"},
        ],
        distances=[0.12, 0.05, 0.25, 0.6],
    )


def test_search_groups_by_file_and_filters(collection) -> None:
    index = KnowledgeIndex("kb", collection=collection)
    hits = index.search("returns", k=5, min_score=0.7)

    assert [hit.file_id for hit in hits] == ["f1", "f2"]
    assert hits[0].content == "Returns policy overview."
    assert hits[0].score == pytest.approx(0.95)
    assert collection.queries[0]["n_results"] == 15


def test_search_respects_k(collection) -> None:
    hits = KnowledgeIndex("kb", collection=collection).search("returns", k=1, min_score=0.0)
    assert len(hits) == 1


def test_search_knowledge_tool(collection, context, workspace, monkeypatch) -> None:
    monkeypatch.setattr(settings, "KNOWLEDGE_MIN_SCORE", 0.7)
    monkeypatch.setattr(
        knowledge, "get_knowledge_index", lambda: KnowledgeIndex("kb", collection=collection)
    )
    text = knowledge.search_knowledge(knowledge.KnowledgeSearchInput(query="returns"), context)

    assert text.startswith('Found 2 relevant documents for "returns"')
    assert "**1. Policy.pdf** (95% relevant)" in text
    assert workspace.statuses == ['is searching company knowledge base for "returns"...']


def test_search_knowledge_no_hits(context, monkeypatch) -> None:
    empty = FakeCollection([], [], [])
    monkeypatch.setattr(
        knowledge, "get_knowledge_index", lambda: KnowledgeIndex("kb", collection=empty)
    )
    text = knowledge.search_knowledge(knowledge.KnowledgeSearchInput(query="x"), context)
    assert text.startswith("No relevant information found in the company knowledge base")


def test_knowledge_stats(collection, context, monkeypatch) -> None:
    monkeypatch.setattr(
        knowledge, "get_knowledge_index", lambda: KnowledgeIndex("kb", collection=collection)
    )
    text = knowledge.knowledge_stats(knowledge.EmptyInput(), context)
    assert text.startswith("Knowledge base 'kb' holds 1,234 indexed chunks.")
