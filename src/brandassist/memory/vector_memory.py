"""
Thin wrapper around Chroma for querying the company knowledge base.

Each document chunk is one Chroma record:
  text     = chunk content
  metadata = { "file_id": str, "file_name": str, "web_view_link": str (optional) }

Indexing happens elsewhere; this side only reads.
"""

import logging
import os
from typing import (
    Any,
    Dict,
    List,
    Optional,
    cast,
)

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_DEFAULT_EMBED_MODEL = os.getenv("BRANDASSIST_EMBED_MODEL", "all-MiniLM-L6-v2")  # small; runs CPU-only


class KnowledgeHit(BaseModel):
    """Best-matching chunk of one source file."""

    file_id: str
    file_name: str
    content: str
    score: float
    web_view_link: Optional[str] = None


class KnowledgeIndex:
    """
    Chroma wrapper for similarity search over document chunks.
    """

    def __init__(
        self,
        collection_name: str = "company-knowledge",
        host: str = "chroma",  # service name in docker-compose
        port: int = 8000,
        collection: Any = None,
    ):
        self.collection_name = collection_name
        if collection is not None:
            self._col = collection
            return

        # pylint: disable=import-outside-toplevel
        import chromadb
        from chromadb.api.types import EmbeddingFunction
        from chromadb.utils import embedding_functions

        client = chromadb.HttpClient(host=host, port=port)
        embed_fn = embedding_functions.SentenceTransformerEmbeddingFunction(
            model_name=_DEFAULT_EMBED_MODEL
        )
        self._col = client.get_or_create_collection(
            name=collection_name,
            embedding_function=cast(EmbeddingFunction, embed_fn),
            metadata={"hnsw:space": "cosine"},
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def search(self, text: str, k: int = 5, min_score: float = 0.7) -> List[KnowledgeHit]:
        """
        Return up to *k* source files relevant to *text*, best first.

        Chunks are over-fetched, filtered to a cosine similarity of at least *min_score*, then
        grouped by source file keeping each file's best chunk.
        """
        res = self._col.query(
            query_texts=[text],
            n_results=k * 3,
            include=["documents", "metadatas", "distances"],
        )
        documents = (res.get("documents") or [[]])[0]
        metadatas = (res.get("metadatas") or [[]])[0]
        distances = (res.get("distances") or [[]])[0]

        best: Dict[str, KnowledgeHit] = {}
        for doc, meta, distance in zip(documents, metadatas, distances):
            score = 1.0 - float(distance)
            if score < min_score:
                continue
            meta = meta or {}
            file_id = str(meta.get("file_id") or meta.get("file_name") or "unknown")
            current = best.get(file_id)
            if current is None or score > current.score:
                best[file_id] = KnowledgeHit(
                    file_id=file_id,
                    file_name=str(meta.get("file_name") or "Untitled document"),
                    content=doc or "",
                    score=score,
                    web_view_link=meta.get("web_view_link"),
                )

        hits = sorted(best.values(), key=lambda hit: hit.score, reverse=True)[:k]
        logger.info("Knowledge query matched %d file(s) for '%s'", len(hits), text)
        return hits

    def count(self) -> int:
        """Return number of chunks in the collection."""
        return self._col.count()
