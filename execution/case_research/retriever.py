"""
Hybrid Retriever for Case Documents

Combines semantic (vector) search with full-text search over a project's
document chunks using Reciprocal Rank Fusion.

Degraded mode: when no query embedding is available (no provider, provider
failure, or a vector from the wrong embedding space) or the hybrid backend
fails, the retriever falls back to full-text search over the same project
files. Retrieval failures are never raised to the caller.
"""

import json
import time
import logging
from typing import Optional
from dataclasses import dataclass, replace

from .config import DEFAULT_SEARCH_LIMIT
from .embeddings import EmbeddingGateway
from .metrics import SearchEvent, UsageNotifier
from .search_backend import SearchResult, rank_results

logger = logging.getLogger(__name__)


@dataclass
class RetrievalConfig:
    """Configuration for hybrid retrieval."""
    default_limit: int = DEFAULT_SEARCH_LIMIT

    # Drop a query vector whose size differs from the indexed vectors
    check_embedding_dimensions: bool = True


class HybridRetriever:
    """
    Retrieval pipeline for a project's case documents.

    Pipeline:
    1. Embed the query through the embedding gateway
    2. Hybrid vector + full-text search fused with RRF (backend)
    3. On missing embedding or backend error: scoped full-text search
    4. Deterministic ordering: score desc, chunk_id asc
    """

    def __init__(
        self,
        search_backend,
        embedding_gateway: EmbeddingGateway,
        config: Optional[RetrievalConfig] = None,
        notifier: Optional[UsageNotifier] = None,
    ):
        """
        Initialize retriever.

        Args:
            search_backend: Object with hybrid_search, text_search and
                project_file_ids (e.g. PostgresSearchBackend)
            embedding_gateway: Gateway used to embed queries
            config: Optional retrieval configuration
            notifier: Optional usage notifier for search events
        """
        self.backend = search_backend
        self.embeddings = embedding_gateway
        self.config = config or RetrievalConfig()
        self._notifier = notifier

    def search(
        self,
        query: str,
        scope_id: str,
        file_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[SearchResult]:
        """
        Retrieve ranked chunks for a query within one project.

        Args:
            query: Search query string
            scope_id: Project whose files may be searched
            file_type: Optional source file type filter
            limit: Number of results (defaults to config)

        Returns:
            List of SearchResult objects, ranked by relevance
        """
        if not query or not query.strip():
            return []

        start_time = time.time()
        limit = limit or self.config.default_limit

        embedding = self.embeddings.embed(query)
        if embedding and not self._embedding_compatible(embedding):
            logger.warning(
                f"Query embedding has {len(embedding)} dims, index expects "
                f"{self.backend.embedding_dimensions}. Skipping vector search."
            )
            embedding = []

        results = None
        path = "hybrid"
        if embedding:
            try:
                results = self.backend.hybrid_search(
                    query_text=query,
                    query_embedding_json=json.dumps(embedding),
                    match_count=limit,
                    scope_id=scope_id,
                    file_type=file_type,
                )
            except Exception as e:
                logger.warning(f"Hybrid search failed, falling back to text-only search: {e}")
                results = None
        else:
            logger.warning("No query embedding available, using text-only search")

        if results is None:
            path = "text_only"
            results = self._text_only_search(query, scope_id, file_type, limit)

        results = rank_results(results)[:limit]

        elapsed = (time.time() - start_time) * 1000
        logger.info(f"Returning {len(results)} results ({path} path) in {elapsed:.0f}ms")
        self._notify(scope_id, query, len(results), path if results else "empty", elapsed)
        return results

    def _embedding_compatible(self, embedding: list[float]) -> bool:
        if not self.config.check_embedding_dimensions:
            return True
        expected = getattr(self.backend, "embedding_dimensions", None)
        return not expected or len(embedding) == expected

    def _text_only_search(
        self,
        query: str,
        scope_id: str,
        file_type: Optional[str],
        limit: int,
    ) -> list[SearchResult]:
        """Full-text search restricted to the project's files, score fixed at 1."""
        try:
            file_ids = self.backend.project_file_ids(scope_id)
            if not file_ids:
                return []

            results = self.backend.text_search(
                query_text=query,
                file_ids=file_ids,
                file_type=file_type,
                limit=limit,
            )
        except Exception as e:
            logger.warning(f"Text-only search failed: {e}")
            return []

        # Never hand back a chunk from outside the permitted files
        permitted = set(file_ids)
        return [
            replace(r, score=1.0)
            for r in results
            if r.file_id in permitted
        ]

    def _notify(self, scope_id: str, query: str, count: int, path: str, elapsed: float) -> None:
        if self._notifier is None:
            return
        self._notifier.notify(SearchEvent(
            scope_id=scope_id,
            query_text=query[:200],
            results_count=count,
            path=path,
            latency_ms=elapsed,
        ))
