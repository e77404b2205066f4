"""
Document Chunk Search Backend (PostgreSQL + pgvector)

Searches the chunks of a project's uploaded case documents two ways:

- hybrid: pgvector cosine search + full-text search over the same chunks,
  fused with Reciprocal Rank Fusion
- text-only: full-text search restricted to an explicit list of file ids,
  used when no query embedding is available

Rows coming back from the database are validated into typed SearchResult
records at this boundary; nothing past this module sees raw rows.
"""

import json
import logging
from typing import Optional
from dataclasses import dataclass, asdict, replace

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import RRF_K
from .db import DatabaseConfig, PostgresStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """A single ranked document chunk."""
    chunk_id: str
    file_id: str
    content: str
    source_file_name: str
    source_file_type: str
    score: float
    page_number: Optional[int] = None
    section_heading: Optional[str] = None
    timestamp_start: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


class SearchRow(BaseModel):
    """Validated shape of a chunk row from either search query."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    chunk_id: str = Field(validation_alias=AliasChoices("chunk_id", "id"))
    file_id: str
    content: str = ""
    page_number: Optional[int] = None
    section_heading: Optional[str] = None
    source_file_name: str = ""
    source_file_type: str = ""
    score: float = Field(default=1.0, validation_alias=AliasChoices("score", "fused_score", "rrf_score"))
    timestamp_start: Optional[float] = None

    @field_validator("chunk_id", "file_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        # psycopg2 returns uuid.UUID for uuid columns
        return str(value) if value is not None else value

    @field_validator("content", "source_file_name", "source_file_type", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    def to_result(self) -> SearchResult:
        return SearchResult(
            chunk_id=self.chunk_id,
            file_id=self.file_id,
            content=self.content,
            source_file_name=self.source_file_name,
            source_file_type=self.source_file_type,
            score=self.score,
            page_number=self.page_number,
            section_heading=self.section_heading,
            timestamp_start=self.timestamp_start,
        )


def rows_to_results(rows: list[dict], label: str = "search") -> list[SearchResult]:
    """Validate raw rows, skipping any that do not fit the SearchRow shape."""
    results = []
    for row in rows:
        try:
            results.append(SearchRow.model_validate(row).to_result())
        except ValidationError as e:
            logger.warning(f"{label}: skipping malformed row: {e.error_count()} validation errors")
    return results


def rank_results(results: list[SearchResult]) -> list[SearchResult]:
    """Order by score descending, ties broken by chunk_id ascending."""
    return sorted(results, key=lambda r: (-r.score, r.chunk_id))


def reciprocal_rank_fusion(
    ranked_lists: list[list[SearchResult]],
    k: int = RRF_K,
) -> list[SearchResult]:
    """
    Combine ranked result lists using Reciprocal Rank Fusion.

    RRF score = sum(1 / (k + rank)) across the lists a chunk appears in,
    with rank starting at 1. The first occurrence of a chunk supplies its
    fields; only the score is replaced.

    Returns:
        Fused results ordered by rank_results()
    """
    scores: dict[str, float] = {}
    result_map: dict[str, SearchResult] = {}

    for results in ranked_lists:
        for rank, result in enumerate(results, start=1):
            chunk_id = result.chunk_id
            scores[chunk_id] = scores.get(chunk_id, 0.0) + 1.0 / (k + rank)
            if chunk_id not in result_map:
                result_map[chunk_id] = result

    fused = [replace(result_map[cid], score=score) for cid, score in scores.items()]
    return rank_results(fused)


@dataclass
class SearchBackendConfig:
    """Configuration for the chunk search backend."""
    chunks_table: str = "document_chunks"
    files_table: str = "files"
    embedding_dimensions: int = 1536
    candidate_k: int = 40  # per-list candidates fed into RRF
    rrf_k: int = RRF_K
    fts_language: str = "english"


_CHUNK_COLUMNS = """
    c.id AS chunk_id,
    c.file_id,
    c.content,
    c.page_number,
    c.section_heading,
    c.source_file_name,
    c.source_file_type,
    c.timestamp_start
"""


class PostgresSearchBackend(PostgresStore):
    """
    Hybrid and text-only chunk search over Postgres.

    Scope is always a project: hybrid search joins chunks to the project's
    non-deleted files, text-only search takes the permitted file ids
    explicitly.
    """

    def __init__(
        self,
        config: Optional[SearchBackendConfig] = None,
        db_config: Optional[DatabaseConfig] = None,
        pool=None,
    ):
        super().__init__(db_config, pool=pool)
        self.config = config or SearchBackendConfig()

    @property
    def embedding_dimensions(self) -> int:
        return self.config.embedding_dimensions

    def project_file_ids(self, scope_id: str) -> list[str]:
        """Ids of the non-deleted files belonging to a project."""
        sql = f"""
        SELECT id FROM {self.config.files_table}
        WHERE project_id = %s::uuid AND is_deleted = false
        """
        rows = self._fetch_all(sql, [scope_id], "project_file_ids")
        return [str(row["id"]) for row in rows]

    def vector_search(
        self,
        query_embedding_json: str,
        scope_id: str,
        top_k: int,
        file_type: Optional[str] = None,
    ) -> list[SearchResult]:
        """Cosine-similarity search over a project's chunks."""
        type_clause = "AND c.source_file_type = %s" if file_type else ""
        sql = f"""
        SELECT {_CHUNK_COLUMNS},
            1 - (c.embedding <=> %s::vector) AS score
        FROM {self.config.chunks_table} c
        JOIN {self.config.files_table} f ON f.id = c.file_id
        WHERE f.project_id = %s::uuid
          AND f.is_deleted = false
          AND c.embedding IS NOT NULL
          {type_clause}
        ORDER BY c.embedding <=> %s::vector, c.id
        LIMIT %s
        """
        params = [query_embedding_json, scope_id]
        if file_type:
            params.append(file_type)
        params.extend([query_embedding_json, top_k])

        return rows_to_results(self._fetch_all(sql, params, "vector_search"), "vector_search")

    def keyword_search(
        self,
        query_text: str,
        scope_id: str,
        top_k: int,
        file_type: Optional[str] = None,
    ) -> list[SearchResult]:
        """Full-text search over a project's chunks, ranked by ts_rank."""
        lang = self.config.fts_language
        type_clause = "AND c.source_file_type = %s" if file_type else ""
        sql = f"""
        SELECT {_CHUNK_COLUMNS},
            ts_rank(to_tsvector(%s, c.content), websearch_to_tsquery(%s, %s)) AS score
        FROM {self.config.chunks_table} c
        JOIN {self.config.files_table} f ON f.id = c.file_id
        WHERE f.project_id = %s::uuid
          AND f.is_deleted = false
          AND to_tsvector(%s, c.content) @@ websearch_to_tsquery(%s, %s)
          {type_clause}
        ORDER BY score DESC, c.id
        LIMIT %s
        """
        params = [lang, lang, query_text, scope_id, lang, lang, query_text]
        if file_type:
            params.append(file_type)
        params.append(top_k)

        return rows_to_results(self._fetch_all(sql, params, "keyword_search"), "keyword_search")

    def hybrid_search(
        self,
        query_text: str,
        query_embedding_json: str,
        match_count: int,
        scope_id: str,
        file_type: Optional[str] = None,
    ) -> list[SearchResult]:
        """
        Vector + full-text search fused with Reciprocal Rank Fusion.

        Args:
            query_text: Raw query for full-text search
            query_embedding_json: Query embedding serialized as a JSON array
            match_count: Number of fused results to return
            scope_id: Project id
            file_type: Optional source_file_type filter

        Returns:
            Up to match_count results, fused score descending
        """
        # Validate the vector before it reaches SQL
        json.loads(query_embedding_json)

        candidates = max(self.config.candidate_k, match_count)
        vector_results = self.vector_search(query_embedding_json, scope_id, candidates, file_type)
        keyword_results = self.keyword_search(query_text, scope_id, candidates, file_type)
        logger.debug(
            f"hybrid_search: {len(vector_results)} vector, {len(keyword_results)} keyword candidates"
        )

        fused = reciprocal_rank_fusion([vector_results, keyword_results], k=self.config.rrf_k)
        return fused[:match_count]

    def text_search(
        self,
        query_text: str,
        file_ids: list[str],
        file_type: Optional[str] = None,
        limit: int = 8,
    ) -> list[SearchResult]:
        """
        Full-text search restricted to the given file ids.

        Every result scores 1 (no fusion is possible in this mode).
        """
        if not file_ids:
            return []

        lang = self.config.fts_language
        type_clause = "AND c.source_file_type = %s" if file_type else ""
        sql = f"""
        SELECT {_CHUNK_COLUMNS},
            1.0 AS score
        FROM {self.config.chunks_table} c
        WHERE to_tsvector(%s, c.content) @@ websearch_to_tsquery(%s, %s)
          AND c.file_id = ANY(%s::uuid[])
          {type_clause}
        ORDER BY c.id
        LIMIT %s
        """
        params = [lang, lang, query_text, list(file_ids)]
        if file_type:
            params.append(file_type)
        params.append(limit)

        results = rows_to_results(self._fetch_all(sql, params, "text_search"), "text_search")
        return [replace(r, score=1.0) for r in results]
