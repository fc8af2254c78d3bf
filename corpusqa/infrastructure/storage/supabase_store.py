"""VectorStore implementation backed by Supabase (Postgres + pgvector).

Each corpus maps to its own table and to a Postgres function that performs
the cosine-similarity search (`match_documents`, `match_movies`). The Supabase
SDK is synchronous, so every call runs in a worker thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from corpusqa.domain.interfaces.vector_store import StorageError, VectorStore
from corpusqa.domain.models.common import Corpus, EmbeddingVector, RecordId
from corpusqa.domain.models.corpus import MatchedRecord, StoredRecord

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (PostgrestAPIError, httpx.HTTPError)


@dataclass(frozen=True)
class CorpusTable:
    """Where a corpus lives in the database."""
    table: str
    match_function: str


DEFAULT_TABLES: Dict[Corpus, CorpusTable] = {
    Corpus.PODCASTS: CorpusTable(table="documents", match_function="match_documents"),
    Corpus.MOVIES: CorpusTable(table="movies", match_function="match_movies"),
}


class SupabaseVectorStore(VectorStore):
    """Stores embeddings in Supabase tables and searches them through RPC."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[Client] = None,
        tables: Optional[Dict[Corpus, CorpusTable]] = None,
    ):
        """Initializes the store from credentials or an existing client.

        Args:
            url: Supabase project URL.
            api_key: Supabase API key.
            client: Pre-built client (takes precedence over url/api_key).
            tables: Corpus to table/function mapping.
        """
        if client is None:
            if not url or not api_key:
                raise ValueError("Supabase URL and API key are required when no client is given.")
            client = create_client(url, api_key)
        self.client = client
        self.tables = tables or DEFAULT_TABLES
        logger.info(f"SupabaseVectorStore initialized for corpora: {[c.value for c in self.tables]}")

    def _table_for(self, corpus: Corpus) -> CorpusTable:
        try:
            return self.tables[corpus]
        except KeyError:
            raise StorageError(f"No table configured for corpus '{corpus.value}'", corpus) from None

    async def insert_record(self, corpus: Corpus, content: str, embedding: EmbeddingVector) -> StoredRecord:
        target = self._table_for(corpus)

        def _insert() -> Any:
            return (
                self.client.table(target.table)
                .insert({"content": content, "embedding": embedding})
                .execute()
            )

        try:
            response = await asyncio.to_thread(_insert)
        except STORAGE_ERRORS as e:
            logger.error(f"Error storing record in '{target.table}': {e}")
            raise StorageError(f"Insert into '{target.table}' failed: {e}", corpus) from e

        rows = response.data or []
        if not rows or "id" not in rows[0]:
            raise StorageError(f"Insert into '{target.table}' returned no identifier", corpus)
        return StoredRecord(record_id=RecordId(rows[0]["id"]), content=content)

    async def match_records(
        self,
        corpus: Corpus,
        embedding: EmbeddingVector,
        threshold: float,
        count: int,
    ) -> List[MatchedRecord]:
        target = self._table_for(corpus)
        params = {
            "query_embedding": embedding,
            "match_threshold": threshold,
            "match_count": count,
        }

        try:
            response = await asyncio.to_thread(
                lambda: self.client.rpc(target.match_function, params).execute()
            )
        except STORAGE_ERRORS as e:
            logger.error(f"Supabase search error in '{target.match_function}': {e}")
            raise StorageError(f"Similarity search on '{corpus.value}' failed: {e}", corpus) from e

        matches = [
            MatchedRecord(
                content=row["content"],
                similarity=float(row["similarity"]),
                record_id=RecordId(row["id"]) if row.get("id") is not None else None,
            )
            for row in (response.data or [])
            if float(row["similarity"]) >= threshold
        ]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        logger.debug(f"Found {len(matches)} match(es) in '{corpus.value}'")
        return matches[:count]

    async def has_records(self, corpus: Corpus) -> bool:
        target = self._table_for(corpus)
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table(target.table).select("id").limit(1).execute()
            )
        except STORAGE_ERRORS as e:
            logger.error(f"Supabase connection error checking '{target.table}': {e}")
            raise StorageError(f"Could not check '{target.table}' for records: {e}", corpus) from e
        return bool(response.data)
