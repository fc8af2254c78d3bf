"""Domain models for corpus items, stored records and ingestion results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .common import ChunkText, Corpus, EmbeddingVector, RecordId


@dataclass(frozen=True)
class CorpusItem:
    """One chunk of source text waiting to be embedded and stored."""
    content: ChunkText
    position: int # 1-based position in the batch


@dataclass(frozen=True)
class StoredRecord:
    """A record after external storage accepted it."""
    record_id: RecordId
    content: str


@dataclass(frozen=True)
class MatchedRecord:
    """A stored record returned by a similarity search."""
    content: str
    similarity: float
    record_id: Optional[RecordId] = None


class ItemStatus(str, Enum):
    """Terminal states of a corpus item during batch ingestion."""
    STORED = "stored"
    EMBEDDING_FAILED = "embedding_failed"
    STORE_FAILED = "store_failed"


@dataclass
class ItemOutcome:
    """What happened to a single item of an ingestion batch."""
    item: CorpusItem
    status: ItemStatus
    record_id: Optional[RecordId] = None
    error: Optional[str] = None


@dataclass
class IngestionReport:
    """Result of one ingestion run, outcomes kept in processing order."""
    corpus: Corpus
    outcomes: List[ItemOutcome] = field(default_factory=list)
    skipped_existing: bool = False

    @property
    def stored(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is ItemStatus.STORED]

    @property
    def failed(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status is not ItemStatus.STORED]

    @property
    def total(self) -> int:
        return len(self.outcomes)


@dataclass
class SearchAnswer:
    """An AI-phrased answer plus the snippets it was built from."""
    response: str
    matches: List[MatchedRecord] = field(default_factory=list)
