"""Interface for the external vector storage collaborator.

Stores (content, embedding) records per corpus and answers similarity
searches against them.
"""

import abc
from typing import List, Optional

from ..models.common import Corpus, EmbeddingVector
from ..models.corpus import MatchedRecord, StoredRecord


class StorageError(Exception):
    """Raised when the storage backend reports a failure."""
    def __init__(self, message: str, corpus: Optional[Corpus] = None):
        self.corpus = corpus
        super().__init__(message)


class VectorStore(abc.ABC):
    """Abstract Base Class for vector storage backends."""

    @abc.abstractmethod
    async def insert_record(self, corpus: Corpus, content: str, embedding: EmbeddingVector) -> StoredRecord:
        """Persists one record.

        Returns:
            The stored record with its assigned identifier.

        Raises:
            StorageError: If the backend rejects the insert.
        """
        pass

    @abc.abstractmethod
    async def match_records(
        self,
        corpus: Corpus,
        embedding: EmbeddingVector,
        threshold: float,
        count: int,
    ) -> List[MatchedRecord]:
        """Returns up to `count` records with similarity >= `threshold`,
        ordered by descending similarity.

        Raises:
            StorageError: If the search fails.
        """
        pass

    @abc.abstractmethod
    async def has_records(self, corpus: Corpus) -> bool:
        """Checks whether any record exists for the corpus.

        Raises:
            StorageError: If the check fails.
        """
        pass
