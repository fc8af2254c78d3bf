"""Core service for loading a corpus into vector storage.

Embeds corpus items one at a time through the ApiRetryService, stores each
(text, embedding) pair, and keeps going when a single item fails. A fixed
pause after every stored item throttles the write rate on the storage side.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from corpusqa.domain.interfaces.ai_model import AIModel
from corpusqa.domain.interfaces.vector_store import VectorStore
from corpusqa.domain.models.common import Corpus
from corpusqa.domain.models.corpus import CorpusItem, IngestionReport, ItemOutcome, ItemStatus
from corpusqa.infrastructure.filesystem.corpus_loader import CorpusLoader
from corpusqa.infrastructure.resilience.api_retry import ApiRetryService
from corpusqa.infrastructure.resilience.delay import SleepFunc, delay

logger = logging.getLogger(__name__)

DEFAULT_ITEM_DELAY_SECONDS = 1.0


class IngestionService:
    """Batch ingestion driver: corpus items in, stored records out."""

    def __init__(
        self,
        ai_model: AIModel,
        vector_store: VectorStore,
        api_retry_service: ApiRetryService,
        corpus_loader: Optional[CorpusLoader] = None,
        item_delay_seconds: float = DEFAULT_ITEM_DELAY_SECONDS,
        sleep: SleepFunc = delay,
    ):
        self.ai_model = ai_model
        self.vector_store = vector_store
        self.api_retry_service = api_retry_service
        self.corpus_loader = corpus_loader or CorpusLoader()
        self.item_delay_seconds = item_delay_seconds
        self._sleep = sleep
        logger.info(f"IngestionService initialized (item delay {item_delay_seconds}s)")

    async def _process_item(self, corpus: Corpus, item: CorpusItem, total: int) -> ItemOutcome:
        try:
            embedding = await self.api_retry_service.execute_with_retry(
                self.ai_model.create_embedding,
                item.content,
                endpoint_name="create_embedding",
            )
        except Exception as e:
            logger.error(f"Failed to process document {item.position}/{total}: {e}")
            return ItemOutcome(item=item, status=ItemStatus.EMBEDDING_FAILED, error=str(e))
        logger.info(f"Generated embedding for document {item.position}/{total}")

        try:
            record = await self.vector_store.insert_record(corpus, item.content, embedding)
        except Exception as e:
            logger.error(f"Error storing document {item.position}/{total}: {e}")
            return ItemOutcome(item=item, status=ItemStatus.STORE_FAILED, error=str(e))

        logger.info(f"Stored document {item.position} with ID: {record.record_id}")
        return ItemOutcome(item=item, status=ItemStatus.STORED, record_id=record.record_id)

    async def ingest(self, corpus: Corpus, items: Sequence[CorpusItem]) -> IngestionReport:
        """Embeds and stores `items` strictly in order.

        A failing item is recorded in the report and skipped; the batch
        always runs to the end.

        Args:
            corpus: Which corpus the items belong to.
            items: Items in processing order.

        Returns:
            An IngestionReport with one outcome per item, in order.
        """
        report = IngestionReport(corpus=corpus)
        total = len(items)
        logger.info(f"Starting to store {total} {corpus.value} embeddings...")

        for item in items:
            outcome = await self._process_item(corpus, item, total)
            report.outcomes.append(outcome)
            if outcome.status is ItemStatus.STORED:
                await self._sleep(self.item_delay_seconds)

        logger.info(
            f"Finished storing embeddings: {len(report.stored)}/{total} stored, "
            f"{len(report.failed)} failed"
        )
        return report

    async def ensure_corpus_loaded(
        self,
        corpus: Corpus,
        source: Optional[Path] = None,
        force: bool = False,
    ) -> IngestionReport:
        """Loads the corpus into storage unless it is already there.

        Args:
            corpus: The corpus to initialize.
            source: Optional source file overriding the bundled one.
            force: Ingest even if records already exist.

        Raises:
            StorageError: If the existence check fails.
            FileNotFoundError: If the source file is missing.
        """
        if not force and await self.vector_store.has_records(corpus):
            logger.info(f"{corpus.value.capitalize()} already exist in the database")
            return IngestionReport(corpus=corpus, skipped_existing=True)

        if force:
            logger.info(f"Forcing ingestion of {corpus.value}")
        else:
            logger.info(f"No existing {corpus.value} found, storing embeddings...")
        items = await self.corpus_loader.load(corpus, source)
        return await self.ingest(corpus, items)
