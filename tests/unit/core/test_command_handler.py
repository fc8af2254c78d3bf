from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from corpusqa.core.command_handler import CommandHandler
from corpusqa.core.services.ingestion_service import IngestionService
from corpusqa.core.services.search_service import SearchService
from corpusqa.domain.interfaces.user_interface import UserInterface
from corpusqa.domain.interfaces.vector_store import StorageError
from corpusqa.domain.models.common import Corpus
from corpusqa.domain.models.corpus import (
    CorpusItem,
    IngestionReport,
    ItemOutcome,
    ItemStatus,
    MatchedRecord,
    SearchAnswer,
)
from corpusqa.infrastructure.resilience.api_retry import MaxRetryError
from conftest import Throttled


@pytest.fixture
def mock_ingestion_service():
    mock = MagicMock(spec=IngestionService)
    mock.ensure_corpus_loaded = AsyncMock()
    return mock


@pytest.fixture
def mock_search_service():
    mock = MagicMock(spec=SearchService)
    mock.answer = AsyncMock()
    mock.search = AsyncMock()
    return mock


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def handler(mock_ingestion_service, mock_search_service, mock_ui):
    return CommandHandler(
        ingestion_service=mock_ingestion_service,
        search_service=mock_search_service,
        ui=mock_ui,
    )


@pytest.mark.asyncio
async def test_handle_ingest_displays_report(handler, mock_ingestion_service, mock_ui):
    report = IngestionReport(corpus=Corpus.PODCASTS, outcomes=[
        ItemOutcome(item=CorpusItem(content="a", position=1), status=ItemStatus.STORED, record_id=1),
        ItemOutcome(item=CorpusItem(content="b", position=2), status=ItemStatus.STORE_FAILED, error="x"),
    ])
    mock_ingestion_service.ensure_corpus_loaded.return_value = report

    assert await handler.handle_ingest(Corpus.PODCASTS, source=Path("p.txt"), force=True)

    mock_ingestion_service.ensure_corpus_loaded.assert_awaited_once_with(
        Corpus.PODCASTS, source=Path("p.txt"), force=True
    )
    mock_ui.display_report.assert_called_once_with(report)
    mock_ui.display_warning.assert_called_once()


@pytest.mark.asyncio
async def test_handle_ingest_storage_error(handler, mock_ingestion_service, mock_ui):
    mock_ingestion_service.ensure_corpus_loaded.side_effect = StorageError("connection refused")

    assert not await handler.handle_ingest(Corpus.MOVIES)

    mock_ui.display_error.assert_called_once_with("Storage error: connection refused")
    mock_ui.display_report.assert_not_called()


@pytest.mark.asyncio
async def test_handle_search_shows_answer_and_matches(handler, mock_search_service, mock_ui):
    matches = [MatchedRecord(content="Jazz under stars", similarity=0.8)]
    mock_search_service.answer.return_value = SearchAnswer(response="Listen to Jazz under stars.", matches=matches)

    assert await handler.handle_search(Corpus.PODCASTS, "jazz", limit=2)

    mock_search_service.answer.assert_awaited_once_with(Corpus.PODCASTS, "jazz", 2)
    mock_ui.display_answer.assert_called_once_with("Listen to Jazz under stars.")
    mock_ui.display_matches.assert_called_once_with(matches)


@pytest.mark.asyncio
async def test_handle_search_without_answer(handler, mock_search_service, mock_ui):
    mock_search_service.search.return_value = []

    assert await handler.handle_search(Corpus.MOVIES, "space", answer=False)

    mock_search_service.answer.assert_not_awaited()
    mock_ui.display_answer.assert_not_called()
    mock_ui.display_matches.assert_called_once_with([])


@pytest.mark.asyncio
async def test_handle_search_empty_query(handler, mock_search_service, mock_ui):
    mock_search_service.answer.side_effect = ValueError("Search query is required")

    assert not await handler.handle_search(Corpus.MOVIES, "")

    mock_ui.display_error.assert_called_once_with("Search query is required")


@pytest.mark.asyncio
async def test_handle_search_rate_limited(handler, mock_search_service, mock_ui):
    mock_search_service.answer.side_effect = MaxRetryError(Throttled("429"), 3)

    assert not await handler.handle_search(Corpus.MOVIES, "anything")

    message = mock_ui.display_error.call_args.args[0]
    assert "rate limiting" in message
