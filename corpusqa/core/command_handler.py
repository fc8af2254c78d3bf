"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the IngestionService or SearchService, and reports results and errors
through the UserInterface.
"""

import logging
from pathlib import Path
from typing import Optional

from corpusqa.core.services.ingestion_service import IngestionService
from corpusqa.core.services.search_service import SearchService
from corpusqa.domain.interfaces.user_interface import UserInterface
from corpusqa.domain.interfaces.vector_store import StorageError
from corpusqa.domain.models.common import Corpus
from corpusqa.infrastructure.resilience.api_retry import MaxRetryError
from corpusqa.infrastructure.resilience.rate_limiter import RateLimiterError

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services.

    Every handle_* coroutine returns True on success and False when an
    error was shown to the user.
    """

    def __init__(
        self,
        ingestion_service: IngestionService,
        search_service: SearchService,
        ui: UserInterface,
    ):
        self.ingestion_service = ingestion_service
        self.search_service = search_service
        self.ui = ui

    async def handle_ingest(self, corpus: Corpus, source: Optional[Path] = None, force: bool = False) -> bool:
        """Handles the 'ingest' command."""
        logger.info(f"Handling 'ingest' command for {corpus.value} (source={source or 'bundled'}, force={force})")
        try:
            report = await self.ingestion_service.ensure_corpus_loaded(corpus, source=source, force=force)
        except FileNotFoundError as e:
            self.ui.display_error(str(e))
            return False
        except StorageError as e:
            logger.error(f"Initialization error: {e}")
            self.ui.display_error(f"Storage error: {e}")
            return False

        self.ui.display_report(report)
        if report.failed:
            self.ui.display_warning(f"{len(report.failed)} item(s) could not be ingested; see the log for details.")
        return True

    async def handle_search(self, corpus: Corpus, query: str, limit: Optional[int] = None, answer: bool = True) -> bool:
        """Handles the 'search' command: answer plus supporting snippets."""
        logger.info(f"Handling 'search' command on {corpus.value}: {query!r}")
        try:
            if answer:
                result = await self.search_service.answer(corpus, query, limit)
                self.ui.display_answer(result.response)
                matches = result.matches
            else:
                matches = await self.search_service.search(corpus, query, limit)
        except ValueError as e:
            self.ui.display_error(str(e))
            return False
        except MaxRetryError as e:
            logger.error(f"Search failed after retries: {e.original_exception}")
            self.ui.display_error("The AI provider is rate limiting requests. Please try again in a minute.")
            return False
        except (StorageError, RateLimiterError) as e:
            self.ui.display_error(f"Error: {e}")
            return False
        except Exception as e:
            logger.error(f"Search error: {e}", exc_info=True)
            self.ui.display_error(f"Error: {e}")
            return False

        self.ui.display_matches(matches)
        return True
