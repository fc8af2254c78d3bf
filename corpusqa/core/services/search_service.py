"""Core service for answering questions against a corpus.

Embeds the question, retrieves the closest snippets from vector storage and
asks the chat model to phrase a short answer from them. Both API calls go
through the ApiRetryService and therefore the shared rate limiter.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from corpusqa.domain.interfaces.ai_model import AIModel
from corpusqa.domain.interfaces.vector_store import VectorStore
from corpusqa.domain.models.ai import ChatMessage, CompletionParameters, StructuredAIResponse
from corpusqa.domain.models.common import Corpus, MessageRole, QueryText
from corpusqa.domain.models.corpus import MatchedRecord, SearchAnswer
from corpusqa.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 3

SYSTEM_PROMPTS: Dict[Corpus, str] = {
    Corpus.MOVIES: (
        "You are a knowledgeable movie expert who helps users find and understand movies. "
        "Provide concise, natural responses that directly answer the user's question using the "
        "provided movie information. If the context doesn't contain relevant information, "
        "politely say so. Include specific movie details when possible. "
        "Keep responses under 3 sentences."
    ),
    Corpus.PODCASTS: (
        "You are an enthusiastic podcast guide who helps users pick something to listen to. "
        "Answer the user's question using only the provided podcast descriptions. If the "
        "context doesn't contain relevant information, politely say so. Mention podcast "
        "titles and running times when possible. Keep responses under 3 sentences."
    ),
}

NO_MATCH_RESPONSES: Dict[Corpus, str] = {
    Corpus.MOVIES: "I couldn't find any movies matching your query. Try a different search term.",
    Corpus.PODCASTS: "I couldn't find any podcasts matching your query. Try a different search term.",
}


@dataclass
class SearchSettings:
    """Similarity search limits."""
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    match_count: int = DEFAULT_MATCH_COUNT


class SearchService:
    """Finds relevant snippets and turns them into an answer."""

    def __init__(
        self,
        ai_model: AIModel,
        vector_store: VectorStore,
        api_retry_service: ApiRetryService,
        settings: Optional[SearchSettings] = None,
        completion_parameters: Optional[CompletionParameters] = None,
    ):
        self.ai_model = ai_model
        self.vector_store = vector_store
        self.api_retry_service = api_retry_service
        self.settings = settings or SearchSettings()
        self.completion_parameters = completion_parameters or CompletionParameters()

    @staticmethod
    def _validate_query(query: str) -> QueryText:
        if not query or not query.strip():
            raise ValueError("Search query is required")
        return QueryText(query.strip())

    async def search(self, corpus: Corpus, query: str, limit: Optional[int] = None) -> List[MatchedRecord]:
        """Returns the snippets most similar to `query`.

        Raises:
            ValueError: If the query is empty.
            MaxRetryError: If embedding the query kept getting throttled.
            StorageError: If the similarity search fails.
        """
        query_text = self._validate_query(query)
        logger.info(f"Getting embedding for query: {query_text}")
        embedding = await self.api_retry_service.execute_with_retry(
            self.ai_model.create_embedding,
            query_text,
            endpoint_name="create_embedding",
        )
        return await self.vector_store.match_records(
            corpus,
            embedding,
            threshold=self.settings.match_threshold,
            count=limit or self.settings.match_count,
        )

    def build_messages(self, corpus: Corpus, matches: List[MatchedRecord], query: str) -> List[ChatMessage]:
        context = "\n\n".join(match.content for match in matches)
        return [
            ChatMessage(role=MessageRole("system"), content=SYSTEM_PROMPTS[corpus]),
            ChatMessage(role=MessageRole("user"), content=f"Context: {context}\n\nQuestion: {query}"),
        ]

    async def answer(self, corpus: Corpus, query: str, limit: Optional[int] = None) -> SearchAnswer:
        """Searches the corpus and asks the chat model to answer from the matches.

        With no matches the chat model is not called and a fixed
        "couldn't find" response is returned.
        """
        matches = await self.search(corpus, query, limit)
        if not matches:
            logger.info(f"No {corpus.value} matched the query.")
            return SearchAnswer(response=NO_MATCH_RESPONSES[corpus], matches=[])

        messages = self.build_messages(corpus, matches, query.strip())
        completion: StructuredAIResponse = await self.api_retry_service.execute_with_retry(
            self.ai_model.send_messages,
            messages,
            self.completion_parameters,
            endpoint_name="send_messages",
        )
        logger.debug(f"Chat completion usage: {completion.token_usage}")
        return SearchAnswer(response=completion.content, matches=matches)
