"""Concrete implementation of the AIModel interface using the OpenAI API.

Hides the specifics of the OpenAI client library and translates requests/
responses between the domain model and the OpenAI API format. Errors are
logged and re-raised untouched so the ApiRetryService can classify them.
"""

import asyncio
import logging
import time
from typing import Any, List, Optional

from openai import APIError, APIResponseValidationError, AuthenticationError, OpenAI, RateLimitError

from corpusqa.domain.interfaces.ai_model import AIModel
from corpusqa.domain.models.ai import ChatMessage, CompletionParameters, StructuredAIResponse
from corpusqa.domain.models.common import EmbeddingVector, TokenUsage

logger = logging.getLogger(__name__)


class GptClient(AIModel):
    """OpenAI implementation of the AIModel interface."""

    DEFAULT_CHAT_MODEL = "gpt-4"
    DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"

    def __init__(
        self,
        api_key: str,
        chat_model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        default_parameters: Optional[CompletionParameters] = None,
    ):
        """Initializes the OpenAI client.

        Args:
            api_key: OpenAI API key.
            chat_model: Model used for chat completions.
            embedding_model: Model used for embeddings.
            default_parameters: Sampling parameters used when a call passes none.
        """
        if not api_key:
            raise ValueError("OpenAI API key not provided.")

        # The SDK's own retries would bypass the shared rate limiter
        self.client = OpenAI(api_key=api_key, max_retries=0)
        self.chat_model = chat_model or self.DEFAULT_CHAT_MODEL
        self.embedding_model = embedding_model or self.DEFAULT_EMBEDDING_MODEL
        self.default_parameters = default_parameters or CompletionParameters()
        logger.info(f"GptClient initialized: chat={self.chat_model}, embeddings={self.embedding_model}")

    def _parse_chat_response(self, response: Any) -> StructuredAIResponse:
        """Parses the response object from an OpenAI chat completion."""
        try:
            choice = response.choices[0]
            content = choice.message.content or ""

            token_usage = None
            if response.usage:
                token_usage = TokenUsage(
                    prompt_tokens=response.usage.prompt_tokens,
                    completion_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens
                )

            return StructuredAIResponse(
                content=content,
                token_usage=token_usage,
                model_name=response.model,
                finish_reason=choice.finish_reason,
            )
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse OpenAI response structure: {e}", exc_info=True)
            raise ValueError(f"Invalid response structure from OpenAI: {e}") from e

    async def create_embedding(self, text: str) -> EmbeddingVector:
        """Creates an embedding for `text` with the configured embedding model."""
        logger.debug(f"Requesting embedding for {len(text)} characters from {self.embedding_model}")
        try:
            response = await asyncio.to_thread(
                self.client.embeddings.create,
                model=self.embedding_model,
                input=text,
            )
        except RateLimitError as e:
            logger.warning(f"OpenAI Rate Limit Error encountered: {e}")
            raise
        except AuthenticationError as e:
            logger.error(f"OpenAI Authentication Error: {e}")
            raise
        except APIError as e:
            logger.error(f"OpenAI API Error while creating embedding: {e}")
            raise

        try:
            return EmbeddingVector(list(response.data[0].embedding))
        except (AttributeError, IndexError, TypeError) as e:
            logger.error(f"Failed to parse OpenAI embedding response: {e}", exc_info=True)
            raise ValueError(f"Invalid embedding response from OpenAI: {e}") from e

    async def send_messages(
        self,
        messages: List[ChatMessage],
        parameters: Optional[CompletionParameters] = None,
    ) -> StructuredAIResponse:
        """Sends messages to the configured OpenAI chat model asynchronously."""
        params = parameters or self.default_parameters
        logger.debug(f"Sending {len(messages)} messages to OpenAI model: {self.chat_model}")
        start_time = time.perf_counter()
        try:
            # Use asyncio.to_thread for the synchronous SDK call
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.chat_model,
                messages=messages,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                presence_penalty=params.presence_penalty,
                frequency_penalty=params.frequency_penalty,
            )
        except RateLimitError as e:
            logger.warning(f"OpenAI Rate Limit Error encountered: {e}")
            raise
        except AuthenticationError as e:
            logger.error(f"OpenAI Authentication Error: {e}")
            raise
        except APIResponseValidationError as e:
            logger.error(f"OpenAI response validation error: {e}")
            raise
        except APIError as e:
            logger.error(f"OpenAI API Error during chat completion: {e}")
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        structured_response = self._parse_chat_response(response)
        structured_response.latency_ms = latency_ms
        logger.debug(f"Received response from OpenAI in {latency_ms:.2f}ms. Usage: {structured_response.token_usage}")
        return structured_response
