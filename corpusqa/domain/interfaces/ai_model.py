"""Interface for AI providers (embeddings and chat completions).

Defines the contract for turning text into embedding vectors and for sending
messages to a chat model. Implementations raise the provider's own exceptions;
classification into retryable and fatal errors happens in the retry service.
"""

import abc
from typing import List, Optional

from ..models.ai import ChatMessage, CompletionParameters, StructuredAIResponse
from ..models.common import EmbeddingVector


class AIModel(abc.ABC):
    """Abstract Base Class for AI provider interactions."""

    @abc.abstractmethod
    async def create_embedding(self, text: str) -> EmbeddingVector:
        """Creates an embedding vector for a single piece of text.

        Args:
            text: The input text.

        Returns:
            The embedding as a list of floats.

        Raises:
            Exception: The provider's error if the API call fails.
        """
        pass

    @abc.abstractmethod
    async def send_messages(
        self,
        messages: List[ChatMessage],
        parameters: Optional[CompletionParameters] = None,
    ) -> StructuredAIResponse:
        """Sends a list of messages to the chat model asynchronously.

        Args:
            messages: Ordered ChatMessage objects (system first).
            parameters: Sampling parameters; implementation defaults if None.

        Returns:
            A StructuredAIResponse containing the reply and metadata.

        Raises:
            Exception: The provider's error if the API call fails.
        """
        pass
