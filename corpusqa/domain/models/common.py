"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like query text, embedding
vectors, record ids and token usage, ensuring consistency and type safety.
"""

from enum import Enum
from typing import NewType, List, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
QueryText = NewType("QueryText", str)          # User's natural-language question
ChunkText = NewType("ChunkText", str)          # One piece of corpus text
AIResponse = NewType("AIResponse", str)        # Raw response text from the chat model
RecordId = NewType("RecordId", int)            # Identifier assigned by external storage

# === Embedding Context ===
EmbeddingVector = NewType("EmbeddingVector", List[float])  # 1536 floats for ada-002

# === Chat Context ===
MessageRole = NewType("MessageRole", str)      # 'system', 'user', 'assistant'


class Corpus(str, Enum):
    """The fixed text corpora the application can search."""
    PODCASTS = "podcasts"
    MOVIES = "movies"


# --- Structured Data ---
class TokenUsage(TypedDict):
    """Represents token usage information from an AI call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
