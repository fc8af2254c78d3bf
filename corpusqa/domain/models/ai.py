"""Domain models related to AI interactions.

Includes structures for chat messages, chat completion parameters and
AI responses.
"""

from typing import Optional, TypedDict
from dataclasses import dataclass

from .common import TokenUsage, MessageRole

# --- AI Interaction Structures ---

class ChatMessage(TypedDict):
    """Represents a message structure expected by chat APIs (like OpenAI)."""
    role: MessageRole
    content: str


@dataclass
class CompletionParameters:
    """Sampling parameters sent with every chat completion request."""
    temperature: float = 0.7
    max_tokens: int = 150
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0


@dataclass
class StructuredAIResponse:
    """Structured response from a chat model, including metadata."""
    content: str
    token_usage: Optional[TokenUsage] = None
    model_name: Optional[str] = None # Which model generated the response
    latency_ms: Optional[float] = None # Time taken for the API call
    finish_reason: Optional[str] = None
