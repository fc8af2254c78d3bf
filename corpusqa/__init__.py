"""corpusqa: ask questions against podcast and movie corpora.

Embeds text with OpenAI, stores vectors in Supabase, and answers questions
from the closest snippets. Every outbound API call goes through a shared
client-side rate limiter.
"""

__version__ = "0.1.0"
