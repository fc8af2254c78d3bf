"""Interface for interacting with the user (output only).

Defines the contract for displaying answers, search matches, ingestion
reports and status messages, allowing different UI implementations.
"""

import abc
from typing import Any, List

from corpusqa.domain.models.corpus import IngestionReport, MatchedRecord


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_answer(self, answer: str, **kwargs: Any) -> None:
        """Displays the AI-generated answer.

        Args:
            answer: The answer text (may contain Markdown).
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_matches(self, matches: List[MatchedRecord], **kwargs: Any) -> None:
        """Displays the source snippets behind an answer.

        Args:
            matches: Matched records ordered by descending similarity.
        """
        pass

    @abc.abstractmethod
    def display_report(self, report: IngestionReport) -> None:
        """Displays the outcome of an ingestion run."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
