import logging
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from corpusqa.domain.interfaces.user_interface import UserInterface
from corpusqa.domain.models.corpus import IngestionReport, ItemStatus, MatchedRecord

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    ItemStatus.STORED: "green",
    ItemStatus.EMBEDDING_FAILED: "red",
    ItemStatus.STORE_FAILED: "yellow",
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_answer(self, answer: str, **kwargs: Any) -> None:
        """Displays the answer as Markdown inside a panel.

        Args:
            answer: The answer text.
            **kwargs: title (default "Answer").
        """
        title = kwargs.get("title", "Answer")
        panel = Panel(
            Markdown(answer),
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_matches(self, matches: List[MatchedRecord], **kwargs: Any) -> None:
        """Displays matched snippets with their similarity as a percentage."""
        if not matches:
            self.display_info("No matching snippets.")
            return
        table = Table(title=kwargs.get("title", "Sources"), box=ROUNDED, border_style="cyan", show_lines=True)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Snippet", style="white")
        table.add_column("Similarity", justify="right", style="cyan")
        for index, match in enumerate(matches, start=1):
            table.add_row(str(index), match.content, f"{match.similarity * 100:.1f}%")
        self.console.print(table)

    def display_report(self, report: IngestionReport) -> None:
        """Displays a per-item table and a summary line for an ingestion run."""
        if report.skipped_existing:
            self.display_info(f"{report.corpus.value.capitalize()} already exist in the database; nothing to do.")
            return

        table = Table(title=f"Ingestion: {report.corpus.value}", box=SIMPLE)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Status")
        table.add_column("Record ID", justify="right")
        table.add_column("Detail", overflow="fold")
        for outcome in report.outcomes:
            style = STATUS_STYLES[outcome.status]
            table.add_row(
                str(outcome.item.position),
                f"[{style}]{outcome.status.value}[/{style}]",
                str(outcome.record_id) if outcome.record_id is not None else "-",
                outcome.error or "",
            )
        self.console.print(table)
        self.console.print(
            f"[bold]{len(report.stored)}/{report.total}[/bold] items stored, "
            f"[bold]{len(report.failed)}[/bold] failed."
        )

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
