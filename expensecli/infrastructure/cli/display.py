import logging
from decimal import Decimal
from typing import Any, List

from rich.console import Console
from rich.panel import Panel
from rich.box import ROUNDED
from rich.table import Table
from rich.text import Text

from expensecli.domain.interfaces.user_interface import UserInterface
from expensecli.domain.models.expense import Expense, PLACEHOLDER_PREFIX
from expensecli.domain.models.report import ExpenseSummary

logger = logging.getLogger(__name__)

PLACEHOLDER_STYLE = "dim italic"
RECOVERED_STYLE = "yellow"


def format_amount(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def row_style(expense: Expense) -> str:
    """Style for a table row; empty for regular records."""
    if not expense.is_placeholder:
        return ""
    return PLACEHOLDER_STYLE if expense.id.startswith(PLACEHOLDER_PREFIX) else RECOVERED_STYLE


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Console = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def build_expense_table(self, expenses: List[Expense], title: str = "Expenses") -> Table:
        """Builds the Rich table for a listing, with a total row."""
        table = Table(title=title, box=ROUNDED, show_lines=False)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Date", no_wrap=True)
        table.add_column("Name")
        table.add_column("Category", style="magenta")
        table.add_column("Amount", justify="right", style="green")

        total = Decimal(0)
        for expense in expenses:
            total += expense.amount
            table.add_row(
                expense.id,
                expense.date[:10],
                expense.name + (" *" if expense.is_placeholder else ""),
                expense.category,
                format_amount(expense.amount),
                style=row_style(expense) or None,
            )
        table.add_section()
        table.add_row("", "", Text("Total", style="bold"), "", Text(format_amount(total), style="bold green"))
        return table

    def display_expenses(self, expenses: List[Expense], **kwargs: Any) -> None:
        """Renders expenses as a table; placeholder rows are marked with '*'."""
        title = kwargs.get("title", "Expenses")
        logger.debug(f"display_expenses called: title={title}, count={len(expenses)}")
        if not expenses:
            self.console.print("[dim]No expenses to show.[/dim]")
            return
        self.console.print(self.build_expense_table(expenses, title=title))
        if any(expense.is_placeholder for expense in expenses):
            self.console.print("[dim]* incomplete record recovered from a partial response[/dim]")

    def display_expense(self, expense: Expense, **kwargs: Any) -> None:
        """Renders one expense as a panel."""
        lines = [
            f"[bold]Name:[/bold] {expense.name}",
            f"[bold]Amount:[/bold] {format_amount(expense.amount)}",
            f"[bold]Category:[/bold] {expense.category}",
            f"[bold]Date:[/bold] {expense.date}",
        ]
        if expense.description:
            lines.append(f"[bold]Description:[/bold] {expense.description}")
        if expense.user_id:
            lines.append(f"[bold]User:[/bold] {expense.user_id}")
        if expense.updated_at:
            lines.append(f"[dim]Updated {expense.updated_at}[/dim]")
        self.console.print(Panel("\n".join(lines), title=kwargs.get("title", f"Expense {expense.id}"), box=ROUNDED))

    def get_prompt(self, prompt_message: str = "> ") -> str:
        """Reads one line from the console with a styled prompt."""
        return self.console.input(f"[bold green]{prompt_message}[/bold green] ")

    def build_category_table(self, summary: ExpenseSummary) -> Table:
        """Builds the per-category breakdown, largest category first."""
        table = Table(title="By category", box=ROUNDED)
        table.add_column("Category", style="magenta")
        table.add_column("Amount", justify="right", style="green")
        table.add_column("Share", justify="right")
        for share in summary.categories:
            table.add_row(share.category, format_amount(share.amount), f"{share.percentage:.1f}%")
        return table

    def build_monthly_table(self, summary: ExpenseSummary) -> Table:
        """Builds the monthly totals table, oldest month first."""
        table = Table(title=f"Last {len(summary.monthly)} months", box=ROUNDED)
        table.add_column("Month", no_wrap=True)
        table.add_column("Amount", justify="right", style="green")
        for month in summary.monthly:
            table.add_row(month.label, format_amount(month.amount), style=None if month.amount else "dim")
        return table

    def display_summary(self, summary: ExpenseSummary, **kwargs: Any) -> None:
        """Renders the summary: the total, then the category and monthly tables."""
        title = kwargs.get("title", "Summary")
        logger.debug(f"display_summary called: title={title}, count={summary.count}")
        self.console.print(Panel(
            f"[bold]Total:[/bold] [bold green]{format_amount(summary.total)}[/bold green]"
            f" across {summary.count} expense(s)",
            title=title,
            box=ROUNDED,
        ))
        if summary.categories:
            self.console.print(self.build_category_table(summary))
        self.console.print(self.build_monthly_table(summary))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message."""
        self.console.print(f"[bold red]Error:[/bold red] {error_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        self.console.print(f"[bold yellow]Warning:[/bold yellow] {warning_message}")

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        self.console.print(f"[blue]Info:[/blue] {info_message}")

    def display_success(self, message: str, **kwargs: Any) -> None:
        """Displays a confirmation message."""
        self.console.print(f"[bold green]✓[/bold green] {message}")
