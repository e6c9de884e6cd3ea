"""Interface for interacting with the user.

Defines the contract for displaying expenses, reports, information,
warnings and errors, and for reading interactive input, allowing different
UI implementations (e.g., console, GUI).
"""

import abc
from typing import Any, List

# Import relevant domain models
from ..models.expense import Expense
from ..models.report import ExpenseSummary


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def get_prompt(self, prompt_message: str = "> ") -> str:
        """Reads one line of input from the user.

        Args:
            prompt_message: The message to display before the input cursor.

        Returns:
            The text input by the user.

        Raises:
            EOFError: If the input stream is closed.
        """
        pass

    @abc.abstractmethod
    def display_expenses(self, expenses: List[Expense], **kwargs: Any) -> None:
        """Displays a list of expenses.

        Args:
            expenses: The expenses to render, in order.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_expense(self, expense: Expense, **kwargs: Any) -> None:
        """Displays the details of a single expense.

        Args:
            expense: The expense to render.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_summary(self, summary: ExpenseSummary, **kwargs: Any) -> None:
        """Displays the spending summary (total, categories, recent months)."""
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

    def display_success(self, message: str, **kwargs: Any) -> None:
        """Displays a confirmation message. Falls back to display_info."""
        self.display_info(message, **kwargs)
