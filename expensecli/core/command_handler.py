"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the ExpenseService and reports results or errors through the UserInterface.
It also runs the interactive shell, where commands share one process and
therefore one listing cache.
"""

import logging
import shlex
from datetime import date as date_type
from typing import Any, Callable, List, Optional

# Core Imports
from expensecli.core.reports import SORT_BY_DATE, filter_expenses, sort_expenses, summarize
from expensecli.core.services.expense_service import ExpenseService

# Domain Layer Imports
from expensecli.domain.errors import ExpenseServiceError, ExpenseValidationError
from expensecli.domain.interfaces.user_interface import UserInterface
from expensecli.domain.models.common import ExpenseId

logger = logging.getLogger(__name__)

SHELL_PROMPT = "expenses>"
EXIT_COMMANDS = ("exit", "quit")


class CommandHandler:
    """Handles incoming commands and delegates to the expense service."""

    def __init__(
        self,
        expense_service: ExpenseService,
        ui: UserInterface,
        today: Callable[[], date_type] = date_type.today,
    ):
        """Initializes the CommandHandler with required services."""
        self.expense_service = expense_service
        self.ui = ui
        self.today = today
        self.shell_active = False

    def start_shell(self, run_command: Callable[[List[str]], Any]) -> None:
        """Runs the interactive shell until 'exit', 'quit' or end of input.

        Each line is split like a shell command line and passed to
        ``run_command``, which executes it as a regular CLI command.
        """
        if self.shell_active:
            logger.warning("Interactive shell already running; ignoring nested start.")
            return
        logger.info("Starting interactive shell.")
        self.shell_active = True
        self.ui.display_info("Interactive mode. Type 'help' for commands, 'exit' to quit.")
        try:
            while True:
                try:
                    line = self.ui.get_prompt(SHELL_PROMPT)
                except (EOFError, KeyboardInterrupt):
                    logger.debug("Input closed, leaving interactive shell.")
                    break

                try:
                    args = shlex.split(line)
                except ValueError as e:
                    self.ui.display_error(f"Could not parse command: {e}")
                    continue
                if not args:
                    continue
                if args[0].lower() in EXIT_COMMANDS:
                    break
                if args[0].lower() == "help":
                    args = ["--help"]

                logger.debug(f"Shell command: {args}")
                run_command(args)
        finally:
            self.shell_active = False
        self.ui.display_info("Ending interactive session.")

    async def handle_list(
        self,
        user_id: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = SORT_BY_DATE,
    ) -> int:
        """Handles the 'list' command. Returns the number of expenses shown.

        ``search`` matches names and ``category`` matches categories, both
        ignoring case. The table total covers the shown rows only.
        """
        effective_user_id = self.expense_service.fetcher.resolve_user_id(user_id)
        logger.info(f"Handling 'list' command for user: {effective_user_id}")
        expenses = await self.expense_service.list_expenses(effective_user_id)

        if not expenses:
            self.ui.display_info(f"No expenses found for user {effective_user_id}.")
            return 0

        try:
            shown = sort_expenses(filter_expenses(expenses, search=search, category=category), sort_by)
        except ExpenseValidationError as e:
            logger.error(f"List command failed: {e}")
            self.ui.display_error(str(e))
            return 0
        if not shown:
            self.ui.display_info(f"No expenses match the given filters ({len(expenses)} in total).")
            return 0

        title = f"Expenses for user {effective_user_id}"
        if len(shown) != len(expenses):
            title += f" ({len(shown)} of {len(expenses)})"
        self.ui.display_expenses(shown, title=title)
        incomplete = sum(1 for expense in shown if expense.is_placeholder)
        if incomplete:
            self.ui.display_warning(
                f"{incomplete} of {len(shown)} expense(s) could not be fully loaded and are shown with fallback values."
            )
        return len(shown)

    async def handle_summary(self, user_id: Optional[str] = None) -> bool:
        """Handles the 'summary' command: total, categories and recent months."""
        effective_user_id = self.expense_service.fetcher.resolve_user_id(user_id)
        logger.info(f"Handling 'summary' command for user: {effective_user_id}")
        expenses = await self.expense_service.list_expenses(effective_user_id)
        if not expenses:
            self.ui.display_info(f"No expenses found for user {effective_user_id}.")
            return False
        summary = summarize(expenses, self.today())
        self.ui.display_summary(summary, title=f"Summary for user {effective_user_id}")
        return True

    async def handle_show(self, expense_id: str) -> bool:
        """Handles the 'show' command."""
        logger.info(f"Handling 'show' command for expense: {expense_id}")
        try:
            expense = await self.expense_service.get_expense(ExpenseId(expense_id))
        except ExpenseServiceError as e:
            logger.error(f"Show command failed: {e}")
            self.ui.display_error(str(e))
            return False
        self.ui.display_expense(expense)
        return True

    async def handle_add(
        self,
        name: str,
        amount: Any,
        category: str,
        date: str,
        user_id: Optional[str] = None,
        description: str = "",
    ) -> bool:
        """Handles the 'add' command."""
        logger.info(f"Handling 'add' command: name={name!r}, category={category!r}")
        try:
            expense = await self.expense_service.create_expense(
                name=name, amount=amount, category=category, date=date,
                user_id=user_id, description=description,
            )
        except ExpenseServiceError as e:
            logger.error(f"Add command failed: {e}")
            self.ui.display_error(f"Could not add expense: {e}")
            return False
        self.ui.display_success(f"Added expense {expense.id} ({expense.name}, {expense.amount:,.2f}).")
        return True

    async def handle_update(self, expense_id: str, **changes: Any) -> bool:
        """Handles the 'update' command."""
        logger.info(f"Handling 'update' command for expense: {expense_id}")
        try:
            expense = await self.expense_service.update_expense(ExpenseId(expense_id), **changes)
        except ExpenseServiceError as e:
            logger.error(f"Update command failed: {e}")
            self.ui.display_error(f"Could not update expense: {e}")
            return False
        self.ui.display_success(f"Updated expense {expense.id}.")
        self.ui.display_expense(expense)
        return True

    async def handle_delete(self, expense_id: str) -> bool:
        """Handles the 'delete' command."""
        logger.info(f"Handling 'delete' command for expense: {expense_id}")
        try:
            expense = await self.expense_service.delete_expense(ExpenseId(expense_id))
        except ExpenseServiceError as e:
            logger.error(f"Delete command failed: {e}")
            self.ui.display_error(f"Could not delete expense: {e}")
            return False
        self.ui.display_success(f"Deleted expense {expense.id} ({expense.name}).")
        return True

    def handle_clear_cache(self) -> None:
        """Handles the 'clear-cache' command."""
        logger.info("Handling 'clear-cache' command.")
        self.expense_service.fetcher.invalidate(reason="manual")
        self.ui.display_success("Expense cache cleared.")
