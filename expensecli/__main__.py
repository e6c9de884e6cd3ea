"""Main entry point when executing expensecli as a package.

This allows running the package using python -m expensecli.
"""

from expensecli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
