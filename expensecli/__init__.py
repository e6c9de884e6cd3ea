"""expensecli: resilient command-line client for a GraphQL expense tracker."""

__version__ = "0.3.0"
