"""Domain models: expenses, cache entries and remote query results."""
