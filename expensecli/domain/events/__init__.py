"""Domain events emitted by the expense fetch pipeline."""
