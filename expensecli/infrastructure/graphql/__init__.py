"""GraphQL transport adapters (AppSync over HTTP, in-memory backend)."""
