"""Infrastructure adapters: SQL and in-memory storage, settings, logging."""
