"""Model clients, note processing and retrieval."""
