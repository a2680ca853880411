"""Contact import and deduplication service."""
