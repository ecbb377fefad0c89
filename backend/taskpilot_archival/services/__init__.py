"""Queue, storage, and archival services."""
