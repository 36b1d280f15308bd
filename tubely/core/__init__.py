"""Core infrastructure: configuration, logging, storage, database."""
