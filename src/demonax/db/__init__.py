"""Database layer - SQLite connection, schema and repository."""
