"""Database models, engine helpers and repositories."""
