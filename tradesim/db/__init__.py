"""Database layer: connection handle, models and repositories."""
