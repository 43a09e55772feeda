"""Infrastructure layer: concrete persistence for the domain's record store.

The domain package defines the RecordStore contract; this package implements
it with SQLAlchemy over SQLite or PostgreSQL.
"""
