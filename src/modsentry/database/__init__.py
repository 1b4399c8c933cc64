"""
Database package for ModSentry.

Provides the SQLite persistence layer with a single long-lived connection,
schema management and per-operation timing.
"""
