"""
Database package for Memberwarden.

Provides the SQLite-backed record store used by the suspension ledger.

Public API:
    - ConnectionManager: owner of the single aiosqlite connection
    - SchemaManager: table creation and schema version tracking
"""
