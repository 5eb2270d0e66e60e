"""
Database module - Data persistence and storage components.

Security Considerations:
- Secret values are stored only as authenticated-encryption envelopes
- Bearer tokens are stored only as SHA-256 hashes
- Every query is scoped by user ID
"""

from vaultkey.db.connection import Database, format_timestamp, parse_timestamp

__all__ = ["Database", "format_timestamp", "parse_timestamp"]
