"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# UUID type that works with both databases (native on PostgreSQL, CHAR(32) on SQLite)
UUIDType = PG_UUID
