"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Use JSON instead of JSONB for cross-database compatibility
# JSONB is PostgreSQL-specific, JSON works with both SQLite and PostgreSQL
JSONType = JSON

# UUID type that works with both databases (stored as CHAR(32) on SQLite)
UUIDType = PG_UUID

# Fixed-point money columns
MoneyType = Numeric(12, 2)

# Commission amounts keep four places so percentage splits stay exact
CommissionAmountType = Numeric(12, 4)

# Fractional rates in [0, 1], e.g. 0.0500
RateType = Numeric(5, 4)
