"""Database-agnostic column types.

Models must run on PostgreSQL (production, asyncpg) and SQLite (local runs
and the test suite), so dialect-specific types (postgresql.UUID, JSONB,
ARRAY) are not used in models.
"""
from sqlalchemy import JSON, Numeric, Uuid

JSONType = JSON

# stored natively on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid(as_uuid=True)

# all balances and amounts
Money = Numeric(12, 2)

# commission percentages (e.g. 7.50)
Rate = Numeric(7, 4)

# fractional bonus multipliers (e.g. 0.5000 => +50%)
Multiplier = Numeric(8, 4)
