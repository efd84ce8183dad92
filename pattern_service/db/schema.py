"""
SQLAlchemy Core definition of the 'patterns' table.

- id: TEXT primary key (UUID4 string generated by the API)
- params: JSONB payload (generic JSON on non-Postgres dialects)
- timestamp: BIGINT supplied by the client, indexed descending
- created_at: server timestamp default, never returned by the API
"""

from sqlalchemy import BigInteger, Column, DateTime, Index, MetaData, Table, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Connection
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

metadata = MetaData()

patterns = Table(
    "patterns",
    metadata,
    Column("id", Text, primary_key=True),
    Column("params", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Column("timestamp", BigInteger, nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
)

timestamp_index = Index("idx_timestamp", patterns.c.timestamp.desc())


# PUBLIC_INTERFACE
def ensure_schema(conn: Connection) -> None:
    """Create the table and its index if they do not exist yet."""
    patterns.create(conn, checkfirst=True)
    timestamp_index.create(conn, checkfirst=True)
