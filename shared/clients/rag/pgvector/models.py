"""SQLAlchemy table definition for embedding records stored in PostgreSQL with pgvector."""

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB


def build_embeddings_table(metadata: MetaData, table_name: str, dimension: int) -> Table:
    """Define the embeddings side table.

    The vector dimension is fixed per embedding model, so it is part of the
    table definition. The embedding column is nullable so that rows written
    before vector search was enabled can still be found by the exact lookup.

    Args:
        metadata (MetaData): The metadata collection the table is registered on.
        table_name (str): Name of the table (e.g. "document_embeddings").
        dimension (int): Vector dimension of the embedding model (e.g. 768).

    Returns:
        Table: The table definition.
    """
    return Table(
        table_name,
        metadata,
        Column("id", String(36), primary_key=True),
        Column("document_id", String(255), nullable=False),
        Column("chunk_text", Text, nullable=False),
        Column("chunk_index", Integer, nullable=False),
        Column("year", Integer, nullable=True),
        Column("month", Integer, nullable=True),
        Column("week", Integer, nullable=True),
        Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        Column("embedding", Vector(dimension), nullable=True),
        Column("model", String(255), nullable=True),
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Index(f"ix_{table_name}_document_time", "document_id", "year", "month", "week"),
        Index(f"ix_{table_name}_document_chunk", "document_id", "chunk_index"),
    )
