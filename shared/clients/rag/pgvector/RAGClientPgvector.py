import uuid

from sqlalchemy import MetaData, Select, delete, func, insert, literal, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.pgvector.models import build_embeddings_table
from shared.exceptions import StoreUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.embedding import EmbeddingRecord
from shared.models.search import SearchFilters, SearchResult


class RAGClientPgvector(RAGClientInterface):
    """PostgreSQL + pgvector store. Similarity is ranked with the <=> cosine distance operator."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._dsn = self.get_config_val("DSN", default=None, val_type="string")
        self._table_name = self.get_config_val("TABLE", default="document_embeddings", val_type="string")
        self._dimension = int(self.get_config_val("DIMENSION", default=768, val_type="number"))
        self._create_schema = self.get_config_val("CREATE_SCHEMA", default=False, val_type="bool")

        self._metadata = MetaData()
        self._table = build_embeddings_table(self._metadata, self._table_name, self._dimension)
        self._engine: AsyncEngine | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Pgvector"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="DSN", val_type="string", default=None),
            EnvConfig(env_key="TABLE", val_type="string", default="document_embeddings"),
            EnvConfig(env_key="DIMENSION", val_type="number", default=768),
            EnvConfig(env_key="CREATE_SCHEMA", val_type="bool", default=False),
        ]

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreUnavailable("Database engine not initialised. Call boot() before making requests.")
        return self._engine

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Create the async engine and, if configured, the vector extension and table."""
        self._engine = create_async_engine(self._dsn, pool_pre_ping=True, pool_timeout=self.timeout)
        if self._create_schema:
            async with self._engine.begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                await conn.run_sync(self._metadata.create_all)
            self.logging.info("Ensured pgvector extension and table '%s' (dimension %d).", self._table_name, self._dimension)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def do_healthcheck(self) -> None:
        async with self._get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))

    ##########################################
    ########### STATEMENT BUILDER ############
    ##########################################

    def _result_columns(self) -> list:
        c = self._table.c
        return [c.id, c.chunk_text, c.chunk_index, c.year, c.month, c.week, c.metadata]

    def build_similarity_statement(self, query_vector: list[float], document_id: str, filters: SearchFilters, limit: int) -> Select:
        """SELECT ..., 1 - (embedding <=> :query) ORDER BY embedding <=> :query LIMIT :limit."""
        c = self._table.c
        distance = c.embedding.cosine_distance(query_vector)
        stmt = (
            select(*self._result_columns(), (1 - distance).label("similarity"))
            .where(c.document_id == document_id)
            .where(c.embedding.is_not(None))
        )
        for name in ("year", "month", "week"):
            value = getattr(filters, name)
            if value is not None:
                stmt = stmt.where(c[name] == value)
        return stmt.order_by(distance).limit(limit)

    def build_exact_statement(self, document_id: str, year: int, month: int, week: int) -> Select:
        c = self._table.c
        return (
            select(*self._result_columns(), literal(1.0).label("similarity"))
            .where(c.document_id == document_id, c.year == year, c.month == month, c.week == week)
            .order_by(c.chunk_index.asc())
        )

    def _to_row(self, record: EmbeddingRecord) -> dict:
        return {
            "id": record.id or str(uuid.uuid4()),
            "document_id": record.document_id,
            "chunk_text": record.chunk_text,
            "chunk_index": record.chunk_index,
            "year": record.year,
            "month": record.month,
            "week": record.week,
            "metadata": record.metadata,
            "embedding": record.embedding,
            "model": record.model,
        }

    @staticmethod
    def _to_result(row) -> SearchResult:
        return SearchResult(
            id=str(row["id"]),
            chunk_text=row["chunk_text"],
            chunk_index=row["chunk_index"],
            year=row["year"],
            month=row["month"],
            week=row["week"],
            similarity=float(row["similarity"]),
            metadata=row["metadata"] or {},
        )

    ##########################################
    ########### BACKEND OPERATIONS ###########
    ##########################################

    async def _insert_records(self, records: list[EmbeddingRecord]) -> list[str]:
        rows = [self._to_row(r) for r in records]
        if rows:
            async with self._get_engine().begin() as conn:
                await conn.execute(insert(self._table), rows)
        return [row["id"] for row in rows]

    async def _replace_document_records(self, document_id: str, records: list[EmbeddingRecord]) -> list[str]:
        rows = [self._to_row(r) for r in records]
        async with self._get_engine().begin() as conn:
            # released at commit/rollback, serialises concurrent re-embeds of the same document
            await conn.execute(text("SELECT pg_advisory_xact_lock(hashtext(:document_id))"), {"document_id": document_id})
            await conn.execute(delete(self._table).where(self._table.c.document_id == document_id))
            if rows:
                await conn.execute(insert(self._table), rows)
        return [row["id"] for row in rows]

    async def _delete_document_records(self, document_id: str) -> int:
        async with self._get_engine().begin() as conn:
            result = await conn.execute(delete(self._table).where(self._table.c.document_id == document_id))
        return result.rowcount or 0

    async def _query_by_similarity(self, query_vector: list[float], document_id: str, filters: SearchFilters, limit: int) -> list[SearchResult]:
        if len(query_vector) != self._dimension:
            raise ValueError(f"Query vector has dimension {len(query_vector)}, table '{self._table_name}' stores {self._dimension}.")
        stmt = self.build_similarity_statement(query_vector, document_id, filters, limit)
        async with self._get_engine().connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()
        return [self._to_result(row) for row in rows]

    async def _query_by_exact_time(self, document_id: str, year: int, month: int, week: int) -> list[SearchResult]:
        stmt = self.build_exact_statement(document_id, year, month, week)
        async with self._get_engine().connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()
        return [self._to_result(row) for row in rows]

    async def _fetch_time_tags(self, document_id: str) -> list[tuple[int, int, int]]:
        c = self._table.c
        stmt = select(c.year, c.month, c.week).where(
            c.document_id == document_id,
            c.year.is_not(None),
            c.month.is_not(None),
            c.week.is_not(None),
        )
        async with self._get_engine().connect() as conn:
            rows = (await conn.execute(stmt)).all()
        return [(row[0], row[1], row[2]) for row in rows]

    async def do_count(self, document_id: str) -> int:
        """Count the records stored for a document.

        Returns:
            int: Number of records.
        """
        stmt = select(func.count()).select_from(self._table).where(self._table.c.document_id == document_id)
        async with self._get_engine().connect() as conn:
            return int((await conn.execute(stmt)).scalar_one())
