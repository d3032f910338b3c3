import uuid

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions import StoreUnavailable
from shared.helper.DocumentLocks import DocumentLocks
from shared.helper.HelperConfig import HelperConfig
from shared.helper.vector_math import cosine_similarity
from shared.models.config import EnvConfig
from shared.models.embedding import EmbeddingRecord
from shared.models.search import SearchFilters, SearchResult


class RAGClientMemory(RAGClientInterface):
    """Process-local vector store. Data lives only as long as the process, use it for development and tests."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._records: dict[str, list[EmbeddingRecord]] | None = None
        self._locks = DocumentLocks()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_store(self) -> dict[str, list[EmbeddingRecord]]:
        if self._records is None:
            raise StoreUnavailable("Memory store not initialised. Call boot() before making requests.")
        return self._records

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        if self._records is None:
            self._records = {}

    async def close(self) -> None:
        self._records = None

    async def do_healthcheck(self) -> None:
        self._get_store()

    ##########################################
    ########### BACKEND OPERATIONS ###########
    ##########################################

    @staticmethod
    def _with_id(record: EmbeddingRecord) -> EmbeddingRecord:
        return record if record.id else record.model_copy(update={"id": str(uuid.uuid4())})

    @staticmethod
    def _to_result(record: EmbeddingRecord, similarity: float) -> SearchResult:
        return SearchResult(
            id=record.id,
            chunk_text=record.chunk_text,
            chunk_index=record.chunk_index,
            year=record.year,
            month=record.month,
            week=record.week,
            similarity=similarity,
            metadata=record.metadata,
        )

    async def _insert_records(self, records: list[EmbeddingRecord]) -> list[str]:
        store = self._get_store()
        stored = [self._with_id(r) for r in records]
        for record in stored:
            store.setdefault(record.document_id, []).append(record)
        return [r.id for r in stored]

    async def _replace_document_records(self, document_id: str, records: list[EmbeddingRecord]) -> list[str]:
        async with self._locks.hold(document_id):
            store = self._get_store()
            stored = [self._with_id(r) for r in records]
            store[document_id] = stored
            return [r.id for r in stored]

    async def _delete_document_records(self, document_id: str) -> int:
        async with self._locks.hold(document_id):
            return len(self._get_store().pop(document_id, []))

    async def _query_by_similarity(self, query_vector: list[float], document_id: str, filters: SearchFilters, limit: int) -> list[SearchResult]:
        candidates = [
            r for r in self._get_store().get(document_id, [])
            if r.embedding
            and (filters.year is None or r.year == filters.year)
            and (filters.month is None or r.month == filters.month)
            and (filters.week is None or r.week == filters.week)
        ]
        scored = [(cosine_similarity(query_vector, r.embedding), r) for r in candidates]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [self._to_result(r, similarity) for similarity, r in scored[:limit]]

    async def _query_by_exact_time(self, document_id: str, year: int, month: int, week: int) -> list[SearchResult]:
        matches = [
            r for r in self._get_store().get(document_id, [])
            if r.year == year and r.month == month and r.week == week
        ]
        matches.sort(key=lambda r: r.chunk_index)
        return [self._to_result(r, 1.0) for r in matches]

    async def _fetch_time_tags(self, document_id: str) -> list[tuple[int, int, int]]:
        return [
            (r.year, r.month, r.week)
            for r in self._get_store().get(document_id, [])
            if r.year is not None and r.month is not None and r.week is not None
        ]
