from abc import abstractmethod
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ConfigurationError, StoreUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingRecord
from shared.models.plan import PlanCoverage
from shared.models.search import SearchFilters, SearchResult

T = TypeVar("T")


class StoreFailurePolicy(str, Enum):
    """What a query path does when the store fails.

    SOFT: log and return an empty result so callers can degrade gracefully.
    HARD: raise StoreUnavailable.
    """

    SOFT = "soft"
    HARD = "hard"


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.similarity_failure_policy = self._read_policy("SIMILARITY_FAILURE_POLICY", StoreFailurePolicy.SOFT)
        self.exact_failure_policy = self._read_policy("EXACT_FAILURE_POLICY", StoreFailurePolicy.HARD)

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _read_policy(self, raw_key: str, default: StoreFailurePolicy) -> StoreFailurePolicy:
        key = f"{self.get_client_type().upper()}_{raw_key}"
        raw = self._helper_config.get_string_val(key, default=default.value)
        try:
            return StoreFailurePolicy(raw.lower())
        except ValueError:
            raise ConfigurationError(f"Configuration key '{key}' must be 'soft' or 'hard'. Got: '{raw}'")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ##########################################
    ########### BACKEND OPERATIONS ###########
    ##########################################

    @abstractmethod
    async def _insert_records(self, records: list[EmbeddingRecord]) -> list[str]:
        """
        Appends records to the store.

        Returns:
            list[str]: The record IDs, in input order.
        """
        pass

    @abstractmethod
    async def _replace_document_records(self, document_id: str, records: list[EmbeddingRecord]) -> list[str]:
        """
        Deletes every record of the document and inserts the given ones as one unit,
        serialised against concurrent replacements of the same document.

        Returns:
            list[str]: The new record IDs, in input order.
        """
        pass

    @abstractmethod
    async def _delete_document_records(self, document_id: str) -> int:
        """
        Deletes every record of the document.

        Returns:
            int: The number of deleted records.
        """
        pass

    @abstractmethod
    async def _query_by_similarity(self, query_vector: list[float], document_id: str, filters: SearchFilters, limit: int) -> list[SearchResult]:
        """
        Nearest-neighbour query by cosine distance, restricted to the document and the
        given equality filters. similarity = 1 - cosine_distance, sorted descending.
        """
        pass

    @abstractmethod
    async def _query_by_exact_time(self, document_id: str, year: int, month: int, week: int) -> list[SearchResult]:
        """
        All records of the document whose (year, month, week) equals the given triple,
        ordered by chunk_index ascending.
        """
        pass

    @abstractmethod
    async def _fetch_time_tags(self, document_id: str) -> list[tuple[int, int, int]]:
        """
        Returns the (year, month, week) triple of every record of the document that has all three tags.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_insert(self, record: EmbeddingRecord) -> str:
        """Append a single record to the store.

        Args:
            record (EmbeddingRecord): The record to write.

        Returns:
            str: The ID of the stored record.

        Raises:
            StoreUnavailable: If the store write fails.
        """
        ids = await self._run_with_policy(
            lambda: self._insert_records([record]),
            StoreFailurePolicy.HARD,
            "insert",
            record.document_id,
        )
        return ids[0]

    async def do_replace_document(self, document_id: str, records: list[EmbeddingRecord]) -> list[str]:
        """Supersede all records of a document with a new set.

        Args:
            document_id (str): The document whose records are replaced.
            records (list[EmbeddingRecord]): The new records. All must belong to document_id.

        Returns:
            list[str]: The IDs of the new records, in input order.

        Raises:
            ValueError: If a record belongs to a different document.
            StoreUnavailable: If the store write fails.
        """
        foreign = [r.chunk_index for r in records if r.document_id != document_id]
        if foreign:
            raise ValueError(f"Records for chunk(s) {foreign} do not belong to document '{document_id}'.")
        ids = await self._run_with_policy(
            lambda: self._replace_document_records(document_id, records),
            StoreFailurePolicy.HARD,
            "replace",
            document_id,
        )
        self.logging.info(
            "Stored %d embedding records for document '%s' in %s.", len(ids), document_id, self.get_engine_name()
        )
        return ids

    async def do_delete_document(self, document_id: str) -> int:
        """Delete every record of a document.

        Returns:
            int: The number of deleted records.

        Raises:
            StoreUnavailable: If the store delete fails.
        """
        deleted = await self._run_with_policy(
            lambda: self._delete_document_records(document_id),
            StoreFailurePolicy.HARD,
            "delete",
            document_id,
        )
        self.logging.info("Deleted %d embedding records for document '%s'.", deleted, document_id)
        return deleted

    async def do_query_by_similarity(
        self,
        query_vector: list[float],
        document_id: str,
        filters: SearchFilters | None = None,
        limit: int = 5,
    ) -> list[SearchResult]:
        """Rank the document's chunks by cosine similarity to the query vector.

        Follows similarity_failure_policy when the store fails (soft by default:
        the failure is logged and an empty list is returned).

        Args:
            query_vector (list[float]): The query embedding.
            document_id (str): Only chunks of this document are considered.
            filters (SearchFilters | None): Optional year/month/week equality filters.
            limit (int): Maximum number of results.

        Returns:
            list[SearchResult]: Results sorted by similarity descending, match_type "similar".

        Raises:
            StoreUnavailable: If the store fails and the policy is hard.
        """
        results = await self._run_with_policy(
            lambda: self._query_by_similarity(query_vector, document_id, filters or SearchFilters(), limit),
            self.similarity_failure_policy,
            "similarity query",
            document_id,
        )
        return [r.model_copy(update={"match_type": "similar"}) for r in results]

    async def do_query_by_exact_time(self, document_id: str, year: int, month: int, week: int) -> list[SearchResult]:
        """Fetch the document's chunks tagged exactly with (year, month, week).

        Follows exact_failure_policy when the store fails (hard by default,
        since the exact lookup has no fallback).

        Returns:
            list[SearchResult]: Results ordered by chunk_index, similarity 1.0, match_type "exact".

        Raises:
            StoreUnavailable: If the store fails and the policy is hard.
        """
        results = await self._run_with_policy(
            lambda: self._query_by_exact_time(document_id, year, month, week),
            self.exact_failure_policy,
            "exact time query",
            document_id,
        )
        results = sorted(results, key=lambda r: r.chunk_index)
        return [r.model_copy(update={"similarity": 1.0, "match_type": "exact"}) for r in results]

    async def do_fetch_coverage(self, document_id: str) -> PlanCoverage:
        """Summarise the plan years, months and weeks covered by a document.

        Raises:
            StoreUnavailable: If the store fails.
        """
        tags = await self._run_with_policy(
            lambda: self._fetch_time_tags(document_id),
            StoreFailurePolicy.HARD,
            "coverage query",
            document_id,
        )
        return PlanCoverage(
            document_id=document_id,
            years=sorted({year for year, _, _ in tags}),
            months_covered=len({month for _, month, _ in tags}),
            weeks_covered=len({week for _, _, week in tags}),
            chunk_count=len(tags),
        )

    async def _run_with_policy(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: StoreFailurePolicy,
        description: str,
        document_id: str,
    ) -> T:
        """Run a store operation, converting failures according to policy.

        Soft returns an empty list, so it only suits query paths.
        """
        try:
            return await operation()
        except Exception as exc:
            if policy is StoreFailurePolicy.SOFT:
                self.logging.warning(
                    "%s failed for document '%s' in %s, returning no results: %s",
                    description.capitalize(), document_id, self.get_engine_name(), exc,
                )
                return []
            self.logging.error(
                "%s failed for document '%s' in %s: %s",
                description.capitalize(), document_id, self.get_engine_name(), exc,
            )
            if isinstance(exc, StoreUnavailable):
                raise
            raise StoreUnavailable(f"{description.capitalize()} failed in {self.get_engine_name()}: {exc}") from exc
