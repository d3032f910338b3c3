"""Ingestion service.

Cleans the extracted text of an uploaded plan document, splits it into
time-tagged chunks, embeds every chunk concurrently and replaces the
document's records in the vector store with the result.
"""

import asyncio

from services.text_processing import StructuralChunker, TextNormalizer
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions import IngestionFailed
from shared.helper.DocumentLocks import DocumentLocks
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import Chunk
from shared.models.embedding import EmbeddingRecord, EmbeddingResult
from shared.models.ingestion import ChunkFailure, IngestionReport

DEFAULT_EMBED_CONCURRENCY = 5   # max parallel embedding requests per document


class IngestionService:
    """Turns raw document text into stored embedding records."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_client = rag_client

        self._concurrency = int(helper_config.get_number_val("INGEST_EMBED_CONCURRENCY", default=DEFAULT_EMBED_CONCURRENCY))
        self._min_success_ratio = float(helper_config.get_number_val("INGEST_MIN_SUCCESS_RATIO", default=0.0))
        self._timeout = helper_config.get_optional_number_val("INGEST_TIMEOUT")
        self._locks = DocumentLocks()

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def do_ingest(self, document_id: str, raw_text: str) -> IngestionReport:
        """Chunk, embed and store a document, superseding any earlier records of it.

        Chunks whose embedding fails are logged and skipped. If fewer chunks
        succeed than INGEST_MIN_SUCCESS_RATIO demands (and always if none
        succeed), nothing is written.

        Args:
            document_id (str): The document the text belongs to.
            raw_text (str): Text as extracted from the uploaded file.

        Returns:
            IngestionReport: Counts and per-chunk failures of the run.

        Raises:
            ProviderUnavailable: If the embedding provider has no credential configured.
            IngestionFailed: If too few chunks could be embedded.
            StoreUnavailable: If the store write fails.
            asyncio.TimeoutError: If INGEST_TIMEOUT is set and exceeded.
        """
        operation = self._ingest(document_id, raw_text)
        if self._timeout is not None:
            return await asyncio.wait_for(operation, timeout=self._timeout)
        return await operation

    async def do_remove(self, document_id: str) -> int:
        """Delete every stored record of a document.

        Returns:
            int: The number of deleted records.
        """
        async with self._locks.hold(document_id):
            return await self._rag_client.do_delete_document(document_id)

    async def _ingest(self, document_id: str, raw_text: str) -> IngestionReport:
        chunks = StructuralChunker.chunk(TextNormalizer.clean(raw_text))
        self.logging.info("Document '%s' split into %d chunks.", document_id, len(chunks))

        if not chunks:
            report = IngestionReport(document_id=document_id, chunks_total=0, chunks_embedded=0, chunks_failed=0)
            raise IngestionFailed(f"Document '{document_id}' contains no text to embed.", report=report)

        # no credential means every chunk would fail, so fail before any request
        self._embed_client.ensure_available()

        sem = asyncio.Semaphore(self._concurrency)
        outcomes = await asyncio.gather(
            *[self._embed_chunk(chunk, sem) for chunk in chunks],
            return_exceptions=True,
        )

        records: list[EmbeddingRecord] = []
        failures: list[ChunkFailure] = []
        model = None
        for index, (chunk, outcome) in enumerate(zip(chunks, outcomes)):
            if isinstance(outcome, BaseException):
                self.logging.error("Embedding failed for chunk %d of document '%s': %s", index, document_id, outcome)
                failures.append(ChunkFailure(chunk_index=index, error=str(outcome)))
                continue
            model = model or outcome.model
            records.append(self._build_record(document_id, index, chunk, outcome))

        report = IngestionReport(
            document_id=document_id,
            chunks_total=len(chunks),
            chunks_embedded=len(records),
            chunks_failed=len(failures),
            failures=failures,
            model=model,
        )

        if not records or len(records) / len(chunks) < self._min_success_ratio:
            raise IngestionFailed(
                f"Only {len(records)} of {len(chunks)} chunks of document '{document_id}' could be embedded.",
                report=report,
            )

        async with self._locks.hold(document_id):
            record_ids = await self._rag_client.do_replace_document(document_id, records)

        self.logging.info(
            "Ingested document '%s': %d embedded, %d failed.", document_id, len(records), len(failures)
        )
        return report.model_copy(update={"record_ids": record_ids})

    async def _embed_chunk(self, chunk: Chunk, sem: asyncio.Semaphore) -> EmbeddingResult:
        async with sem:
            return await self._embed_client.do_embed(chunk.text)

    @staticmethod
    def _build_record(document_id: str, index: int, chunk: Chunk, result: EmbeddingResult) -> EmbeddingRecord:
        return EmbeddingRecord(
            document_id=document_id,
            chunk_text=chunk.text,
            chunk_index=index,
            year=chunk.year,
            month=chunk.month,
            week=chunk.week,
            metadata={**chunk.metadata, "section_type": chunk.section_type},
            embedding=result.vector,
            model=result.model,
        )
