from pydantic import BaseModel


class ChunkFailure(BaseModel):
    """A chunk that could not be embedded during ingestion."""

    chunk_index: int
    error: str


class IngestionReport(BaseModel):
    """Outcome of embedding and storing one document.

    Attributes:
        document_id:     The ingested document.
        chunks_total:    Number of chunks produced by the chunker.
        chunks_embedded: Number of chunks embedded and written to the store.
        chunks_failed:   Number of chunks skipped because embedding failed.
        failures:        Per-chunk failure details.
        model:           Embedding model used for the stored vectors.
        record_ids:      IDs of the stored records, in chunk order.
    """

    document_id: str
    chunks_total: int
    chunks_embedded: int
    chunks_failed: int
    failures: list[ChunkFailure] = []
    model: str | None = None
    record_ids: list[str] = []
