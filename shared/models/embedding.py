"""Embedding models: the output of an embedding request and the persisted record."""

from pydantic import BaseModel, Field


class EmbeddingResult(BaseModel):
    """Vector returned by an embedding provider for a single text.

    Attributes:
        vector: The embedding vector. Its dimension is fixed per provider/model.
        model:  Name of the model that produced the vector.
    """

    vector: list[float]
    model: str


class EmbeddingRecord(BaseModel):
    """A chunk persisted together with its vector in a RAG backend.

    Records are append-only. Re-embedding a document deletes all of its
    records and inserts a fresh set, it never updates a record in place.
    Comparing vectors produced by different models is undefined.

    Attributes:
        id:           Record ID, assigned by the store when not provided.
        document_id:  Owning document (foreign reference, not owned).
        chunk_text:   Raw text content of the chunk.
        chunk_index:  Zero-based, stable position of the chunk within the document.
        year:         Plan year tag of the chunk.
        month:        Month tag of the chunk.
        week:         Week tag of the chunk.
        metadata:     Free-form key/value data copied from the chunk.
        embedding:    The chunk vector.
        model:        Name of the embedding model.
    """

    id: str | None = None
    document_id: str
    chunk_text: str
    chunk_index: int = Field(ge=0)
    year: int | None = None
    month: int | None = None
    week: int | None = None
    metadata: dict = {}
    embedding: list[float]
    model: str | None = None
