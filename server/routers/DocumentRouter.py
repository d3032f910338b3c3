from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import IngestRequest
from server.models.responses import DeleteResponse
from shared.models.ingestion import IngestionReport
from shared.models.plan import PlanCoverage

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/{document_id}/embeddings")
async def ingest_document(
    request: Request,
    document_id: str,
    body: IngestRequest,
    _: None = Depends(verify_api_key),
) -> IngestionReport:
    """Chunk and embed the extracted text of a document, replacing its previous embeddings.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        document_id (str): The document the text belongs to.
        body (IngestRequest): JSON body with the extracted document text.
        _ (None): Auth dependency result (unused).

    Returns:
        IngestionReport: How many chunks were embedded and which failed.
    """
    request.app.state.logging.info("Ingestion requested for document '%s' (%d chars).", document_id, len(body.text))
    return await request.app.state.ingestion_service.do_ingest(document_id, body.text)


@router.delete("/{document_id}/embeddings")
async def delete_document_embeddings(
    request: Request,
    document_id: str,
    _: None = Depends(verify_api_key),
) -> DeleteResponse:
    """Remove every stored embedding of a document."""
    deleted = await request.app.state.ingestion_service.do_remove(document_id)
    return DeleteResponse(document_id=document_id, deleted=deleted)


@router.get("/{document_id}/coverage")
async def get_document_coverage(
    request: Request,
    document_id: str,
    _: None = Depends(verify_api_key),
) -> PlanCoverage:
    """Summarise which plan years, months and weeks a document's chunks cover."""
    return await request.app.state.rag_client.do_fetch_coverage(document_id)
