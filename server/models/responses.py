from pydantic import BaseModel

from shared.models.plan import PlanYearContext
from shared.models.search import RankedResults


class DeleteResponse(BaseModel):
    document_id: str
    deleted: int


class PlanContextResponse(BaseModel):
    context: PlanYearContext
    query: str
    results: RankedResults
    prompt_context: str


class HealthResponse(BaseModel):
    status: str
    embed_engine: str
    rag_engine: str
