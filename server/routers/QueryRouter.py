from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import CalendarRequest, PlanContextRequest, SearchRequest
from server.models.responses import PlanContextResponse
from services.plan_calendar import PlanCalendar
from services.retrieval.HybridRetriever import format_plan_context
from shared.models.plan import PlanYearContext
from shared.models.search import HybridSearchResult, RankedResults

router = APIRouter(tags=["query"])


@router.post("/documents/{document_id}/search")
async def search_document(
    request: Request,
    document_id: str,
    body: SearchRequest,
    _: None = Depends(verify_api_key),
) -> HybridSearchResult:
    """Run a hybrid search and return the exact, similar and merged result sets unranked.

    Args:
        request (Request): FastAPI request (provides app.state.retriever).
        document_id (str): The plan document to search.
        body (SearchRequest): Query text, plan position and search options.
        _ (None): Auth dependency result (unused).

    Returns:
        HybridSearchResult: The three result collections.
    """
    return await request.app.state.retriever.do_search(document_id, body.query, body.context, body.options)


@router.post("/documents/{document_id}/retrieve")
async def retrieve_document(
    request: Request,
    document_id: str,
    body: SearchRequest,
    _: None = Depends(verify_api_key),
) -> RankedResults:
    """Run a hybrid search and return the results ranked exact first, then by similarity."""
    return await request.app.state.retriever.do_retrieve(document_id, body.query, body.context, body.options)


@router.post("/documents/{document_id}/plan-context")
async def build_plan_context(
    request: Request,
    document_id: str,
    body: PlanContextRequest,
    _: None = Depends(verify_api_key),
) -> PlanContextResponse:
    """Retrieve the plan content relevant to a calendar date.

    The date is mapped onto the plan's year/month/week, the plan query is
    generated from that position (unless one is given), and the ranked
    results are also rendered as a prompt context block.

    Args:
        request (Request): FastAPI request (provides app.state.retriever).
        document_id (str): The plan document to search.
        body (PlanContextRequest): Calendar date, plan start date, optional query and options.
        _ (None): Auth dependency result (unused).

    Returns:
        PlanContextResponse: Plan position, query used, ranked results and formatted context.
    """
    context = PlanCalendar.map_calendar_to_plan_year(body.calendar_date, body.plan_start_date)
    query = body.query or PlanCalendar.build_plan_query(context)
    request.app.state.logging.info(
        "Plan context for document '%s': year %d, month %d, week %d.",
        document_id, context.plan_year, context.plan_month, context.plan_week,
    )

    ranked = await request.app.state.retriever.do_retrieve(
        document_id, query, PlanCalendar.to_time_context(context), body.options
    )
    return PlanContextResponse(
        context=context,
        query=query,
        results=ranked,
        prompt_context=format_plan_context(ranked.results),
    )


@router.post("/plan/calendar")
async def map_calendar_date(
    body: CalendarRequest,
    _: None = Depends(verify_api_key),
) -> PlanYearContext:
    """Map a calendar date onto the plan year, month and week."""
    return PlanCalendar.map_calendar_to_plan_year(body.calendar_date, body.plan_start_date)
