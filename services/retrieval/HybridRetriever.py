"""Hybrid retrieval over the chunks of one plan document.

Combines an exact (year, month, week) metadata lookup with a cosine
similarity search so that a question about "week 2 of March in year 1"
finds both the chunks tagged exactly with that position and semantically
related chunks from elsewhere in the plan.
"""

import asyncio

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import (
    HybridSearchResult,
    RankedResults,
    SearchFilters,
    SearchOptions,
    SearchResult,
    TimeContext,
)


def rank_results(results: list[SearchResult]) -> list[SearchResult]:
    """Order results for consumption: exact matches first, then by similarity descending.

    The sort is stable, so exact matches keep their chunk order.
    """
    return sorted(results, key=lambda r: (r.match_type != "exact", -r.similarity))


def format_plan_context(results: list[SearchResult]) -> str:
    """Render ranked results as a prompt context block.

    Each result becomes "[EXACT MATCH]" or "[SIMILAR: NN%]" followed by the
    chunk text on the next line. Blocks are separated by a blank line.
    """
    blocks = []
    for result in results:
        if result.match_type == "exact":
            label = "[EXACT MATCH]"
        else:
            label = f"[SIMILAR: {round(result.similarity * 100)}%]"
        blocks.append(f"{label}\n{result.chunk_text}")
    return "\n\n".join(blocks)


class HybridRetriever:
    """Runs the exact + similarity search pair for a question and a plan position."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._timeout = helper_config.get_optional_number_val("RETRIEVAL_TIMEOUT")

    ##########################################
    ################ SEARCH ##################
    ##########################################

    async def do_search(
        self,
        document_id: str,
        query_text: str,
        context: TimeContext,
        options: SearchOptions | None = None,
    ) -> HybridSearchResult:
        """Exact-match and similarity search within one document.

        The similarity stage filters on month and week only, so chunks from
        other plan years with the same month and week are eligible.

        Args:
            document_id (str): The plan document to search.
            query_text (str): The natural-language question.
            context (TimeContext): Plan year, month and week of interest.
            options (SearchOptions | None): Limits and similarity threshold.

        Returns:
            HybridSearchResult: Exact matches, similar chunks above the
                threshold, and their de-duplicated union (exact first, unsorted).

        Raises:
            ProviderUnavailable: If the embedding provider has no credential configured.
            ProviderError: If embedding the query fails. No partial result is returned.
            StoreUnavailable: If the exact lookup fails.
            asyncio.TimeoutError: If RETRIEVAL_TIMEOUT is set and exceeded.
        """
        operation = self._search(document_id, query_text, context, options or SearchOptions())
        if self._timeout is not None:
            return await asyncio.wait_for(operation, timeout=self._timeout)
        return await operation

    async def do_retrieve(
        self,
        document_id: str,
        query_text: str,
        context: TimeContext,
        options: SearchOptions | None = None,
    ) -> RankedResults:
        """Hybrid search followed by caller-side ranking.

        Returns:
            RankedResults: The merged results ranked exact first, then by similarity.
        """
        hybrid = await self.do_search(document_id, query_text, context, options)
        ranked = rank_results(hybrid.all_relevant)
        exact_count = sum(1 for r in ranked if r.match_type == "exact")
        return RankedResults(
            results=ranked,
            exact_count=exact_count,
            similar_count=len(ranked) - exact_count,
            total=len(ranked),
        )

    async def _search(
        self,
        document_id: str,
        query_text: str,
        context: TimeContext,
        options: SearchOptions,
    ) -> HybridSearchResult:
        exact_matches = await self._rag_client.do_query_by_exact_time(
            document_id, context.plan_year, context.month, context.week
        )
        if options.exact_match_limit is not None:
            exact_matches = exact_matches[:options.exact_match_limit]

        query = await self._embed_client.do_embed(query_text)
        candidates = await self._rag_client.do_query_by_similarity(
            query.vector,
            document_id,
            filters=SearchFilters(month=context.month, week=context.week),
            limit=options.similar_limit,
        )
        similar_chunks = [r for r in candidates if r.similarity >= options.min_similarity]

        exact_ids = {r.id for r in exact_matches}
        all_relevant = [r.model_copy(update={"match_type": "exact"}) for r in exact_matches]
        all_relevant += [
            r.model_copy(update={"match_type": "similar"}) for r in similar_chunks if r.id not in exact_ids
        ]

        self.logging.debug(
            "Hybrid search in document '%s' (year %d, month %d, week %d): %d exact, %d similar.",
            document_id, context.plan_year, context.month, context.week, len(exact_matches), len(similar_chunks),
        )
        return HybridSearchResult(
            exact_matches=exact_matches,
            similar_chunks=similar_chunks,
            all_relevant=all_relevant,
        )
