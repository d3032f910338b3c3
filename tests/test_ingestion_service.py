"""Tests for the ingestion pipeline: chunk, embed concurrently, store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from services.ingestion.IngestionService import IngestionService
from shared.exceptions import IngestionFailed, ProviderError, ProviderUnavailable
from shared.models.embedding import EmbeddingResult

PLAN_TEXT = "Year 1\nJanuary\nWeek 1\nDid the thing.\nWeek 2\nDid another thing."


@pytest.fixture
def service(helper_config, embed_client, memory_store):
    return IngestionService(helper_config=helper_config, embed_client=embed_client, rag_client=memory_store)


@pytest.mark.asyncio
async def test_ingest_stores_every_chunk(service, memory_store):
    """Test that each chunk becomes a record tagged like its chunk."""
    report = await service.do_ingest("doc-1", PLAN_TEXT)

    assert report.chunks_total == 6
    assert report.chunks_embedded == 6
    assert report.chunks_failed == 0
    assert report.model == "test-model"
    assert len(report.record_ids) == 6

    exact = await memory_store.do_query_by_exact_time("doc-1", 1, 1, 2)
    assert [(r.chunk_index, r.chunk_text) for r in exact] == [(4, "Week 2"), (5, "Did another thing.")]
    assert exact[1].metadata["section_type"] == "week"


@pytest.mark.asyncio
async def test_failed_chunks_are_skipped(service, embed_client, memory_store):
    """Test that a chunk whose embedding fails is reported and not stored."""

    async def embed(text):
        if text == "Did the thing.":
            raise ProviderError("rate limited", status_code=429, transient=True)
        return EmbeddingResult(vector=[1.0, 0.0, 0.0], model="test-model")

    embed_client.do_embed = AsyncMock(side_effect=embed)

    report = await service.do_ingest("doc-1", PLAN_TEXT)

    assert report.chunks_embedded == 5
    assert report.chunks_failed == 1
    assert report.failures[0].chunk_index == 3
    assert "rate limited" in report.failures[0].error
    assert [r.chunk_index for r in await memory_store.do_query_by_exact_time("doc-1", 1, 1, 1)] == [2]


@pytest.mark.asyncio
async def test_all_chunks_failing_writes_nothing(service, embed_client, memory_store, make_record):
    """Test that a total failure raises and keeps the previous records."""
    await memory_store.do_replace_document("doc-1", [make_record(year=1, month=1, week=1)])
    embed_client.do_embed = AsyncMock(side_effect=ProviderError("down", status_code=500, transient=True))

    with pytest.raises(IngestionFailed) as exc_info:
        await service.do_ingest("doc-1", PLAN_TEXT)

    assert exc_info.value.report.chunks_failed == 6
    assert len(await memory_store.do_query_by_exact_time("doc-1", 1, 1, 1)) == 1


@pytest.mark.asyncio
async def test_min_success_ratio(make_config, embed_client, memory_store):
    """Test that the configured success ratio is enforced."""
    calls = 0

    async def embed(text):
        nonlocal calls
        calls += 1
        if calls % 2 == 0:
            raise ProviderError("flaky")
        return EmbeddingResult(vector=[1.0, 0.0, 0.0], model="test-model")

    embed_client.do_embed = AsyncMock(side_effect=embed)
    service = IngestionService(make_config(ingest_min_success_ratio="0.9"), embed_client, memory_store)

    with pytest.raises(IngestionFailed):
        await service.do_ingest("doc-1", PLAN_TEXT)


@pytest.mark.asyncio
async def test_missing_credentials_fail_fast(service, embed_client):
    """Test that an unavailable provider is raised before any chunk is embedded."""
    embed_client.ensure_available.side_effect = ProviderUnavailable("no key")

    with pytest.raises(ProviderUnavailable):
        await service.do_ingest("doc-1", PLAN_TEXT)
    embed_client.do_embed.assert_not_called()


@pytest.mark.asyncio
async def test_blank_document(service):
    """Test that a document without text is rejected."""
    with pytest.raises(IngestionFailed) as exc_info:
        await service.do_ingest("doc-1", "  \n\n Page 1 of 2 \n")
    assert exc_info.value.report.chunks_total == 0


@pytest.mark.asyncio
async def test_embedding_concurrency_is_bounded(make_config, embed_client, memory_store):
    """Test that no more than INGEST_EMBED_CONCURRENCY requests run at once."""
    in_flight = 0
    peak = 0

    async def embed(text):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return EmbeddingResult(vector=[1.0, 0.0, 0.0], model="test-model")

    embed_client.do_embed = AsyncMock(side_effect=embed)
    service = IngestionService(make_config(ingest_embed_concurrency=2), embed_client, memory_store)

    report = await service.do_ingest("doc-1", PLAN_TEXT)

    assert report.chunks_embedded == 6
    assert peak == 2


@pytest.mark.asyncio
async def test_reingest_replaces_records(service, memory_store):
    """Test that ingesting again supersedes the earlier records."""
    await service.do_ingest("doc-1", PLAN_TEXT)
    await service.do_ingest("doc-1", "Year 2\nMarch\nWeek 1\nNew plan.")

    assert await memory_store.do_query_by_exact_time("doc-1", 1, 1, 1) == []
    assert len(await memory_store.do_query_by_exact_time("doc-1", 2, 3, 1)) == 2


@pytest.mark.asyncio
async def test_remove(service):
    await service.do_ingest("doc-1", PLAN_TEXT)
    assert await service.do_remove("doc-1") == 6


@pytest.mark.asyncio
async def test_document_locks_are_released_after_use(service, memory_store):
    """Test that concurrent ingests of many documents leave no per-document locks behind."""
    await asyncio.gather(*[service.do_ingest(f"doc-{i}", PLAN_TEXT) for i in range(5)])
    await service.do_remove("doc-0")

    assert len(service._locks) == 0
    assert len(memory_store._locks) == 0
