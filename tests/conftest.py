"""Shared fixtures: explicit configuration, an in-memory store and a fake embedding client."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingRecord, EmbeddingResult


@pytest.fixture
def logger():
    return logging.getLogger("plan_retrieval.tests")


@pytest.fixture
def make_config(logger):
    """Build a HelperConfig from a plain dict instead of os.environ."""

    def _make(**values):
        return HelperConfig(logger=logger, values={k.upper(): str(v) for k, v in values.items()})

    return _make


@pytest.fixture
def helper_config(make_config):
    return make_config(rag_engine="memory", embed_engine="ollama", embed_ollama_base_url="http://ollama.test")


@pytest_asyncio.fixture
async def memory_store(helper_config):
    store = RAGClientMemory(helper_config=helper_config)
    await store.boot()
    yield store
    await store.close()


@pytest.fixture
def embed_client():
    """Embedding client double returning a fixed vector."""
    client = MagicMock()
    client.ensure_available = MagicMock()
    client.do_embed = AsyncMock(return_value=EmbeddingResult(vector=[1.0, 0.0, 0.0], model="test-model"))
    client.get_engine_name = MagicMock(return_value="fake")
    return client


@pytest.fixture
def make_record():
    """Build an EmbeddingRecord with test defaults."""

    def _make(document_id="doc-1", chunk_index=0, text=None, year=None, month=None, week=None, embedding=None):
        return EmbeddingRecord(
            document_id=document_id,
            chunk_text=text or f"chunk {chunk_index}",
            chunk_index=chunk_index,
            year=year,
            month=month,
            week=week,
            embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
            model="test-model",
        )

    return _make
