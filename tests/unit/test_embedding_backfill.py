"""Unit tests for EmbeddingBackfill."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kickflip.interfaces.event_index import IEventIndex
from kickflip.models.crawl import BackfillSummary
from kickflip.services.embedding_backfill import EmbeddingBackfill
from kickflip.services.index_writer import IndexWriter
from kickflip.utils.errors import StoreError


@pytest.fixture
def mock_index(sample_events) -> MagicMock:
    index = MagicMock(spec=IEventIndex)
    index.list_unembedded = AsyncMock(return_value=sample_events[:3])
    index.set_embedding = AsyncMock(return_value=True)
    return index


@pytest.fixture
def mock_writer() -> MagicMock:
    writer = MagicMock(spec=IndexWriter)
    writer.embed_documents = AsyncMock(return_value=[[1.0, 0.0], None, [0.0, 1.0]])
    return writer


class TestEmbeddingBackfill:
    @pytest.mark.asyncio
    async def test_embeds_what_it_can(self, mock_index, mock_writer, sample_events) -> None:
        summary = await EmbeddingBackfill(mock_index, mock_writer).run()
        assert summary == BackfillSummary(candidates=3, embedded=2, errors=1)
        written = [call.args[0] for call in mock_index.set_embedding.call_args_list]
        assert written == [sample_events[0].id, sample_events[2].id]

    @pytest.mark.asyncio
    async def test_uses_document_text(self, mock_index, mock_writer, sample_events) -> None:
        await EmbeddingBackfill(mock_index, mock_writer).run()
        texts = mock_writer.embed_documents.call_args.args[0]
        assert texts == [e.embedding_text() for e in sample_events[:3]]

    @pytest.mark.asyncio
    async def test_write_failures_are_counted(self, mock_index, mock_writer) -> None:
        mock_index.set_embedding = AsyncMock(side_effect=[StoreError("locked"), False])
        summary = await EmbeddingBackfill(mock_index, mock_writer).run()
        assert summary.embedded == 0
        assert summary.errors == 3

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, mock_index, mock_writer) -> None:
        mock_index.list_unembedded = AsyncMock(return_value=[])
        summary = await EmbeddingBackfill(mock_index, mock_writer, limit=50).run()
        assert summary == BackfillSummary()
        mock_writer.embed_documents.assert_not_awaited()
        mock_index.list_unembedded.assert_awaited_once_with(50)
