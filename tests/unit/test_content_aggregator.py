"""
Tests for token-budgeted aggregation of uploaded document text.
"""

from datetime import UTC, datetime, timedelta

import pytest

from interview_coach.features.interview_feedback.services.content_aggregator import (
    TRUNCATION_MARKER,
    cut_at_boundary,
)

OWNER = "user-123"
T0 = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_no_documents_returns_empty_text(content_aggregator):
    result = await content_aggregator.aggregate(OWNER)

    assert result.text == ""
    assert result.metadata.files_found == 0
    assert result.metadata.files_used == 0
    assert result.metadata.truncated is False


@pytest.mark.asyncio
async def test_documents_ordered_by_upload_time(content_aggregator, document_repo):
    document_repo.add(OWNER, "b.txt", "Beta.", T0 + timedelta(minutes=5))
    document_repo.add(OWNER, "a.txt", "Alpha.", T0)

    result = await content_aggregator.aggregate(OWNER)

    assert result.text == "=== a.txt ===\nAlpha.\n\n=== b.txt ===\nBeta."
    assert result.metadata.files_found == 2
    assert result.metadata.files_used == 2
    assert result.metadata.truncated is False
    assert result.metadata.total_available_chars == len("Alpha.") + len("Beta.")


@pytest.mark.asyncio
async def test_same_upload_time_breaks_ties_by_id(content_aggregator, document_repo):
    document_repo.add(OWNER, "second.txt", "Two.", T0, doc_id="doc-b")
    document_repo.add(OWNER, "first.txt", "One.", T0, doc_id="doc-a")

    result = await content_aggregator.aggregate(OWNER)

    assert result.text.index("first.txt") < result.text.index("second.txt")


@pytest.mark.asyncio
async def test_ineligible_documents_are_skipped(content_aggregator, document_repo):
    document_repo.add(OWNER, "ready.txt", "Usable text.", T0)
    document_repo.add(OWNER, "processing.pdf", "Not yet.", T0, status="processing")
    document_repo.add(OWNER, "blank.txt", "   ", T0)
    document_repo.add("someone-else", "theirs.txt", "Private.", T0)

    result = await content_aggregator.aggregate(OWNER)

    assert result.metadata.files_found == 1
    assert "ready.txt" in result.text
    assert "processing.pdf" not in result.text
    assert "theirs.txt" not in result.text


@pytest.mark.asyncio
async def test_overflowing_document_cut_at_sentence_boundary(content_aggregator, document_repo):
    text = (
        "First sentence here. Second sentence is here. "
        "Third sentence goes on and on and on without stopping for a very long while."
    )
    document_repo.add(OWNER, "cv.txt", text, T0)

    result = await content_aggregator.aggregate(OWNER, token_budget=30)

    assert result.text == (
        "=== cv.txt ===\nFirst sentence here. Second sentence is here." + TRUNCATION_MARKER
    )
    assert result.metadata.truncated is True
    assert result.metadata.files_used == 1
    assert len(result.text) <= 30 * 4


@pytest.mark.asyncio
async def test_later_documents_dropped_after_truncation(content_aggregator, document_repo):
    document_repo.add(OWNER, "a.txt", "Short note.", T0)
    document_repo.add(
        OWNER, "b.txt", "Line one is here\nLine two is here\n" + "x" * 200, T0 + timedelta(1)
    )
    document_repo.add(OWNER, "c.txt", "Never reached.", T0 + timedelta(2))

    result = await content_aggregator.aggregate(OWNER, token_budget=40)

    assert result.text == (
        "=== a.txt ===\nShort note.\n\n"
        "=== b.txt ===\nLine one is here\nLine two is here" + TRUNCATION_MARKER
    )
    assert result.metadata.files_found == 3
    assert result.metadata.files_used == 2
    assert result.metadata.truncated is True
    assert len(result.text) <= 40 * 4


@pytest.mark.asyncio
async def test_hard_cut_when_no_boundary(content_aggregator, document_repo):
    document_repo.add(OWNER, "big.txt", "x" * 500, T0)

    result = await content_aggregator.aggregate(OWNER, token_budget=30)

    assert result.text == "=== big.txt ===\n" + "x" * 56 + TRUNCATION_MARKER
    assert len(result.text) == 30 * 4


@pytest.mark.asyncio
async def test_zero_budget_includes_nothing(content_aggregator, document_repo):
    document_repo.add(OWNER, "a.txt", "Alpha.", T0)

    result = await content_aggregator.aggregate(OWNER, token_budget=0)

    assert result.text == ""
    assert result.metadata.files_found == 1
    assert result.metadata.files_used == 0
    assert result.metadata.truncated is True


@pytest.mark.asyncio
async def test_every_call_reads_fresh_documents(content_aggregator, document_repo):
    first = await content_aggregator.aggregate(OWNER)
    document_repo.add(OWNER, "new.txt", "Just uploaded.", T0)
    second = await content_aggregator.aggregate(OWNER)

    assert first.metadata.files_found == 0
    assert second.metadata.files_found == 1
    assert document_repo.calls == 2


@pytest.mark.asyncio
async def test_content_stats(content_aggregator, document_repo):
    document_repo.add(OWNER, "a.txt", "one two three", T0)
    document_repo.add(OWNER, "b.txt", "four five", T0)

    stats = await content_aggregator.content_stats(OWNER)

    assert stats.file_count == 2
    assert stats.total_words == 5
    assert stats.total_characters == 22
    assert stats.estimated_tokens == 6


def test_cut_at_boundary_prefers_last_boundary():
    block = "=== h ===\nOne. Two! Three? Four"

    assert cut_at_boundary(block, limit=len(block), min_length=10) == "=== h ===\nOne. Two! Three?"


def test_cut_at_boundary_no_room_returns_empty():
    assert cut_at_boundary("=== h ===\nText.", limit=5, min_length=10) == ""
