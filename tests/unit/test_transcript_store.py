"""
Tests for transcript lifecycle rules and expiry.
"""

from datetime import timedelta

import pytest

from interview_coach.features.interview_feedback.domain import (
    BadRequestError,
    ErrorCategory,
    TranscriptMessage,
    TranscriptStatus,
)


def _messages(raw):
    return [TranscriptMessage.model_validate(m) for m in raw]


@pytest.mark.asyncio
async def test_create_starts_pending_with_retention_window(transcript_store, clock, interview_messages):
    transcript = await transcript_store.create(
        "user-123", _messages(interview_messages), None
    )

    assert transcript.status == TranscriptStatus.PENDING
    assert transcript.rating is None
    assert transcript.created_at == clock.now
    assert transcript.expires_at == clock.now + timedelta(hours=24)
    assert transcript.generation_claimed_at is None


@pytest.mark.asyncio
async def test_create_rejects_empty_message_list(transcript_store):
    with pytest.raises(BadRequestError):
        await transcript_store.create("user-123", [], None)


def test_message_text_length_limits():
    with pytest.raises(ValueError):
        TranscriptMessage(speaker="user", text="")
    with pytest.raises(ValueError):
        TranscriptMessage(speaker="user", text="x" * 5001)

    assert TranscriptMessage(speaker="user", text="x" * 5000).text


@pytest.mark.asyncio
async def test_validate_ratable_requires_both_speakers(transcript_store):
    transcript = await transcript_store.create(
        "user-123", _messages([{"speaker": "ai", "text": "Why this college?"}]), None
    )

    with pytest.raises(BadRequestError):
        transcript_store.validate_ratable(transcript)


@pytest.mark.asyncio
async def test_is_expired_at_exact_boundary(transcript_store, clock, interview_messages):
    transcript = await transcript_store.create("user-123", _messages(interview_messages), None)

    clock.advance(hours=23, minutes=59)
    assert transcript_store.is_expired(transcript) is False

    clock.advance(minutes=1)
    assert transcript_store.is_expired(transcript) is True


@pytest.mark.asyncio
async def test_claim_only_succeeds_once(transcript_store, interview_messages):
    transcript = await transcript_store.create("user-123", _messages(interview_messages), None)

    first = await transcript_store.claim(transcript.id)
    second = await transcript_store.claim(transcript.id)

    assert first is not None
    assert second is None


@pytest.mark.asyncio
async def test_mark_rated_and_mark_error_only_from_pending(
    transcript_store, interview_messages, rating_factory
):
    transcript = await transcript_store.create("user-123", _messages(interview_messages), None)

    assert await transcript_store.mark_rated(transcript.id, rating_factory()) is True
    assert await transcript_store.mark_error(
        transcript.id, ErrorCategory.UPSTREAM_UNAVAILABLE, "late failure"
    ) is False

    stored = await transcript_store.load_by_id(transcript.id)
    assert stored.status == TranscriptStatus.RATED
    assert stored.rating.overall_rating == 8.2


@pytest.mark.asyncio
async def test_purge_expired_removes_any_status(
    transcript_store, clock, interview_messages, rating_factory
):
    rated = await transcript_store.create("user-123", _messages(interview_messages), None)
    await transcript_store.mark_rated(rated.id, rating_factory())
    errored = await transcript_store.create("user-123", _messages(interview_messages), None)
    await transcript_store.mark_error(errored.id, ErrorCategory.AUTH, "bad key")

    clock.advance(hours=25)
    fresh = await transcript_store.create("user-123", _messages(interview_messages), None)

    deleted = await transcript_store.purge_expired()

    assert deleted == 2
    assert await transcript_store.load_by_id(rated.id) is None
    assert await transcript_store.load_by_id(errored.id) is None
    assert await transcript_store.load_by_id(fresh.id) is not None


@pytest.mark.asyncio
async def test_list_for_owner_newest_first_and_live_only(
    transcript_store, clock, interview_messages
):
    old = await transcript_store.create("user-123", _messages(interview_messages), None)
    clock.advance(hours=20)
    newer = await transcript_store.create("user-123", _messages(interview_messages), None)
    await transcript_store.create("user-456", _messages(interview_messages), None)

    listed = await transcript_store.list_for_owner("user-123")
    assert [t.id for t in listed] == [newer.id, old.id]

    clock.advance(hours=5)
    listed = await transcript_store.list_for_owner("user-123")
    assert [t.id for t in listed] == [newer.id]
