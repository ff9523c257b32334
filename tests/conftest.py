import asyncio
import copy
import dataclasses
from datetime import UTC, datetime, timedelta

import pytest

from interview_coach.auth.verify import auth_dependency
from interview_coach.features.interview_feedback.domain import (
    AnalysisServiceError,
    ProcessingState,
    Rating,
    TranscriptStatus,
    UploadedDocument,
)
from interview_coach.features.interview_feedback.services import (
    ContentAggregator,
    RatingOrchestrator,
    SessionManager,
    TranscriptStore,
)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app, user_id: str | None = None):
        if user_id is None:
            app.dependency_overrides[auth_dependency] = auth_override
        else:
            app.dependency_overrides[auth_dependency] = lambda: {"sub": user_id}

    return _apply


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryTranscriptRepository:
    """Same conditional-update semantics as TranscriptRepository, in a dict."""

    def __init__(self):
        self.rows = {}

    async def insert(self, transcript):
        self.rows[transcript.id] = copy.deepcopy(transcript)
        return copy.deepcopy(transcript)

    async def get(self, transcript_id):
        row = self.rows.get(transcript_id)
        return copy.deepcopy(row) if row else None

    async def list_for_owner(self, owner_id, now, limit):
        rows = [
            r
            for r in self.rows.values()
            if r.owner_id == owner_id and r.status != TranscriptStatus.EXPIRED and r.expires_at > now
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def claim(self, transcript_id, now):
        row = self.rows.get(transcript_id)
        if (
            row is None
            or row.status != TranscriptStatus.PENDING
            or row.generation_claimed_at is not None
            or row.expires_at <= now
        ):
            return None
        row.generation_claimed_at = now
        return copy.deepcopy(row)

    async def mark_rated(self, transcript_id, rating, rated_at):
        row = self.rows.get(transcript_id)
        if row is None or row.status != TranscriptStatus.PENDING:
            return False
        row.status = TranscriptStatus.RATED
        row.rating = rating
        row.rated_at = rated_at
        return True

    async def mark_error(self, transcript_id, category, message):
        row = self.rows.get(transcript_id)
        if row is None or row.status != TranscriptStatus.PENDING:
            return False
        row.status = TranscriptStatus.ERROR
        row.error_category = category
        row.error_message = message
        return True

    async def delete_expired(self, now):
        doomed = [
            k
            for k, r in self.rows.items()
            if r.expires_at <= now or r.status == TranscriptStatus.EXPIRED
        ]
        for key in doomed:
            del self.rows[key]
        return len(doomed)


class InMemorySessionRepository:
    def __init__(self):
        self.rows = {}

    async def insert(self, session):
        if any(r.interview_id == session.interview_id for r in self.rows.values()):
            return None
        self.rows[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    async def get(self, session_id):
        row = self.rows.get(session_id)
        return copy.deepcopy(row) if row else None

    async def append_entry(self, session_id, entry, now):
        row = self.rows.get(session_id)
        if row is None:
            return False
        row.transcript_entries.append(entry)
        row.processing.transcription = ProcessingState.COMPLETED
        return True

    async def claim_feedback(self, session_id, now):
        row = self.rows.get(session_id)
        if row is None or row.processing.feedback not in (
            ProcessingState.PENDING,
            ProcessingState.FAILED,
        ):
            return None
        row.processing.feedback = ProcessingState.PROCESSING
        row.processing.analysis = ProcessingState.PROCESSING
        return copy.deepcopy(row)

    async def complete_feedback(self, session_id, rating, overall_score, now):
        row = self.rows.get(session_id)
        if row is None or row.processing.feedback != ProcessingState.PROCESSING:
            return False
        row.processing.feedback = ProcessingState.COMPLETED
        row.processing.analysis = ProcessingState.COMPLETED
        row.feedback = rating
        row.overall_score = overall_score
        row.feedback_generated_at = now
        return True

    async def fail_feedback(self, session_id, now):
        row = self.rows.get(session_id)
        if row is None or row.processing.feedback != ProcessingState.PROCESSING:
            return False
        row.processing.feedback = ProcessingState.FAILED
        row.processing.analysis = ProcessingState.FAILED
        return True


class InMemoryDocumentRepository:
    def __init__(self):
        self.documents: list[UploadedDocument] = []
        self.calls = 0

    def add(self, owner_id, name, text, uploaded_at, status="completed", doc_id=None):
        self.documents.append(
            UploadedDocument(
                id=doc_id or f"doc-{len(self.documents) + 1:03d}",
                owner_id=owner_id,
                name=name,
                extracted_text=text,
                processing_status=status,
                uploaded_at=uploaded_at,
            )
        )

    async def list_eligible(self, owner_id):
        self.calls += 1
        eligible = [
            d
            for d in self.documents
            if d.owner_id == owner_id
            and d.processing_status == "completed"
            and d.extracted_text
            and d.extracted_text.strip()
        ]
        return [dataclasses.replace(d) for d in sorted(eligible, key=lambda d: (d.uploaded_at, d.id))]


def make_rating(overall_rating: float = 8.2) -> Rating:
    return Rating.model_validate(
        {
            "overallRating": overall_rating,
            "strengths": ["Concrete example of leading a team"],
            "weaknesses": ["Answers could be more structured"],
            "recommendations": [
                {
                    "area": "Structure",
                    "suggestion": "Use the STAR method",
                    "priority": "high",
                    "examples": ["Situation: team of 5"],
                }
            ],
            "detailedScores": {
                "contentRelevance": 80,
                "communication": 75,
                "confidence": 70,
                "structure": 60,
                "engagement": 85,
            },
            "summary": "Solid answer with room to add structure.",
        }
    )


class FakeAnalysisService:
    def __init__(self, rating: Rating | None = None):
        self.rating = rating or make_rating()
        self.error: AnalysisServiceError | None = None
        self.calls: list[dict] = []
        self.release: asyncio.Event | None = None
        self.during_call = None

    async def analyze(self, messages, context=None, aggregated_content=None):
        self.calls.append(
            {"messages": list(messages), "context": context, "aggregated_content": aggregated_content}
        )
        # Yield so concurrent callers interleave
        await asyncio.sleep(0)
        if self.release is not None:
            await self.release.wait()
        if self.during_call is not None:
            await self.during_call()
        if self.error:
            raise self.error
        return self.rating


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transcript_repo():
    return InMemoryTranscriptRepository()


@pytest.fixture
def session_repo():
    return InMemorySessionRepository()


@pytest.fixture
def document_repo():
    return InMemoryDocumentRepository()


@pytest.fixture
def fake_analysis():
    return FakeAnalysisService()


@pytest.fixture
def transcript_store(transcript_repo, clock):
    return TranscriptStore(repository=transcript_repo, clock=clock, retention=timedelta(hours=24))


@pytest.fixture
def content_aggregator(document_repo):
    return ContentAggregator(documents=document_repo, default_token_budget=2000)


@pytest.fixture
def rating_orchestrator(transcript_store, content_aggregator, fake_analysis):
    return RatingOrchestrator(
        store=transcript_store, aggregator=content_aggregator, analysis=fake_analysis
    )


@pytest.fixture
def session_manager(session_repo, fake_analysis, clock):
    return SessionManager(repository=session_repo, analysis=fake_analysis, clock=clock)


@pytest.fixture
def rating_factory():
    return make_rating


@pytest.fixture
def interview_messages():
    return [
        {"speaker": "ai", "text": "Tell me about leadership"},
        {"speaker": "user", "text": "I led a team of 5"},
    ]
