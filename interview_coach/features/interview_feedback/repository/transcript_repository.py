"""
Persistence layer for interview transcripts.

Every lifecycle transition is a single conditional UPDATE keyed by id, so two
concurrent requests can never both observe a successful claim or both move a
record out of `pending`.
"""

import uuid
from datetime import datetime

from psycopg.types.json import Jsonb

from interview_coach.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from interview_coach.features.interview_feedback.domain import (
    ErrorCategory,
    InterviewContext,
    Rating,
    Transcript,
    TranscriptMessage,
    TranscriptStatus,
)


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class TranscriptRepository:
    """SQL access for the interview_transcripts table."""

    SELECT_COLUMNS = """
        id, owner_id, messages, context, status, rating, error_category,
        error_message, generation_claimed_at, created_at, rated_at, expires_at
    """

    @staticmethod
    def _row_to_transcript(row: dict | None) -> Transcript | None:
        if not row:
            return None

        return Transcript(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            messages=[TranscriptMessage.model_validate(m) for m in row["messages"]],
            context=InterviewContext.model_validate(row.get("context") or {}),
            status=TranscriptStatus(row["status"]),
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            rating=Rating.model_validate(row["rating"]) if row.get("rating") else None,
            rated_at=row.get("rated_at"),
            error_category=(
                ErrorCategory(row["error_category"]) if row.get("error_category") else None
            ),
            error_message=row.get("error_message"),
            generation_claimed_at=row.get("generation_claimed_at"),
        )

    async def insert(self, transcript: Transcript) -> Transcript:
        query = f"""
            INSERT INTO interview_transcripts (
                id, owner_id, messages, context, status, created_at, expires_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {self.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                uuid.UUID(transcript.id),
                transcript.owner_id,
                Jsonb([m.model_dump(mode="json") for m in transcript.messages]),
                Jsonb(transcript.context.model_dump(mode="json", exclude_none=True)),
                transcript.status.value,
                transcript.created_at,
                transcript.expires_at,
            ),
        )
        return self._row_to_transcript(row)

    @with_db_retry(max_retries=2)
    async def get(self, transcript_id: str) -> Transcript | None:
        parsed = _parse_id(transcript_id)
        if parsed is None:
            return None

        query = f"SELECT {self.SELECT_COLUMNS} FROM interview_transcripts WHERE id = %s"
        return self._row_to_transcript(await fetch_one(query, (parsed,)))

    @with_db_retry(max_retries=2)
    async def list_for_owner(self, owner_id: str, now: datetime, limit: int) -> list[Transcript]:
        query = f"""
            SELECT {self.SELECT_COLUMNS}
            FROM interview_transcripts
            WHERE owner_id = %s AND status <> 'expired' AND expires_at > %s
            ORDER BY created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (owner_id, now, limit))
        return [self._row_to_transcript(r) for r in rows]

    async def claim(self, transcript_id: str, now: datetime) -> Transcript | None:
        """Mark a pending, unexpired, unclaimed transcript as being generated."""
        query = f"""
            UPDATE interview_transcripts
            SET generation_claimed_at = %s
            WHERE id = %s
              AND status = 'pending'
              AND generation_claimed_at IS NULL
              AND expires_at > %s
            RETURNING {self.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (now, uuid.UUID(transcript_id), now))
        return self._row_to_transcript(row)

    async def mark_rated(self, transcript_id: str, rating: Rating, rated_at: datetime) -> bool:
        query = """
            UPDATE interview_transcripts
            SET status = 'rated', rating = %s, rated_at = %s,
                error_category = NULL, error_message = NULL
            WHERE id = %s AND status = 'pending'
        """
        updated = await execute_query(
            query,
            (Jsonb(rating.model_dump(mode="json")), rated_at, uuid.UUID(transcript_id)),
        )
        return updated == 1

    async def mark_error(
        self, transcript_id: str, category: ErrorCategory, message: str
    ) -> bool:
        query = """
            UPDATE interview_transcripts
            SET status = 'error', error_category = %s, error_message = %s
            WHERE id = %s AND status = 'pending'
        """
        updated = await execute_query(
            query, (category.value, message[:1000], uuid.UUID(transcript_id))
        )
        return updated == 1

    async def delete_expired(self, now: datetime) -> int:
        query = """
            DELETE FROM interview_transcripts
            WHERE expires_at <= %s OR status = 'expired'
        """
        return await execute_query(query, (now,))


transcript_repository = TranscriptRepository()
