"""
Persistence layer for interview sessions.

The feedback flag is the claim: only a row whose feedback_status is pending or
failed can be moved to processing, and only a processing row can complete or
fail.
"""

import uuid
from datetime import datetime

from psycopg.types.json import Jsonb

from interview_coach.db.helpers import execute_query, fetch_one, with_db_retry
from interview_coach.features.interview_feedback.domain import (
    ProcessingFlags,
    ProcessingState,
    Rating,
    Session,
    SessionEntry,
)


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SessionRepository:
    """SQL access for the interview_sessions table."""

    SELECT_COLUMNS = """
        id, owner_id, interview_id, status, transcription_status, analysis_status,
        feedback_status, transcript_entries, feedback, overall_score,
        feedback_generated_at, created_at
    """

    @staticmethod
    def _row_to_session(row: dict | None) -> Session | None:
        if not row:
            return None

        return Session(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            interview_id=row["interview_id"],
            status=row["status"],
            processing=ProcessingFlags(
                transcription=ProcessingState(row["transcription_status"]),
                analysis=ProcessingState(row["analysis_status"]),
                feedback=ProcessingState(row["feedback_status"]),
            ),
            transcript_entries=[
                SessionEntry.model_validate(e) for e in row.get("transcript_entries") or []
            ],
            created_at=row["created_at"],
            feedback=Rating.model_validate(row["feedback"]) if row.get("feedback") else None,
            overall_score=row.get("overall_score"),
            feedback_generated_at=row.get("feedback_generated_at"),
        )

    async def insert(self, session: Session) -> Session | None:
        """Insert a session; returns None when the interview already has one."""
        query = f"""
            INSERT INTO interview_sessions (
                id, owner_id, interview_id, status, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (interview_id) DO NOTHING
            RETURNING {self.SELECT_COLUMNS}
        """
        row = await fetch_one(
            query,
            (
                uuid.UUID(session.id),
                session.owner_id,
                session.interview_id,
                session.status,
                session.created_at,
                session.created_at,
            ),
        )
        return self._row_to_session(row)

    @with_db_retry(max_retries=2)
    async def get(self, session_id: str) -> Session | None:
        parsed = _parse_id(session_id)
        if parsed is None:
            return None

        query = f"SELECT {self.SELECT_COLUMNS} FROM interview_sessions WHERE id = %s"
        return self._row_to_session(await fetch_one(query, (parsed,)))

    async def append_entry(self, session_id: str, entry: SessionEntry, now: datetime) -> bool:
        query = """
            UPDATE interview_sessions
            SET transcript_entries = transcript_entries || %s,
                transcription_status = 'completed',
                updated_at = %s
            WHERE id = %s
        """
        updated = await execute_query(
            query, (Jsonb([entry.model_dump(mode="json")]), now, uuid.UUID(session_id))
        )
        return updated == 1

    async def claim_feedback(self, session_id: str, now: datetime) -> Session | None:
        query = f"""
            UPDATE interview_sessions
            SET feedback_status = 'processing',
                analysis_status = 'processing',
                updated_at = %s
            WHERE id = %s AND feedback_status IN ('pending', 'failed')
            RETURNING {self.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (now, uuid.UUID(session_id)))
        return self._row_to_session(row)

    async def complete_feedback(
        self, session_id: str, rating: Rating, overall_score: int, now: datetime
    ) -> bool:
        query = """
            UPDATE interview_sessions
            SET feedback_status = 'completed',
                analysis_status = 'completed',
                feedback = %s,
                overall_score = %s,
                feedback_generated_at = %s,
                updated_at = %s
            WHERE id = %s AND feedback_status = 'processing'
        """
        updated = await execute_query(
            query,
            (
                Jsonb(rating.model_dump(mode="json")),
                overall_score,
                now,
                now,
                uuid.UUID(session_id),
            ),
        )
        return updated == 1

    async def fail_feedback(self, session_id: str, now: datetime) -> bool:
        query = """
            UPDATE interview_sessions
            SET feedback_status = 'failed',
                analysis_status = 'failed',
                updated_at = %s
            WHERE id = %s AND feedback_status = 'processing'
        """
        updated = await execute_query(query, (now, uuid.UUID(session_id)))
        return updated == 1


session_repository = SessionRepository()
