"""
Read-only access to uploaded documents and their extracted text.
"""

from interview_coach.db.helpers import fetch_all, with_db_retry
from interview_coach.features.interview_feedback.domain import UploadedDocument


class DocumentRepository:
    @with_db_retry(max_retries=2)
    async def list_eligible(self, owner_id: str) -> list[UploadedDocument]:
        """Owner's fully processed documents with text, oldest upload first."""
        query = """
            SELECT id, owner_id, name, extracted_text, processing_status, uploaded_at
            FROM uploaded_files
            WHERE owner_id = %s
              AND processing_status = 'completed'
              AND extracted_text IS NOT NULL
              AND length(btrim(extracted_text)) > 0
            ORDER BY uploaded_at ASC, id ASC
        """
        rows = await fetch_all(query, (owner_id,))
        return [
            UploadedDocument(
                id=str(r["id"]),
                owner_id=str(r["owner_id"]),
                name=r["name"],
                extracted_text=r["extracted_text"],
                processing_status=r["processing_status"],
                uploaded_at=r["uploaded_at"],
            )
            for r in rows
        ]


document_repository = DocumentRepository()
