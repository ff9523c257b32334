"""
Content Aggregator

Concatenates the extracted text of a user's processed uploads into one
block that fits a token budget, for use as supplementary analysis context.

Rules:
- Fresh query on every call, scoped to the owner; nothing is cached
- Oldest upload first (ties broken by id), each rendered as "=== name ===\\ntext"
- Whole documents while they fit; the first one that does not is cut at the
  last sentence or line boundary and followed by TRUNCATION_MARKER
- 1 token ~= 4 characters
"""

import math
import re

from interview_coach.config import settings
from interview_coach.features.interview_feedback.domain import (
    AggregatedContent,
    AggregationMetadata,
    ContentStats,
    UploadedDocument,
)
from interview_coach.features.interview_feedback.repository.document_repository import (
    DocumentRepository,
    document_repository,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CHARS_PER_TOKEN = 4
DOCUMENT_SEPARATOR = "\n\n"
TRUNCATION_MARKER = "\n[... content truncated to fit token budget ...]"

# End of a sentence (punctuation followed by whitespace) or end of a line
_BOUNDARY = re.compile(r"[.!?](?=\s)|\n")


def render_document(document: UploadedDocument) -> str:
    return f"=== {document.name} ===\n{document.extracted_text.strip()}"


def cut_at_boundary(block: str, limit: int, min_length: int = 0) -> str:
    """
    Longest prefix of `block` no longer than `limit` that ends on a sentence or
    line boundary past `min_length`. Falls back to a hard cut when there is none.
    """
    if limit <= min_length:
        return ""
    window = block[:limit]

    cut = None
    for match in _BOUNDARY.finditer(window):
        if match.end() > min_length:
            cut = match.end()

    if cut is None:
        return window.rstrip()
    return window[:cut].rstrip()


class ContentAggregator:
    def __init__(
        self,
        documents: DocumentRepository = document_repository,
        default_token_budget: int | None = None,
    ):
        self.documents = documents
        self.default_token_budget = default_token_budget or settings.CONTENT_TOKEN_BUDGET

    async def aggregate(self, owner_id: str, token_budget: int | None = None) -> AggregatedContent:
        """
        Build the supplementary text block for one user.

        Returns empty text with files_found=0 when the user has nothing
        eligible. Datastore failures propagate as DatabaseError.
        """
        budget_tokens = self.default_token_budget if token_budget is None else token_budget
        budget_chars = max(0, budget_tokens) * CHARS_PER_TOKEN

        docs = await self.documents.list_eligible(owner_id)
        metadata = AggregationMetadata(
            files_found=len(docs),
            total_available_chars=sum(len(d.extracted_text) for d in docs),
        )
        if not docs:
            return AggregatedContent(text="", metadata=metadata)

        parts: list[str] = []
        used = 0

        for doc in docs:
            block = render_document(doc)
            separator = len(DOCUMENT_SEPARATOR) if parts else 0

            if used + separator + len(block) <= budget_chars:
                parts.append(block)
                used += separator + len(block)
                metadata.files_used += 1
                continue

            metadata.truncated = True
            room = budget_chars - used - separator - len(TRUNCATION_MARKER)
            header_length = block.index("\n") + 1
            partial = cut_at_boundary(block, room, min_length=header_length)
            if partial:
                parts.append(partial + TRUNCATION_MARKER)
                metadata.files_used += 1
            elif parts and used + len(TRUNCATION_MARKER) <= budget_chars:
                parts[-1] += TRUNCATION_MARKER
            break

        text = DOCUMENT_SEPARATOR.join(parts)

        logger.info(
            "Aggregated uploaded content",
            owner_id=owner_id,
            files_found=metadata.files_found,
            files_used=metadata.files_used,
            output_chars=len(text),
            budget_chars=budget_chars,
            truncated=metadata.truncated,
        )

        return AggregatedContent(text=text, metadata=metadata)

    async def content_stats(self, owner_id: str) -> ContentStats:
        docs = await self.documents.list_eligible(owner_id)
        total_characters = sum(len(d.extracted_text) for d in docs)
        return ContentStats(
            file_count=len(docs),
            total_words=sum(len(d.extracted_text.split()) for d in docs),
            total_characters=total_characters,
            estimated_tokens=math.ceil(total_characters / CHARS_PER_TOKEN),
        )


content_aggregator = ContentAggregator()
