"""
Analysis Service client.

Sends an interview transcript (plus optional supplementary document text) to
OpenAI chat completions and validates the JSON feedback report it returns.

Exactly one request is made per call: SDK retries are disabled and every
failure is classified into an ErrorCategory so callers can persist it.

Usage:
    from interview_coach.features.interview_feedback.services.analysis_service import (
        analysis_service,
    )

    rating = await analysis_service.analyze(messages, context, aggregated_content)
"""

import json
from collections.abc import Sequence

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from interview_coach.config import settings
from interview_coach.features.interview_feedback.domain import (
    AnalysisServiceError,
    ErrorCategory,
    InterviewContext,
    Rating,
    SessionEntry,
    TranscriptMessage,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


class AnalysisService:
    """
    Interview feedback analysis backed by an OpenAI chat model.

    The client is created on first use so the application can start (and
    tests can import) without an API key configured.
    """

    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            if not settings.OPENAI_API_KEY:
                raise AnalysisServiceError(
                    "OPENAI_API_KEY not configured in settings", ErrorCategory.AUTH
                )

            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
                max_retries=0,
            )
            logger.info(
                "OpenAI client initialized",
                model=settings.OPENAI_MODEL,
                timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
            )
        return self.client

    def _get_system_message(self, context: InterviewContext) -> str:
        interview_type = context.interview_type or "general"
        difficulty = context.difficulty or "intermediate"
        duration = context.duration_minutes or 30
        profile = context.user_profile
        major = (profile.target_major if profile else None) or "General Studies"

        profile_lines = []
        if profile:
            if profile.grade:
                profile_lines.append(f"- Student Grade: {profile.grade}")
            if profile.target_colleges:
                profile_lines.append(f"- Target Colleges: {', '.join(profile.target_colleges)}")
            if profile.strengths:
                profile_lines.append(f"- Known Strengths: {', '.join(profile.strengths)}")
            if profile.weaknesses:
                profile_lines.append(f"- Areas for Improvement: {', '.join(profile.weaknesses)}")

        return f"""### Role
You are an experienced interview coach and admissions counselor specialising in {interview_type} interviews for students targeting {major}.
Analyze the interview transcript and give constructive, specific feedback.

### Interview Context
- Interview Type: {interview_type}
- Difficulty Level: {difficulty}
- Target Major/Field: {major}
- Interview Duration: {duration} minutes
{chr(10).join(profile_lines)}

### Scoring (0-100 each)
1. contentRelevance: how well answers address the questions
2. communication: clarity and articulation
3. confidence: composure and presence
4. structure: organisation of answers (STAR method etc.)
5. engagement: enthusiasm and connection with the interviewer

### Output Requirements
- 3-5 strengths and 3-5 weaknesses, each tied to the transcript
- 3-5 recommendations with priority low|medium|high
- overallRating between 1 and 10
- Return ONLY valid JSON with this structure:
{{
  "overallRating": 7.5,
  "strengths": ["..."],
  "weaknesses": ["..."],
  "recommendations": [
    {{"area": "...", "suggestion": "...", "priority": "high", "examples": ["..."]}}
  ],
  "detailedScores": {{
    "contentRelevance": 75,
    "communication": 80,
    "confidence": 70,
    "structure": 65,
    "engagement": 85
  }},
  "summary": "2-3 sentence summary"
}}"""

    def _build_user_message(
        self,
        messages: Sequence[TranscriptMessage | SessionEntry],
        aggregated_content: str | None,
    ) -> str:
        questions = "\n\n".join(m.text for m in messages if m.speaker == "ai")
        responses = "\n\n".join(m.text for m in messages if m.speaker == "user")

        user_message = f"""### Interview Questions
{questions}

### Candidate Responses
{responses}"""

        if aggregated_content:
            user_message += f"""

### Candidate Background Documents
{aggregated_content}"""

        return user_message

    async def analyze(
        self,
        messages: Sequence[TranscriptMessage | SessionEntry],
        context: InterviewContext | None = None,
        aggregated_content: str | None = None,
    ) -> Rating:
        """
        Request one feedback report for a transcript.

        Raises:
            AnalysisServiceError: classified failure (auth, rate-limit,
                upstream-unavailable, malformed-output)
        """
        context = context or InterviewContext()
        client = self._get_client()

        logger.info(
            "Requesting interview analysis",
            model=settings.OPENAI_MODEL,
            message_count=len(messages),
            has_supplementary_content=bool(aggregated_content),
        )

        try:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": self._get_system_message(context)},
                    {
                        "role": "user",
                        "content": self._build_user_message(messages, aggregated_content),
                    },
                ],
                max_tokens=settings.OPENAI_MAX_TOKENS,
                temperature=settings.OPENAI_TEMPERATURE,
                response_format={"type": "json_object"},
            )

        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.error("OpenAI authentication failed", error=str(e))
            raise AnalysisServiceError(
                "Analysis service authentication failed", ErrorCategory.AUTH
            ) from e

        except openai.RateLimitError as e:
            retry_after = _retry_after_from(e)
            logger.warning("OpenAI rate limit hit", retry_after=retry_after, error=str(e))
            raise AnalysisServiceError(
                "Analysis service rate limit exceeded",
                ErrorCategory.RATE_LIMIT,
                retry_after=retry_after,
            ) from e

        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            logger.warning(
                "OpenAI unreachable", error=str(e), error_type=type(e).__name__
            )
            raise AnalysisServiceError(
                "Analysis service unavailable", ErrorCategory.UPSTREAM_UNAVAILABLE
            ) from e

        except openai.APIError as e:
            logger.error(
                "OpenAI API error",
                error=str(e),
                status_code=getattr(e, "status_code", None),
            )
            raise AnalysisServiceError(
                f"Analysis service error: {e}", ErrorCategory.UPSTREAM_UNAVAILABLE
            ) from e

        rating = self._parse_rating(response)

        logger.info(
            "Interview analysis completed",
            overall_rating=rating.overall_rating,
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return rating

    def _parse_rating(self, response) -> Rating:
        if not response.choices or not response.choices[0].message.content:
            raise AnalysisServiceError(
                "Empty response from analysis service", ErrorCategory.MALFORMED_OUTPUT
            )

        raw = response.choices[0].message.content.strip()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Analysis output is not JSON", response_length=len(raw))
            raise AnalysisServiceError(
                "Invalid JSON from analysis service", ErrorCategory.MALFORMED_OUTPUT
            ) from e

        try:
            return Rating.model_validate(payload)
        except ValidationError as e:
            logger.error("Analysis output failed validation", error_count=e.error_count())
            raise AnalysisServiceError(
                "Analysis output does not match the feedback schema",
                ErrorCategory.MALFORMED_OUTPUT,
            ) from e


def _retry_after_from(error: openai.RateLimitError) -> int:
    response = getattr(error, "response", None)
    header = response.headers.get("retry-after") if response is not None else None
    try:
        return max(1, int(float(header)))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS


# Global service instance
analysis_service = AnalysisService()
