"""
Scoring Service - LLM evaluation of one candidate against a ParsedQuery.

Every failure (provider, unreadable output, schema violation) comes back
as an unsuccessful CandidateScoreResult; nothing here raises into the
pipeline.
"""
import logging
from typing import Optional

import openai
from pydantic import ValidationError

from core.llm.interfaces import LLMProvider
from core.llm.response_parsing import extract_json_object
from core.llm.system_prompts import SCORING_SYSTEM_PROMPT
from core.scorer.models import CandidateScore, CandidateScoreResult
from core.scorer.prompt import build_scoring_prompt
from core.search.query import ParsedQuery
from core.sourcing.models import Candidate

logger = logging.getLogger(__name__)


class ScoringService:
    def __init__(
        self,
        llm: LLMProvider,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        default_rubric: Optional[str] = None
    ):
        self.llm = llm
        self.model = model
        self.max_tokens = max_tokens
        self.default_rubric = default_rubric

    def score(
        self,
        candidate: Candidate,
        parsed: ParsedQuery,
        custom_prompt: Optional[str] = None
    ) -> CandidateScoreResult:
        """
        Score a candidate.

        Args:
            candidate: Canonical candidate profile
            parsed: Search criteria
            custom_prompt: Caller rubric; the configured default when None

        Returns:
            CandidateScoreResult with success=False and an error on any failure
        """
        prompt = build_scoring_prompt(candidate, parsed, custom_prompt or self.default_rubric)

        try:
            completion = self.llm.complete(
                prompt,
                model=self.model,
                max_tokens=self.max_tokens,
                system_prompt=SCORING_SYSTEM_PROMPT
            )
        except (openai.APIError, ValueError) as e:
            logger.warning(f"Scoring call failed for {candidate.public_identifier}: {e}")
            return CandidateScoreResult.failed(f"LLM request failed: {e}")

        try:
            payload = extract_json_object(completion)
        except ValueError as e:
            logger.warning(f"Unreadable scoring response for {candidate.public_identifier}: {e}")
            return CandidateScoreResult.failed(f"Malformed scoring response: {e}")

        try:
            verdict = CandidateScore.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            field_name = ".".join(str(p) for p in first.get("loc", ())) or "response"
            message = f"Invalid scoring response at {field_name}: {first.get('msg', str(e))}"
            logger.warning(f"{message} ({candidate.public_identifier})")
            return CandidateScoreResult.failed(message)

        return CandidateScoreResult.ok(verdict)
