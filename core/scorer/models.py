"""Scoring data structures."""
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt

MAX_REASONS = 5


class CandidateScore(BaseModel):
    """
    Validated LLM verdict for one (search, candidate) pair.

    Out-of-range scores and overlong pros/cons are validation failures;
    nothing is clamped or truncated.
    """
    model_config = ConfigDict(extra="ignore")

    score: StrictInt = Field(ge=0, le=100)
    pros: List[str] = Field(default_factory=list, max_length=MAX_REASONS)
    cons: List[str] = Field(default_factory=list, max_length=MAX_REASONS)


@dataclass
class CandidateScoreResult:
    success: bool
    score: Optional[int] = None
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def ok(cls, verdict: CandidateScore) -> "CandidateScoreResult":
        return cls(success=True, score=verdict.score, pros=list(verdict.pros), cons=list(verdict.cons))

    @classmethod
    def failed(cls, error: str) -> "CandidateScoreResult":
        return cls(success=False, error=error)
