"""
Canonical sourcing shapes.

Provider payloads are mapped into these models field by field; every
sub-collection defaults to an empty list and never holds None.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator

from core.utils import generate_id


class Experience(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    company_url: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    is_current: bool = False


class Education(BaseModel):
    school: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None


class Certification(BaseModel):
    name: Optional[str] = None
    authority: Optional[str] = None
    certificate_id: Optional[str] = None
    url: Optional[str] = None


class Candidate(BaseModel):
    public_identifier: str = Field(min_length=1)
    profile_url: str
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    summary: Optional[str] = None
    photo_url: Optional[str] = None
    location: Optional[str] = None
    follower_count: Optional[int] = None
    connection_count: Optional[int] = None

    experiences: List[Experience] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    educations: List[Education] = Field(default_factory=list)
    certifications: List[Certification] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    honors: List[str] = Field(default_factory=list)

    source_data: Optional[Dict[str, Any]] = None

    @field_validator(
        "experiences", "skills", "educations", "certifications", "languages", "honors",
        mode="before"
    )
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    @property
    def current_experience(self) -> Optional[Experience]:
        """Most recent role: the first current one, else the first listed."""
        for experience in self.experiences:
            if experience.is_current:
                return experience
        return self.experiences[0] if self.experiences else None


@dataclass
class SourcingFailure:
    input: str
    reason: str


class StrategyStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class StrategyRun:
    """
    One discovery provider's pass over the search expression.

    A run that fetched at least one page is completed even when a later
    page failed; ``error`` then holds that page's failure.
    """
    provider: str
    query: str
    position: int = 0
    id: str = field(default_factory=generate_id)
    status: StrategyStatus = StrategyStatus.PENDING
    pages_fetched: int = 0
    candidates_found: int = 0
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (StrategyStatus.COMPLETED, StrategyStatus.ERROR)


@dataclass
class DiscoveryResult:
    identifiers: List[str] = field(default_factory=list)
    pages_fetched: int = 0
    failed_pages: List[SourcingFailure] = field(default_factory=list)
    strategies: List[StrategyRun] = field(default_factory=list)
    # identifier -> strategy that found it first
    sources: Dict[str, StrategyRun] = field(default_factory=dict)


@dataclass
class SourcingResult:
    """Structured partial result: enriched candidates plus per-input failures."""
    succeeded: List[Candidate] = field(default_factory=list)
    failed: List[SourcingFailure] = field(default_factory=list)
    discovery: Optional[DiscoveryResult] = None
