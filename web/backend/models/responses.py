#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any


class SearchCreatedResponse(BaseModel):
    """Response after a search has been accepted."""
    success: bool = True
    search_id: str
    status: str
    message: str


class SearchDetailResponse(BaseModel):
    """Full state of one search."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "search_id": "550e8400-e29b-41d4-a716-446655440000",
                "name": "Senior Backend Engineer",
                "query": "Senior backend engineer with Go and Kubernetes in Berlin",
                "status": "scoring",
                "progress": 82,
                "candidates_found": 9,
                "created_at": "2026-02-01T12:00:00+00:00"
            }
        }
    )

    search_id: str
    name: str
    query: str
    parsed_query: Optional[Dict[str, Any]] = None
    scoring_prompt: Optional[str] = None
    status: str
    progress: int = Field(ge=0, le=100)
    status_message: Optional[str] = None
    error_stage: Optional[str] = None
    parse_error: Optional[str] = None
    scoring_model_error: Optional[str] = None
    sourcing_error: Optional[str] = None
    candidates_found: int = 0
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class SearchSummary(BaseModel):
    search_id: str
    name: str
    status: str
    progress: int
    candidates_found: int
    created_at: Optional[str] = None


class RecentSearchesResponse(BaseModel):
    searches: List[SearchSummary]
    count: int


class SearchProgressResponse(BaseModel):
    """Pull view of search progress; same shape as the realtime payload."""
    search_id: str
    status: str
    progress: int = Field(ge=0, le=100)
    message: Optional[str] = None
    total: int
    scored: int
    unscored: int
    errors: int
    excellent: int
    good: int
    fair: int
    is_scoring_complete: bool
    error: Optional[str] = None
    error_stage: Optional[str] = None


class SearchRunResponse(BaseModel):
    success: bool
    search_id: str
    status: str
    message: str


class CandidateResult(BaseModel):
    """One scored (or pending) candidate of a search."""
    search_candidate_id: str
    candidate_id: str
    public_identifier: str
    linkedin_url: str
    full_name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    photo_url: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    match_score: Optional[int] = Field(None, ge=0, le=100)
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    scoring_error: Optional[str] = None


class CandidatesResponse(BaseModel):
    candidates: List[CandidateResult]
    total: int
    page: int
    limit: int
    has_more: bool


class SourcingStrategyItem(BaseModel):
    """One discovery strategy run: a provider paging through the search expression."""
    id: str
    position: int
    name: str
    query: str
    status: str
    pages_fetched: int = 0
    candidates_found: int = 0
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SourcingStrategiesResponse(BaseModel):
    search_id: str
    strategies: List[SourcingStrategyItem]


class ScoringModelResponse(BaseModel):
    success: bool = True
    search_id: str
    scoring_model_id: str
    scoring_model_version: Optional[int] = None


class CreditBalanceResponse(BaseModel):
    organization_id: str
    balance: int


class CreditTransactionItem(BaseModel):
    id: str
    type: str
    credit_type: str
    amount: int
    balance_before: int
    balance_after: int
    related_entity_id: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


class CreditHistoryResponse(BaseModel):
    transactions: List[CreditTransactionItem]
    count: int


class CreditConsumeResponse(BaseModel):
    success: bool
    balance: int
    transaction_id: str
