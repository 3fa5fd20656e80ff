#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional


class CreateSearchRequest(BaseModel):
    """Request to start a new candidate search."""
    query: str = Field(..., min_length=1, max_length=2000, description="Free-text description of the ideal candidate")
    scoring_prompt: Optional[str] = Field(
        None,
        max_length=5000,
        description="Custom scoring rubric; the configured default is used when omitted"
    )


class ScoringModelRequest(BaseModel):
    """Request to build the scoring model of a search."""
    search_id: str = Field(..., min_length=1)


class LinkedInOpenRequest(BaseModel):
    """Request to open (and pay for) a candidate's LinkedIn profile."""
    candidate_id: str = Field(..., min_length=1)
    linkedin_url: str = Field(..., min_length=1)
