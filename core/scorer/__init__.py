#!/usr/bin/env python3
"""
Scoring Module - LLM-backed candidate evaluation.

Public API:
- ScoringService: scores one candidate against a ParsedQuery
- CandidateScore: validated score/pros/cons verdict
- CandidateScoreResult: success flag plus verdict or error

- models.py: Data structures
- prompt.py: Prompt construction with "Not specified" placeholders
- service.py: ScoringService orchestrator
"""

from core.scorer.models import CandidateScore, CandidateScoreResult
from core.scorer.service import ScoringService

__all__ = ['ScoringService', 'CandidateScore', 'CandidateScoreResult']
