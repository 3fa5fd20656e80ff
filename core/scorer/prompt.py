"""Scoring prompt construction."""
from typing import Optional

from core.config_loader import DEFAULT_SCORING_RUBRIC
from core.search.query import ParsedQuery, NOT_SPECIFIED, format_field
from core.sourcing.models import Candidate
from core.scorer.models import MAX_REASONS

MAX_PROMPT_SKILLS = 30


def _or_placeholder(value: Optional[str]) -> str:
    return value.strip() if value and value.strip() else NOT_SPECIFIED


def build_scoring_prompt(
    candidate: Candidate,
    parsed: ParsedQuery,
    rubric: Optional[str] = None
) -> str:
    """
    Prompt embedding the criteria, a compact candidate summary and the rubric.

    Absent criteria and candidate fields render as "Not specified".
    """
    current = candidate.current_experience
    education = candidate.educations[0] if candidate.educations else None
    education_text = None
    if education:
        education_text = ", ".join(
            part for part in (education.degree, education.field_of_study, education.school) if part
        )
    skills = ", ".join(candidate.skills[:MAX_PROMPT_SKILLS])
    rules = rubric.strip() if rubric and rubric.strip() else DEFAULT_SCORING_RUBRIC

    return f"""You are a recruitment AI. Score this candidate against search criteria.

SEARCH CRITERIA:
Job Title: {format_field(parsed.job_title, NOT_SPECIFIED)}
Location: {format_field(parsed.location, NOT_SPECIFIED)}
Skills: {format_field(parsed.skills, NOT_SPECIFIED)}
Experience: {format_field(parsed.years_of_experience, NOT_SPECIFIED)}
Industry: {format_field(parsed.industry, NOT_SPECIFIED)}
Company: {format_field(parsed.company, NOT_SPECIFIED)}

CANDIDATE:
Name: {_or_placeholder(candidate.full_name)}
Current: {_or_placeholder(current.title if current else candidate.headline)} at {_or_placeholder(current.company if current else None)}
Location: {_or_placeholder(candidate.location)}
Skills: {_or_placeholder(skills)}
Experience: {len(candidate.experiences)} positions listed
Education: {_or_placeholder(education_text)}

{rules}

Return ONLY valid JSON (no markdown, no code blocks):
{{
  "score": 75,
  "pros": ["Candidate has 5 years Next.js experience", "Currently in similar role"],
  "cons": ["Location doesn't match", "No finance industry background"]
}}

Rules:
- score: integer from 0 to 100 (0 = poor match, 100 = perfect match)
- pros: at most {MAX_REASONS} specific, concise reasons why this is a good match
- cons: at most {MAX_REASONS} specific, concise reasons why this might not be ideal
- Be specific and reference actual data points
- If criteria not specified in search, don't penalize candidate"""
