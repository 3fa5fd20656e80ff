from sqlalchemy import Column, Text, Integer, TIMESTAMP, ForeignKey, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship

from core.utils import generate_id
from .base import Base, JSONType


class Candidate(Base):
    """
    Canonical candidate profile, shared across searches and keyed by the
    public profile identifier.
    """
    __tablename__ = 'candidates'

    id = Column(Text, primary_key=True, default=generate_id)
    public_identifier = Column(Text, nullable=False, unique=True)
    linkedin_url = Column(Text, nullable=False)

    full_name = Column(Text)
    first_name = Column(Text)
    last_name = Column(Text)
    headline = Column(Text)
    summary = Column(Text)
    photo_url = Column(Text)
    location = Column(Text)
    follower_count = Column(Integer)
    connection_count = Column(Integer)

    experiences = Column(JSONType, nullable=False, default=list)
    skills = Column(JSONType, nullable=False, default=list)
    educations = Column(JSONType, nullable=False, default=list)
    certifications = Column(JSONType, nullable=False, default=list)
    languages = Column(JSONType, nullable=False, default=list)
    honors = Column(JSONType, nullable=False, default=list)

    source_data = Column(JSONType)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    search_links = relationship("SearchCandidate", back_populates="candidate")


class SearchCandidate(Base):
    """Per (search, candidate) result with the LLM score."""
    __tablename__ = 'search_candidates'

    id = Column(Text, primary_key=True, default=generate_id)
    search_id = Column(Text, ForeignKey('search.id', ondelete='CASCADE'), nullable=False)
    candidate_id = Column(Text, ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False)
    # Discovery provider (and strategy run) that first found the candidate
    source_provider = Column(Text, nullable=False, default='serper')
    sourcing_strategy_id = Column(Text, ForeignKey('sourcing_strategies.id', ondelete='SET NULL'))

    match_score = Column(Integer)
    pros = Column(JSONType, nullable=False, default=list)
    cons = Column(JSONType, nullable=False, default=list)
    scoring_error = Column(Text)
    scoring_updated_at = Column(TIMESTAMP(timezone=True))

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    search = relationship("Search", back_populates="candidates")
    candidate = relationship("Candidate", back_populates="search_links")

    __table_args__ = (
        UniqueConstraint('search_id', 'candidate_id', name='uq_search_candidate'),
        Index('idx_search_candidates_score', 'search_id', 'match_score'),
    )
