from sqlalchemy import Column, Text, Integer, TIMESTAMP, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from core.utils import generate_id
from .base import Base, JSONType


class Search(Base):
    """
    One sourcing run.

    Tracks:
    - Raw query text and the validated ParsedQuery (``params``)
    - Lifecycle status and monotonic progress (0-100)
    - Stage-tagged errors (parse, scoring model, sourcing)
    - Cached intermediate artifacts (parse response, scoring model payload)
    """
    __tablename__ = 'search'

    id = Column(Text, primary_key=True, default=generate_id)
    organization_id = Column(Text, ForeignKey('organization.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Text, ForeignKey('users.id', ondelete='SET NULL'))

    name = Column(Text, nullable=False, default='Untitled Search')
    query = Column(Text, nullable=False)
    params = Column(JSONType)
    scoring_prompt = Column(Text)

    # pending | parsing | executing | polling | scoring | completed | error
    status = Column(Text, nullable=False, default='pending')
    progress = Column(Integer, nullable=False, default=0)
    status_message = Column(Text)
    error_stage = Column(Text)
    candidates_found = Column(Integer, nullable=False, default=0)

    parse_response = Column(JSONType)
    parse_schema_version = Column(Integer)
    parse_error = Column(Text)
    parse_updated_at = Column(TIMESTAMP(timezone=True))

    scoring_model = Column(JSONType)
    scoring_model_id = Column(Text)
    scoring_model_version = Column(Integer)
    scoring_model_error = Column(Text)
    scoring_model_updated_at = Column(TIMESTAMP(timezone=True))

    sourcing_error = Column(Text)
    sourcing_updated_at = Column(TIMESTAMP(timezone=True))

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    completed_at = Column(TIMESTAMP(timezone=True))

    candidates = relationship("SearchCandidate", back_populates="search", cascade="all, delete-orphan")
    strategies = relationship("SourcingStrategy", back_populates="search", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_search_org_created', 'organization_id', 'created_at'),
        Index('idx_search_status', 'status'),
    )


class SourcingStrategy(Base):
    """
    One discovery strategy run for a search: a provider paging through the
    search expression. Status: pending | executing | completed | error.
    """
    __tablename__ = 'sourcing_strategies'

    id = Column(Text, primary_key=True, default=generate_id)
    search_id = Column(Text, ForeignKey('search.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(Text, nullable=False)
    query = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default='pending')
    pages_fetched = Column(Integer, nullable=False, default=0)
    candidates_found = Column(Integer, nullable=False, default=0)
    error = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    search = relationship("Search", back_populates="strategies")

    __table_args__ = (
        Index('idx_sourcing_strategies_search', 'search_id', 'position'),
    )
