from sqlalchemy import Column, Text, Integer, Boolean, TIMESTAMP, ForeignKey, UniqueConstraint, Index, CheckConstraint, func
from sqlalchemy.orm import relationship

from core.utils import generate_id
from .base import Base


class Organization(Base):
    """
    Tenant boundary. Owns members, the subscription, the credit balance,
    searches and share links.
    """
    __tablename__ = 'organization'

    id = Column(Text, primary_key=True, default=generate_id)
    name = Column(Text, nullable=False)
    slug = Column(Text, unique=True)
    logo = Column(Text)
    credits = Column(Integer, nullable=False, default=0, server_default='0')
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    members = relationship("Member", back_populates="organization", cascade="all, delete-orphan")
    share_links = relationship("OrganizationShareLink", back_populates="organization", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('credits >= 0', name='ck_organization_credits_non_negative'),
    )


class Member(Base):
    __tablename__ = 'member'

    id = Column(Text, primary_key=True, default=generate_id)
    organization_id = Column(Text, ForeignKey('organization.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Text, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = Column(Text, nullable=False, default='member')  # owner | admin | member | viewer
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('organization_id', 'user_id', name='uq_member_org_user'),
        Index('idx_member_user', 'user_id'),
    )


class Subscription(Base):
    """Billing subscription mirrored from the payment provider."""
    __tablename__ = 'subscription'

    id = Column(Text, primary_key=True, default=generate_id)
    plan = Column(Text, nullable=False)
    reference_id = Column(Text, ForeignKey('organization.id', ondelete='CASCADE'), nullable=False)
    stripe_customer_id = Column(Text)
    stripe_subscription_id = Column(Text)
    # active | trialing | past_due | canceled | incomplete | incomplete_expired | paused | none
    status = Column(Text, nullable=False, default='incomplete')
    period_start = Column(TIMESTAMP(timezone=True))
    period_end = Column(TIMESTAMP(timezone=True))
    trial_start = Column(TIMESTAMP(timezone=True))
    trial_end = Column(TIMESTAMP(timezone=True))
    cancel_at_period_end = Column(Boolean, default=False)
    seats = Column(Integer)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_subscription_reference', 'reference_id'),
    )


class OrganizationShareLink(Base):
    """
    Tokenized read-only preview of an organization's searches.

    Only the SHA256 of the token is stored.
    """
    __tablename__ = 'organization_share_link'

    id = Column(Text, primary_key=True, default=generate_id)
    organization_id = Column(Text, ForeignKey('organization.id', ondelete='CASCADE'), nullable=False)
    created_by_user_id = Column(Text, ForeignKey('users.id', ondelete='SET NULL'))
    token_hash = Column(Text, nullable=False, unique=True)
    expires_at = Column(TIMESTAMP(timezone=True))
    max_views = Column(Integer)
    view_count = Column(Integer, nullable=False, default=0)
    revoked_at = Column(TIMESTAMP(timezone=True))
    last_viewed_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    organization = relationship("Organization", back_populates="share_links")

    __table_args__ = (
        Index('idx_share_link_org', 'organization_id'),
    )
