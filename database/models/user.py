from sqlalchemy import Column, Text, Boolean, TIMESTAMP, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from core.utils import generate_id
from .base import Base


class User(Base):
    """
    User account. Credentials live with the external auth provider.
    """
    __tablename__ = 'users'

    id = Column(Text, primary_key=True, default=generate_id)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text)
    email_verified = Column(Boolean, nullable=False, default=False)
    image = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    memberships = relationship("Member", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    """Session issued by the auth provider; the bearer token identifies the caller."""
    __tablename__ = 'auth_session'

    id = Column(Text, primary_key=True, default=generate_id)
    token = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    active_organization_id = Column(Text, ForeignKey('organization.id', ondelete='SET NULL'))
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    ip_address = Column(Text)
    user_agent = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index('idx_auth_session_user', 'user_id'),
    )
