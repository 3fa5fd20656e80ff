from sqlalchemy import Column, Text, Integer, TIMESTAMP, ForeignKey, Index, func

from core.utils import generate_id
from .base import Base, JSONType


class CreditTransaction(Base):
    """
    Immutable ledger entry.

    ``amount`` is signed: negative for consumption, positive for grants and
    purchases. ``balance_after = balance_before + amount``.
    """
    __tablename__ = 'credit_transactions'

    id = Column(Text, primary_key=True, default=generate_id)
    organization_id = Column(Text, ForeignKey('organization.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Text, ForeignKey('users.id', ondelete='SET NULL'))
    # subscription_grant | manual_grant | purchase | consumption
    type = Column(Text, nullable=False)
    # general | contact_lookup | export | linkedin_reveal | email_reveal | phone_reveal
    credit_type = Column(Text, nullable=False, default='general')
    amount = Column(Integer, nullable=False)
    balance_before = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    related_entity_id = Column(Text)
    description = Column(Text)
    metadata_ = Column('metadata', JSONType)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_credit_tx_org_created', 'organization_id', 'created_at'),
        Index('idx_credit_tx_type', 'credit_type'),
    )
