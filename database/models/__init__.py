from .base import Base
from .tenant import Organization, Member, Subscription, OrganizationShareLink
from .user import User, AuthSession
from .search import Search, SourcingStrategy
from .candidate import Candidate, SearchCandidate
from .credit import CreditTransaction

__all__ = [
    'Base',
    'Organization',
    'Member',
    'Subscription',
    'OrganizationShareLink',
    'User',
    'AuthSession',
    'Search',
    'SourcingStrategy',
    'Candidate',
    'SearchCandidate',
    'CreditTransaction',
]
