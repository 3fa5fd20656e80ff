from database.repositories.base import BaseRepository
from database.repositories.organization import OrganizationRepository
from database.repositories.search import SearchRepository, ScoreCounts
from database.repositories.candidate import CandidateRepository
from database.repositories.credit import CreditRepository
from database.repositories.strategy import SourcingStrategyRepository

__all__ = [
    'BaseRepository',
    'OrganizationRepository',
    'SearchRepository',
    'ScoreCounts',
    'CandidateRepository',
    'CreditRepository',
    'SourcingStrategyRepository',
]
