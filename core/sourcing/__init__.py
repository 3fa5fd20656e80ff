"""Sourcing module - discovery, enrichment and mapping into canonical candidates."""
from core.sourcing.models import (
    Candidate,
    SourcingResult,
    SourcingFailure,
    DiscoveryResult,
    StrategyRun,
    StrategyStatus,
)
from core.sourcing.coordinator import SourcingCoordinator, build_discovery_query
from core.sourcing.serper_client import SerperClient
from core.sourcing.linkedin_scraper import LinkedInScraperClient

__all__ = [
    'Candidate',
    'SourcingResult',
    'SourcingFailure',
    'DiscoveryResult',
    'StrategyRun',
    'StrategyStatus',
    'SourcingCoordinator',
    'build_discovery_query',
    'SerperClient',
    'LinkedInScraperClient',
]
