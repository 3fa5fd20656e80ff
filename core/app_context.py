import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from core.analytics import AnalyticsTracker
from core.config_loader import AppConfig
from core.credits import CreditLedger
from core.llm.openai_service import OpenAIService
from core.scorer import ScoringService
from core.scoring_model import ScoringModelClient, ScoringModelStep
from core.search.lifecycle import SearchStateMachine
from core.search.parser import QueryParser
from core.sourcing import SourcingCoordinator, SerperClient, LinkedInScraperClient
from database.database import build_session_factory
from realtime import CompositePublisher, LocalEventBroker, RedisEventPublisher

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Provider clients are built once per process here and passed
    explicitly. DB access should be obtained via search_uow() with
    ``session_factory`` inside each unit of work.
    """
    config: AppConfig
    session_factory: sessionmaker
    state_machine: SearchStateMachine
    coordinator: SourcingCoordinator
    ledger: CreditLedger
    analytics: AnalyticsTracker
    event_broker: LocalEventBroker
    scoring_model_step: ScoringModelStep
    query_parser: Optional[QueryParser] = None
    scoring_service: Optional[ScoringService] = None

    @classmethod
    def build(cls, config: AppConfig, session_factory: Optional[sessionmaker] = None) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            session_factory: Existing session factory (tests); built from
                ``config.database.url`` when omitted

        Returns:
            Fully wired AppContext instance
        """
        session_factory = session_factory or build_session_factory(config.database.url)

        # LLM (parse + scoring); both steps are unavailable without a key
        llm = cls._build_llm(config)
        query_parser = None
        scoring_service = None
        if llm is not None:
            query_parser = QueryParser(
                llm,
                model=config.llm.parse_model,
                max_tokens=config.llm.max_tokens
            )
            if config.scoring.enabled:
                scoring_service = ScoringService(
                    llm,
                    model=config.llm.scoring_model,
                    max_tokens=config.llm.max_tokens,
                    default_rubric=config.scoring.default_rubric
                )

        event_broker = LocalEventBroker()
        sinks = [event_broker.publish]
        if config.realtime.redis_url:
            sinks.append(RedisEventPublisher(config.realtime.redis_url, config.realtime.channel_prefix))

        state_machine = SearchStateMachine(
            session_factory,
            publisher=CompositePublisher(sinks),
            max_error_length=config.scoring.max_error_length
        )

        analytics = AnalyticsTracker(
            redis_url=config.analytics.redis_url,
            stream=config.analytics.stream,
            enabled=config.analytics.enabled
        )

        scoring_model_client = None
        if config.scoring.calculation_url:
            scoring_model_client = ScoringModelClient(config.scoring.calculation_url)

        return cls(
            config=config,
            session_factory=session_factory,
            state_machine=state_machine,
            coordinator=cls._build_coordinator(config),
            ledger=CreditLedger(session_factory, analytics),
            analytics=analytics,
            event_broker=event_broker,
            scoring_model_step=ScoringModelStep(
                session_factory,
                scoring_model_client,
                max_error_length=config.scoring.max_error_length
            ),
            query_parser=query_parser,
            scoring_service=scoring_service
        )

    @staticmethod
    def _build_llm(config: AppConfig) -> Optional[OpenAIService]:
        llm_config = config.llm
        if not llm_config.api_key:
            logger.warning("LLM API key not configured; query parsing and scoring are unavailable")
            return None
        return OpenAIService(
            api_key=llm_config.api_key,
            base_url=llm_config.base_url,
            default_model=llm_config.parse_model,
            default_max_tokens=llm_config.max_tokens,
            temperature=llm_config.temperature
        )

    @staticmethod
    def _build_coordinator(config: AppConfig) -> SourcingCoordinator:
        """Build discovery + enrichment clients from configuration."""
        discovery_config = config.discovery
        enrichment_config = config.enrichment

        discovery = SerperClient(
            api_key=discovery_config.api_key,
            api_url=discovery_config.api_url,
            results_per_page=discovery_config.results_per_page,
            request_timeout_seconds=discovery_config.request_timeout_seconds
        )
        enrichment = LinkedInScraperClient(
            api_key=enrichment_config.api_key,
            api_url=enrichment_config.api_url,
            api_host=enrichment_config.api_host,
            request_timeout_seconds=enrichment_config.request_timeout_seconds
        )
        return SourcingCoordinator(
            [discovery],
            enrichment,
            max_pages=discovery_config.max_pages,
            page_delay_seconds=discovery_config.page_delay_seconds,
            enrichment_delay_seconds=enrichment_config.delay_seconds,
            site_pattern=discovery_config.site_pattern
        )
