"""
Unit tests for AppContext wiring from configuration.
"""
import pytest
from unittest.mock import patch

from core.app_context import AppContext
from core.config_loader import AppConfig
from core.search.parser import QueryParser
from core.scorer import ScoringService
from core.scoring_model import ScoringModelClient
from realtime import RedisEventPublisher


class TestAppContextBuild:

    def test_without_llm_key(self, session_factory):
        ctx = AppContext.build(AppConfig(), session_factory=session_factory)

        assert ctx.query_parser is None
        assert ctx.scoring_service is None
        assert ctx.scoring_model_step.client is None
        assert ctx.session_factory is session_factory
        assert ctx.coordinator.max_pages == 1

    def test_with_llm_key_and_calculation_url(self, session_factory):
        config = AppConfig(
            llm={"api_key": "sk-test", "parse_model": "parse-model", "scoring_model": "score-model"},
            scoring={"calculation_url": "http://calc/model"},
            discovery={"max_pages": 4},
        )
        ctx = AppContext.build(config, session_factory=session_factory)

        assert isinstance(ctx.query_parser, QueryParser)
        assert ctx.query_parser.model == "parse-model"
        assert isinstance(ctx.scoring_service, ScoringService)
        assert ctx.scoring_service.model == "score-model"
        assert isinstance(ctx.scoring_model_step.client, ScoringModelClient)
        assert ctx.coordinator.max_pages == 4

    def test_scoring_can_be_disabled(self, session_factory):
        config = AppConfig(llm={"api_key": "sk-test"}, scoring={"enabled": False})
        ctx = AppContext.build(config, session_factory=session_factory)
        assert ctx.query_parser is not None
        assert ctx.scoring_service is None

    def test_redis_sink_added_when_configured(self, session_factory):
        config = AppConfig(realtime={"redis_url": "redis://localhost:6379/0"})
        ctx = AppContext.build(config, session_factory=session_factory)
        sinks = ctx.state_machine.publisher.publishers
        assert len(sinks) == 2
        assert isinstance(sinks[1], RedisEventPublisher)

    def test_stage_errors_use_the_configured_length(self, session_factory):
        assert AppContext.build(AppConfig(), session_factory=session_factory).state_machine.max_error_length == 100

        config = AppConfig(scoring={"max_error_length": 60})
        ctx = AppContext.build(config, session_factory=session_factory)
        assert ctx.state_machine.max_error_length == 60
        assert ctx.scoring_model_step.max_error_length == 60

    def test_discovery_providers_are_a_list(self, session_factory):
        ctx = AppContext.build(AppConfig(), session_factory=session_factory)
        assert [p.name for p in ctx.coordinator.discovery_providers] == ["serper"]
