#!/usr/bin/env python3
"""
Unit tests for the background search task manager and web helpers.
"""
import threading
import time
from datetime import datetime, timezone

from unittest.mock import MagicMock, patch

from core.config_loader import AppConfig
from web.backend.exceptions import status_code_for
from web.backend.services.search_service import SearchTaskManager
from web.backend.utils import bearer_token, safe_datetime_iso, safe_int
from core.errors import (
    ReadOnlyAccessError,
    ProviderConfigurationError,
    QueryParseError,
    TalentScoutError,
)


class TestSearchTaskManager:

    def test_one_run_per_search(self):
        ctx = MagicMock()
        ctx.config = AppConfig()
        release = threading.Event()
        started = threading.Event()

        def fake_run(ctx, search_id, token):
            started.set()
            release.wait(5)
            return MagicMock(status="completed", candidates_count=0, scored_count=0)

        manager = SearchTaskManager()
        with patch("web.backend.services.search_service.run_search_pipeline", side_effect=fake_run):
            assert manager.start(ctx, "search-1") is True
            started.wait(5)
            assert manager.start(ctx, "search-1") is False
            assert manager.is_running("search-1")

            assert manager.stop("search-1") is True
            release.set()

            for _ in range(50):
                if not manager.is_running("search-1"):
                    break
                time.sleep(0.05)

        assert manager.is_running("search-1") is False
        assert manager.stop("search-1") is False

    def test_stop_cancels_token(self):
        ctx = MagicMock()
        ctx.config = AppConfig()
        seen = {}
        done = threading.Event()

        def fake_run(ctx, search_id, token):
            seen["token"] = token
            token.stop_event.wait(5)
            done.set()
            return MagicMock(status="error", candidates_count=0, scored_count=0)

        manager = SearchTaskManager()
        with patch("web.backend.services.search_service.run_search_pipeline", side_effect=fake_run):
            manager.start(ctx, "search-2")
            for _ in range(50):
                if "token" in seen:
                    break
                time.sleep(0.05)
            manager.stop("search-2")
            assert done.wait(5)

        assert seen["token"].cancelled is True


class TestWebHelpers:

    def test_bearer_token(self):
        assert bearer_token("Bearer abc") == "abc"
        assert bearer_token("bearer  abc ") == "abc"
        assert bearer_token("Basic abc") is None
        assert bearer_token("Bearer ") is None
        assert bearer_token(None) is None

    def test_safe_helpers(self):
        assert safe_int("7") == 7
        assert safe_int(None) == 0
        assert safe_int("x", default=3) == 3
        assert safe_datetime_iso(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05+00:00"
        assert safe_datetime_iso(None) is None

    def test_status_codes(self):
        assert status_code_for(ReadOnlyAccessError()) == 403
        assert status_code_for(ProviderConfigurationError("llm", "missing")) == 502
        assert status_code_for(QueryParseError("bad")) == 422
        assert status_code_for(TalentScoutError("other")) == 500
        assert safe_datetime_iso(datetime(2026, 1, 2, tzinfo=timezone.utc)).endswith("+00:00")
