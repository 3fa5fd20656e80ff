"""
Unit tests for CreditLedger against a SQLite database.

The concurrency test runs real threads against one file-backed database;
SQLite serializes the writers, so no debit may overdraw the balance.
"""
import threading
from datetime import timedelta

import pytest
from unittest.mock import MagicMock

from core.credits import (
    CreditLedger,
    INSUFFICIENT_CREDITS,
    NOT_AUTHENTICATED,
    NOT_AUTHORIZED,
    INVALID_AMOUNT,
    ORGANIZATION_NOT_FOUND,
    INVALID_CREDIT_TYPE,
    INVALID_TRANSACTION_TYPE,
)
from core.utils import utcnow
from tests import seed_tenant


@pytest.fixture
def analytics():
    return MagicMock()


@pytest.fixture
def ledger(session_factory, analytics):
    return CreditLedger(session_factory, analytics)


class TestDeductCredits:

    def test_successful_deduction(self, ledger, seed, analytics):
        result = ledger.deduct_credits(
            seed.organization_id, seed.owner_id, 3,
            credit_type="export", related_entity_id="export-1", description="CSV export"
        )

        assert result.success is True
        assert result.balance == 7
        tx = result.transaction
        assert tx.type == "consumption"
        assert tx.amount == -3
        assert tx.balance_before == 10
        assert tx.balance_after == 7
        assert tx.balance_after == tx.balance_before + tx.amount
        assert ledger.get_balance(seed.organization_id) == 7

        args, kwargs = analytics.track.call_args
        assert args[0] == seed.owner_id
        assert args[1] == "credits_consumed"
        assert args[2]["amount"] == 3
        assert args[2]["credits_before"] == 10
        assert args[2]["credits_after"] == 7
        assert kwargs["organization_id"] == seed.organization_id

    def test_insufficient_credits_writes_nothing(self, ledger, seed, analytics):
        result = ledger.deduct_credits(seed.organization_id, seed.owner_id, 11)

        assert result.success is False
        assert result.error == INSUFFICIENT_CREDITS
        assert result.balance == 10
        assert ledger.get_balance(seed.organization_id) == 10
        assert ledger.get_history(seed.organization_id) == []
        analytics.track.assert_not_called()

    def test_exact_balance_can_be_spent(self, ledger, seed):
        assert ledger.deduct_credits(seed.organization_id, seed.owner_id, 10).success
        assert ledger.get_balance(seed.organization_id) == 0

    def test_requires_user(self, ledger, seed):
        result = ledger.deduct_credits(seed.organization_id, None, 1)
        assert result.error == NOT_AUTHENTICATED

    def test_requires_membership(self, ledger, seed):
        result = ledger.deduct_credits(seed.organization_id, seed.outsider_id, 1)
        assert result.error == NOT_AUTHORIZED
        assert ledger.get_balance(seed.organization_id) == 10

    @pytest.mark.parametrize("amount", [0, -5, True, 1.5, "3"])
    def test_rejects_invalid_amounts(self, ledger, seed, amount):
        result = ledger.deduct_credits(seed.organization_id, seed.owner_id, amount)
        assert result.error == INVALID_AMOUNT
        assert ledger.get_balance(seed.organization_id) == 10

    def test_rejects_unknown_credit_type(self, ledger, seed, analytics):
        result = ledger.deduct_credits(seed.organization_id, seed.owner_id, 1, credit_type="gold")
        assert result.error == INVALID_CREDIT_TYPE
        assert ledger.get_balance(seed.organization_id) == 10
        assert ledger.get_history(seed.organization_id) == []
        analytics.track.assert_not_called()

    def test_analytics_failure_does_not_undo_debit(self, ledger, seed, analytics):
        analytics.track.side_effect = RuntimeError("stream down")
        result = ledger.deduct_credits(seed.organization_id, seed.owner_id, 1)
        assert result.success is True
        assert ledger.get_balance(seed.organization_id) == 9

    def test_concurrent_deductions_never_overdraw(self, session_factory):
        seed = seed_tenant(session_factory, credits=5)
        ledger = CreditLedger(session_factory, MagicMock())
        barrier = threading.Barrier(10)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            result = ledger.deduct_credits(seed.organization_id, seed.owner_id, 1)
            with lock:
                results.append(result)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        succeeded = [r for r in results if r.success]
        failed = [r for r in results if not r.success]
        assert len(succeeded) == 5
        assert all(r.error == INSUFFICIENT_CREDITS for r in failed)
        assert ledger.get_balance(seed.organization_id) == 0
        assert len(ledger.get_history(seed.organization_id)) == 5
        assert sorted(r.balance for r in succeeded) == [0, 1, 2, 3, 4]


class TestAddAndSetCredits:

    def test_add_credits(self, ledger, seed):
        result = ledger.add_credits(seed.organization_id, 50, transaction_type="purchase", description="Top-up")
        assert result.success is True
        assert result.balance == 60
        assert result.transaction.amount == 50
        assert result.transaction.balance_before == 10

    def test_add_to_unknown_org(self, ledger):
        assert ledger.add_credits("missing", 5).error == ORGANIZATION_NOT_FOUND

    def test_add_rejects_consumption_and_unknown_types(self, ledger, seed):
        assert ledger.add_credits(seed.organization_id, 5, transaction_type="consumption").error == INVALID_TRANSACTION_TYPE
        assert ledger.add_credits(seed.organization_id, 5, credit_type="gold").error == INVALID_CREDIT_TYPE
        assert ledger.get_balance(seed.organization_id) == 10

    def test_deduct_from_unknown_org(self, ledger, seed):
        # member check runs first, so an unknown organization looks unauthorized
        assert ledger.deduct_credits("missing", seed.owner_id, 1).error == NOT_AUTHORIZED

    def test_set_balance_records_difference(self, ledger, seed):
        result = ledger.set_balance(seed.organization_id, 4, user_id=seed.owner_id)
        assert result.balance == 4
        assert result.transaction.amount == -6
        assert result.transaction.type == "manual_grant"

    def test_set_balance_unchanged_writes_nothing(self, ledger, seed):
        result = ledger.set_balance(seed.organization_id, 10)
        assert result.success is True
        assert result.transaction is None
        assert ledger.get_history(seed.organization_id) == []


class TestReporting:

    def test_history_newest_first_with_filters(self, ledger, seed):
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 1, credit_type="export")
        ledger.add_credits(seed.organization_id, 5)
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 2)

        history = ledger.get_history(seed.organization_id)
        assert [tx.amount for tx in history] == [-2, 5, -1]
        assert [tx.amount for tx in ledger.get_history(seed.organization_id, credit_type="export")] == [-1]
        assert len(ledger.get_history(seed.organization_id, transaction_type="consumption")) == 2
        assert [tx.amount for tx in ledger.get_history(seed.organization_id, limit=1, offset=1)] == [5]

    def test_stats(self, ledger, seed):
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 2, credit_type="export")
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 1)
        ledger.add_credits(seed.organization_id, 4)

        stats = ledger.get_stats(seed.organization_id)
        assert stats.balance == 11
        assert stats.total_used == 3
        assert stats.total_added == 4
        assert stats.by_type["export"]["used"] == 2
        assert stats.by_type["general"]["transactions"] == 2

    def test_usage_for_period(self, ledger, seed):
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 2)
        ledger.deduct_credits(seed.organization_id, seed.owner_id, 3, credit_type="export")
        start = utcnow() - timedelta(hours=1)
        end = utcnow() + timedelta(hours=1)

        assert ledger.get_usage_for_period(seed.organization_id, start, end) == 5
        assert ledger.get_usage_for_period(seed.organization_id, start, end, credit_type="export") == 3
        assert ledger.get_usage_for_period(seed.organization_id, end, end + timedelta(hours=1)) == 0

    def test_balance_of_unknown_org_is_zero(self, ledger):
        assert ledger.get_balance("missing") == 0


class TestLinkedInOpen:

    def test_charges_and_tracks(self, ledger, seed, analytics):
        result = ledger.consume_for_linkedin_open(
            seed.organization_id, seed.owner_id, "cand-1", "https://linkedin.com/in/jane", cost=2
        )
        assert result.success is True
        assert result.transaction.related_entity_id == "cand-1"
        assert result.transaction.metadata_ == {"linkedin_url": "https://linkedin.com/in/jane"}
        properties = analytics.track.call_args[0][2]
        assert properties["action"] == "linkedin_open"
        assert properties["candidate_id"] == "cand-1"
