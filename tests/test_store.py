"""Tests for the ledger and market stores."""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import make_market, make_user
from parimutuel_core.errors import InsufficientFunds, InvalidMarket, InvalidOutcome, MarketNotOpen, UserNotFound
from parimutuel_core.store import LedgerStore, MarketStore


class TestLedgerStore:
    def test_new_user_has_zero_balance(self, db_session):
        user = LedgerStore(db_session).create_user("ana")
        assert str(user.balance) == "0.00"

    def test_apply_delta_credit_and_debit(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        ledger = LedgerStore(db_session)
        ledger.apply_delta(user_id, Decimal("-40"), "BET_PLACED")
        assert ledger.get_balance(user_id) == Decimal("60.00")

    def test_apply_delta_rejects_overdraft(self, db_session):
        user_id = make_user(db_session, "ana", "10")
        ledger = LedgerStore(db_session)
        with pytest.raises(InsufficientFunds) as exc_info:
            ledger.apply_delta(user_id, Decimal("-10.01"), "BET_PLACED")
        assert exc_info.value.balance == Decimal("10.00")
        assert exc_info.value.required == Decimal("10.01")
        assert ledger.get_balance(user_id) == Decimal("10.00")

    def test_transaction_amount_is_positive(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        tx = LedgerStore(db_session).apply_delta(user_id, Decimal("-25"), "WITHDRAW", status="PENDING")
        assert tx.amount == Decimal("25.00")
        assert tx.type == "WITHDRAW"
        assert tx.status == "PENDING"

    def test_unknown_type_rejected(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        with pytest.raises(ValueError):
            LedgerStore(db_session).apply_delta(user_id, Decimal("1"), "BONUS")

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFound):
            LedgerStore(db_session).get_balance(7)

    def test_history_newest_first(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        ledger = LedgerStore(db_session)
        ledger.apply_delta(user_id, Decimal("-10"), "BET_PLACED", reference="position:1")
        ledger.apply_delta(user_id, Decimal("15"), "PAYOUT", reference="position:1")
        db_session.commit()
        assert [tx.type for tx in ledger.history(user_id)] == ["PAYOUT", "BET_PLACED", "DEPOSIT"]
        assert len(ledger.history(user_id, limit=1)) == 1

    def test_settle_pending_credit(self, db_session):
        user_id = make_user(db_session, "ana")
        ledger = LedgerStore(db_session)
        tx = ledger.record_pending(user_id, Decimal("50"), "DEPOSIT", reference="chg_1")
        assert ledger.get_balance(user_id) == Decimal("0")
        ledger.settle_pending_credit(tx)
        db_session.commit()
        assert tx.status == "COMPLETED"
        assert ledger.get_balance(user_id) == Decimal("50.00")
        with pytest.raises(ValueError):
            ledger.settle_pending_credit(tx)


class TestMarketStore:
    def test_create_market_starts_open_and_empty(self, db_session):
        market = MarketStore(db_session).create_market("Election", ["A", "B", "C"], category="POLITICS")
        assert market.status == "OPEN"
        assert market.outcomes == ["A", "B", "C"]
        assert market.outcome_pools == {"A": 0, "B": 0, "C": 0}
        assert str(market.total_pool) == "0.00"
        assert [str(p) for p in market.outcome_pools.values()] == ["0.00", "0.00", "0.00"]
        assert market.resolution_result is None

    def test_outcome_labels_are_cleaned(self, db_session):
        market = MarketStore(db_session).create_market("Q", [" SIM ", "", "NÃO", "   "])
        assert market.outcomes == ["SIM", "NÃO"]

    @pytest.mark.parametrize("outcomes", [["ONLY"], ["YES", "YES"], ["", " "], []])
    def test_bad_outcomes_rejected(self, db_session, outcomes):
        with pytest.raises(InvalidMarket):
            MarketStore(db_session).create_market("Q", outcomes)

    def test_blank_title_rejected(self, db_session):
        with pytest.raises(InvalidMarket):
            MarketStore(db_session).create_market("  ", ["YES", "NO"])

    def test_outcome_order_preserved_after_reload(self, db_session):
        market_id = make_market(db_session, outcomes=("Zeta", "Alpha", "Mid"))
        assert MarketStore(db_session).get_market(market_id).outcomes == ["Zeta", "Alpha", "Mid"]

    def test_pool_update_keeps_total_in_step(self, db_session):
        market_id = make_market(db_session, pools={"YES": "30", "NO": "10.50"})
        market = MarketStore(db_session).get_market(market_id)
        assert market.total_pool == Decimal("40.50")
        assert market.total_pool == sum(market.outcome_pools.values())

    def test_pool_update_unknown_outcome(self, db_session):
        markets = MarketStore(db_session)
        market = markets.get_market(make_market(db_session))
        with pytest.raises(InvalidOutcome):
            markets.commit_pool_update(market, "MAYBE", Decimal("1"))

    def test_close_market_only_from_open(self, db_session):
        markets = MarketStore(db_session)
        market = markets.get_market(make_market(db_session))
        markets.close_market(market)
        db_session.commit()
        assert markets.get_market(market.id).status == "CLOSED"
        with pytest.raises(MarketNotOpen):
            markets.close_market(markets.get_market(market.id))

    def test_list_markets_by_status(self, db_session):
        markets = MarketStore(db_session)
        open_id = make_market(db_session, title="open")
        closed_id = make_market(db_session, title="closed")
        markets.close_market(markets.get_market(closed_id))
        db_session.commit()
        assert [m.id for m in markets.list_markets(status="OPEN")] == [open_id]
        assert [m.id for m in markets.list_markets()] == [open_id, closed_id]
