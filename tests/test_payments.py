"""Tests for PIX deposits, withdrawals and the XGate gateway client."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from conftest import make_user
from parimutuel_core.config.schema import PolicyConfig
from parimutuel_core.errors import (
    BelowMinimumDeposit,
    BelowMinimumWithdrawal,
    ChargeNotFound,
    GatewayError,
    InsufficientFunds,
    InvalidPixKey,
    MissingDocument,
)
from parimutuel_core.payments import Charge, Customer, DepositService, WithdrawalService, XGateGateway, parse_webhook
from parimutuel_core.store import LedgerStore


class FakeGateway:
    """Hands out sequential charge ids and remembers who asked."""

    def __init__(self):
        self.calls = []

    async def create_charge(self, amount, customer):
        self.calls.append((amount, customer))
        return Charge(charge_id=f"chg_{len(self.calls)}", qr_payload="00020126PIX")


def _xgate_handler(deposit_response=None, deposit_status=200, auth_status=200):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/auth/token":
            if auth_status != 200:
                return httpx.Response(auth_status, json={"message": "bad credentials"})
            return httpx.Response(200, json={"token": "tok"})
        if request.url.path == "/deposit/company/currencies":
            return httpx.Response(200, json=[{"name": "USDT"}, {"name": "BRL", "symbol": "R$", "_id": "brl"}])
        if request.url.path == "/deposit":
            return httpx.Response(deposit_status, json=deposit_response or {})
        return httpx.Response(404)

    return handler, seen


def _gateway(handler):
    return XGateGateway(
        base_url="https://xgate.test",
        email="ops@example.com",
        password="secret",
        transport=httpx.MockTransport(handler),
    )


class TestXGateGateway:
    def test_create_charge(self):
        handler, seen = _xgate_handler({"data": {"id": "chg_9", "code": "00020126PIX", "qrCodeImage": "data:png"}})
        gateway = _gateway(handler)

        charge = asyncio.run(gateway.create_charge(Decimal("50.00"), Customer(name="Ana", document="12345678909")))

        assert charge == Charge(charge_id="chg_9", qr_payload="00020126PIX", qr_image="data:png")
        assert [r.url.path for r in seen] == ["/auth/token", "/deposit/company/currencies", "/deposit"]
        deposit = json.loads(seen[-1].content)
        assert deposit["amount"] == 50.0
        assert deposit["currency"]["name"] == "BRL"
        assert deposit["customer"] == {"name": "Ana", "document": "12345678909"}
        assert seen[-1].headers["Authorization"] == "Bearer tok"

    def test_flat_response_with_alternate_keys(self):
        handler, _ = _xgate_handler({"transactionId": 77, "pixCopiaECola": "000201"})
        charge = asyncio.run(_gateway(handler).create_charge(Decimal("10"), Customer(name="Ana")))
        assert charge.charge_id == "77"
        assert charge.qr_payload == "000201"
        assert charge.qr_image is None

    def test_rejected_deposit(self):
        handler, _ = _xgate_handler({"message": "amount too low"}, deposit_status=422)
        with pytest.raises(GatewayError, match="amount too low"):
            asyncio.run(_gateway(handler).create_charge(Decimal("10"), Customer(name="Ana")))

    def test_auth_failure(self):
        handler, _ = _xgate_handler(auth_status=401)
        with pytest.raises(GatewayError, match="auth"):
            asyncio.run(_gateway(handler).create_charge(Decimal("10"), Customer(name="Ana")))

    def test_missing_credentials(self):
        gateway = XGateGateway(base_url="https://xgate.test")
        with pytest.raises(GatewayError):
            asyncio.run(gateway.create_charge(Decimal("10"), Customer(name="Ana")))

    def test_unrecognised_response(self):
        handler, _ = _xgate_handler({"ok": True})
        with pytest.raises(GatewayError):
            asyncio.run(_gateway(handler).create_charge(Decimal("10"), Customer(name="Ana")))


class TestParseWebhook:
    def test_paid_status_variants(self):
        for status in ("PAID", "completed", "Approved", "succeeded"):
            assert parse_webhook({"id": "chg_1", "status": status}).paid

    def test_unpaid_status(self):
        event = parse_webhook({"id": "chg_1", "status": "PENDING"})
        assert event.charge_id == "chg_1"
        assert not event.paid

    def test_charge_id_fallback_keys(self):
        assert parse_webhook({"orderId": 55, "status": "PAID"}).charge_id == "55"
        assert parse_webhook({"uuid": "u-1", "status": "PAID"}).charge_id == "u-1"
        assert parse_webhook({"status": "PAID"}).charge_id is None


class TestDeposits:
    def test_create_deposit_is_pending(self, db_session):
        user_id = make_user(db_session, "ana")
        gateway = FakeGateway()
        pending = asyncio.run(DepositService(gateway).create_deposit(db_session, user_id, "50"))

        assert pending.charge_id == "chg_1"
        assert pending.amount == Decimal("50.00")
        assert pending.qr_payload == "00020126PIX"
        assert gateway.calls[0][1].document == "12345678909"

        ledger = LedgerStore(db_session)
        assert ledger.get_balance(user_id) == Decimal("0")
        tx = ledger.find_by_reference("DEPOSIT", "chg_1")
        assert tx.status == "PENDING"
        assert tx.amount == Decimal("50.00")

    def test_no_transaction_open_during_gateway_call(self, db_session):
        user_id = make_user(db_session, "ana")
        seen = []

        class WatchingGateway(FakeGateway):
            async def create_charge(self, amount, customer):
                seen.append(db_session.in_transaction())
                return await super().create_charge(amount, customer)

        asyncio.run(DepositService(WatchingGateway()).create_deposit(db_session, user_id, "50"))
        assert seen == [False]
        assert LedgerStore(db_session).find_by_reference("DEPOSIT", "chg_1").status == "PENDING"

    def test_below_minimum(self, db_session):
        user_id = make_user(db_session, "ana")
        gateway = FakeGateway()
        with pytest.raises(BelowMinimumDeposit):
            asyncio.run(DepositService(gateway).create_deposit(db_session, user_id, "9.99"))
        assert gateway.calls == []

    def test_confirm_credits_once(self, db_session):
        user_id = make_user(db_session, "ana")
        service = DepositService(FakeGateway())
        asyncio.run(service.create_deposit(db_session, user_id, "50"))

        first = service.confirm_deposit(db_session, "chg_1")
        second = service.confirm_deposit(db_session, "chg_1")

        assert first.id == second.id
        assert second.status == "COMPLETED"
        assert LedgerStore(db_session).get_balance(user_id) == Decimal("50.00")

    def test_confirm_unknown_charge(self, db_session):
        with pytest.raises(ChargeNotFound):
            DepositService(FakeGateway()).confirm_deposit(db_session, "chg_404")


class TestWithdrawals:
    def test_debits_amount_plus_fee(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        tx = WithdrawalService().request_withdrawal(db_session, user_id, "50", "12345678909")

        assert tx.type == "WITHDRAW"
        assert tx.status == "PENDING"
        assert tx.amount == Decimal("52.90")
        assert tx.metadata_["requested"] == "50.00"
        assert tx.metadata_["fee"] == "2.90"
        assert LedgerStore(db_session).get_balance(user_id) == Decimal("47.10")

    def test_fee_counts_toward_funds(self, db_session):
        user_id = make_user(db_session, "ana", "50")
        with pytest.raises(InsufficientFunds):
            WithdrawalService().request_withdrawal(db_session, user_id, "50", "12345678909")
        assert LedgerStore(db_session).get_balance(user_id) == Decimal("50.00")

    def test_below_minimum(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        with pytest.raises(BelowMinimumWithdrawal):
            WithdrawalService().request_withdrawal(db_session, user_id, "19.99", "12345678909")

    def test_document_required(self, db_session):
        user_id = make_user(db_session, "ana", "100", document=None)
        with pytest.raises(MissingDocument):
            WithdrawalService().request_withdrawal(db_session, user_id, "30", "ana@example.com", "EMAIL")
        assert LedgerStore(db_session).get_balance(user_id) == Decimal("100.00")

    def test_pix_key_checks(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        service = WithdrawalService()
        with pytest.raises(InvalidPixKey):
            service.request_withdrawal(db_session, user_id, "30", "  ")
        with pytest.raises(InvalidPixKey):
            service.request_withdrawal(db_session, user_id, "30", "12345678909", "IBAN")

    def test_custom_fee(self, db_session):
        user_id = make_user(db_session, "ana", "100")
        service = WithdrawalService(PolicyConfig(withdrawal_fee=Decimal("0")))
        tx = service.request_withdrawal(db_session, user_id, "30", "12345678909")
        assert tx.amount == Decimal("30.00")
