"""PIX payments — gateway adapter, deposit confirmation and withdrawals."""

from parimutuel_core.payments.deposits import DepositService, PendingDeposit, WebhookEvent, parse_webhook
from parimutuel_core.payments.gateway import Charge, Customer, PaymentGateway, XGateGateway
from parimutuel_core.payments.withdrawals import WithdrawalService

__all__ = [
    "Charge",
    "Customer",
    "DepositService",
    "PaymentGateway",
    "PendingDeposit",
    "WebhookEvent",
    "WithdrawalService",
    "XGateGateway",
    "parse_webhook",
]
