"""FastAPI application — thin HTTP caller of the settlement engine.

Every mutating endpoint runs one engine operation against the authoritative
store and returns the committed state. Money is serialised as decimal strings.
"""

import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from parimutuel_core.config.loader import load_config
from parimutuel_core.db.engine import get_session as _get_session, init_engine_from_config
from parimutuel_core.db.tables.ledger import TransactionRow
from parimutuel_core.db.tables.markets import MarketRow, PositionRow
from parimutuel_core.engine import CashoutPricer, ResolutionEngine, StakeProcessor, quote_market
from parimutuel_core.errors import (
    AlreadyResolved,
    ConcurrencyConflict,
    GatewayError,
    InsufficientFunds,
    NotFound,
    SettlementError,
    ValidationError,
)
from parimutuel_core.models import Balance, Market, OutcomeQuote, Position, Transaction
from parimutuel_core.payments import DepositService, PaymentGateway, WithdrawalService, XGateGateway, parse_webhook
from parimutuel_core.store import LedgerStore, MarketStore

logger = structlog.get_logger("api")

app = FastAPI(
    title="Pari-mutuel Markets API",
    description="Stakes, resolution, cashout and PIX funding for pari-mutuel markets",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Load config once at startup
config = load_config(os.environ.get("PARIMUTUEL_CONFIG"))

stake_processor = StakeProcessor(config.policy)
resolution_engine = ResolutionEngine(config.policy)
cashout_pricer = CashoutPricer(config.policy)
withdrawal_service = WithdrawalService(config.policy)

_gateway: XGateGateway | None = None

# Most specific first.
ERROR_STATUS: list[tuple[type[SettlementError], int]] = [
    (ValidationError, 400),
    (InsufficientFunds, 402),
    (NotFound, 404),
    (AlreadyResolved, 409),
    (ConcurrencyConflict, 409),
    (GatewayError, 502),
]


def get_db() -> Generator[Session, None, None]:
    """Dependency to get DB session."""
    gen = _get_session()
    session = next(gen)
    try:
        yield session
    finally:
        try:
            next(gen)
        except StopIteration:
            pass


def get_gateway() -> PaymentGateway:
    """Dependency returning the shared PIX gateway client."""
    global _gateway
    if _gateway is None:
        _gateway = XGateGateway(
            base_url=config.gateway.base_url,
            email=config.gateway.email,
            password=config.gateway.password,
            timeout_s=config.gateway.timeout_s,
        )
    return _gateway


@app.on_event("startup")
async def startup_event():
    """Initialize database engine on startup."""
    init_engine_from_config(config.database)
    logger.info("Database engine initialized")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the shared gateway HTTP client."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
        logger.info("Gateway client closed")


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    logger.info("request_rejected", path=request.url.path, error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": str(exc)})


# ── Serialisers ───────────────────────────────────────────────


def _money(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _market_json(market: MarketRow) -> dict:
    view = Market.model_validate(market)
    view.quotes = [
        OutcomeQuote(
            outcome=q.outcome,
            probability=q.probability.quantize(Decimal("0.0001")),
            odds_multiplier=q.odds_multiplier,
            pool=view.outcome_pools[q.outcome],
        )
        for q in quote_market(view.outcome_pools, config.policy.commission_rate)
    ]
    return _dump(view)


def _position_json(position: PositionRow) -> dict:
    return _dump(Position.model_validate(position))


def _transaction_json(tx: TransactionRow) -> dict:
    return _dump(Transaction.model_validate(tx))


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# ═══════════════════════════════════════════════════════════════
# Users & ledger
# ═══════════════════════════════════════════════════════════════


class CreateUserRequest(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    document: Optional[str] = None


@app.post("/api/users", status_code=201)
async def create_user(req: CreateUserRequest, session: Session = Depends(get_db)):
    """Register a ledger account for a user."""
    user = LedgerStore(session).create_user(req.name, email=req.email, document=req.document)
    session.commit()
    return {"id": user.id, "name": user.name, "balance": _money(user.balance)}


@app.get("/api/users/{user_id}/balance")
async def get_balance(user_id: int, session: Session = Depends(get_db)):
    balance = LedgerStore(session).get_balance(user_id)
    return _dump(Balance(user_id=user_id, balance=balance))


@app.get("/api/users/{user_id}/transactions")
async def get_transactions(user_id: int, limit: int = 100, session: Session = Depends(get_db)):
    """Transaction log, newest first."""
    ledger = LedgerStore(session)
    ledger.get_user(user_id)
    return {"transactions": [_transaction_json(tx) for tx in ledger.history(user_id, limit=limit)]}


@app.get("/api/users/{user_id}/positions")
async def get_user_positions(user_id: int, status: Optional[str] = None, session: Session = Depends(get_db)):
    LedgerStore(session).get_user(user_id)
    positions = MarketStore(session).positions_for_user(user_id, status=status)
    return {"positions": [_position_json(p) for p in positions]}


# ═══════════════════════════════════════════════════════════════
# Markets
# ═══════════════════════════════════════════════════════════════


class CreateMarketRequest(BaseModel):
    title: str
    outcomes: list[str] = Field(default_factory=lambda: ["YES", "NO"])
    category: Optional[str] = None
    end_date: Optional[datetime] = None


class StakeRequest(BaseModel):
    user_id: int
    outcome: str
    amount: Decimal
    request_id: Optional[str] = None


class ResolveRequest(BaseModel):
    outcome: str


@app.get("/api/markets")
async def list_markets(status: Optional[str] = None, session: Session = Depends(get_db)):
    return {"markets": [_market_json(m) for m in MarketStore(session).list_markets(status=status)]}


@app.post("/api/markets", status_code=201)
async def create_market(req: CreateMarketRequest, session: Session = Depends(get_db)):
    market = MarketStore(session).create_market(
        req.title, req.outcomes, category=req.category, end_date=req.end_date,
    )
    session.commit()
    return _market_json(market)


@app.get("/api/markets/{market_id}")
async def get_market(market_id: int, session: Session = Depends(get_db)):
    """Market detail with a live quote per outcome."""
    return _market_json(MarketStore(session).get_market(market_id))


@app.post("/api/markets/{market_id}/close")
async def close_market(market_id: int, session: Session = Depends(get_db)):
    """End the betting window; the market can still be resolved."""
    markets = MarketStore(session)
    markets.close_market(markets.get_market(market_id, for_update=True))
    session.commit()
    logger.info("market_closed", market_id=market_id)
    return _market_json(markets.get_market(market_id))


@app.post("/api/markets/{market_id}/stakes", status_code=201)
async def place_stake(market_id: int, req: StakeRequest, session: Session = Depends(get_db)):
    """Place a stake; returns the position and the market as committed."""
    position = stake_processor.place_stake(
        session, req.user_id, market_id, req.outcome, req.amount, request_id=req.request_id,
    )
    ledger = LedgerStore(session)
    return {
        "position": _position_json(position),
        "market": _market_json(MarketStore(session).get_market(market_id)),
        "balance": _money(ledger.get_balance(req.user_id)),
    }


@app.post("/api/markets/{market_id}/resolve")
async def resolve_market(market_id: int, req: ResolveRequest, session: Session = Depends(get_db)):
    summary = resolution_engine.resolve_market(session, market_id, req.outcome)
    return {
        "marketId": summary.market_id,
        "winningOutcome": summary.winning_outcome,
        "winners": summary.winners,
        "losers": summary.losers,
        "totalPaid": _money(summary.total_paid),
        "totalPool": _money(summary.total_pool),
        "platformResidual": _money(summary.platform_residual),
    }


# ═══════════════════════════════════════════════════════════════
# Positions & cashout
# ═══════════════════════════════════════════════════════════════


@app.get("/api/positions/{position_id}")
async def get_position(position_id: int, session: Session = Depends(get_db)):
    return _position_json(MarketStore(session).get_position(position_id))


@app.get("/api/positions/{position_id}/cashout")
async def quote_cashout(position_id: int, session: Session = Depends(get_db)):
    """Current cashout value; zero when no cashout is available."""
    value = cashout_pricer.quote_cashout(session, position_id)
    return {"positionId": position_id, "value": _money(value), "available": value > 0}


@app.post("/api/positions/{position_id}/cashout")
async def cashout(position_id: int, session: Session = Depends(get_db)):
    result = cashout_pricer.cashout(session, position_id)
    return {
        "positionId": result.position_id,
        "amount": _money(result.amount),
        "balance": _money(result.balance),
        "transactionId": result.transaction_id,
    }


# ═══════════════════════════════════════════════════════════════
# PIX funding
# ═══════════════════════════════════════════════════════════════


class DepositRequest(BaseModel):
    user_id: int
    amount: Decimal
    description: Optional[str] = None


class WithdrawRequest(BaseModel):
    user_id: int
    amount: Decimal
    pix_key: str
    pix_key_type: str = "CPF"


@app.post("/api/deposits", status_code=201)
async def create_deposit(
    req: DepositRequest,
    session: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """Open a PIX charge; the balance is credited when the webhook confirms it."""
    pending = await DepositService(gateway, config.policy).create_deposit(
        session, req.user_id, req.amount, description=req.description,
    )
    return {
        "transactionId": pending.transaction_id,
        "chargeId": pending.charge_id,
        "amount": _money(pending.amount),
        "qrCode": pending.qr_payload,
        "qrCodeImage": pending.qr_image,
    }


@app.post("/api/webhooks/pix")
async def pix_webhook(body: dict, session: Session = Depends(get_db), gateway: PaymentGateway = Depends(get_gateway)):
    """Gateway notification; only paid statuses credit the deposit."""
    event = parse_webhook(body)
    if not event.paid:
        logger.info("webhook_ignored", charge_id=event.charge_id, status=event.status)
        return {"received": True, "status": "ignored"}
    if not event.charge_id:
        return JSONResponse(status_code=400, content={"error": "missing_charge_id", "detail": "no charge id in body"})
    tx = DepositService(gateway, config.policy).confirm_deposit(session, event.charge_id)
    return {"received": True, "status": tx.status, "transactionId": tx.id}


@app.post("/api/withdrawals", status_code=201)
async def request_withdrawal(req: WithdrawRequest, session: Session = Depends(get_db)):
    tx = withdrawal_service.request_withdrawal(
        session, req.user_id, req.amount, req.pix_key, pix_key_type=req.pix_key_type,
    )
    return {
        **_transaction_json(tx),
        "balance": _money(LedgerStore(session).get_balance(req.user_id)),
    }
