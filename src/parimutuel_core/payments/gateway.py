"""Payment Gateway Adapter — PIX charges through the XGate REST API.

Flow for a deposit charge:
    POST /auth/token                     -> bearer token
    GET  /deposit/company/currencies     -> pick the BRL currency object
    POST /deposit                        -> charge id + PIX copy-and-paste code

The response shape is loose; the charge id and QR payload are read from the
first key that is present.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

import httpx

from parimutuel_core.errors import GatewayError

CHARGE_ID_KEYS = ("id", "_id", "transactionId", "orderId", "uuid")
QR_PAYLOAD_KEYS = ("code", "qrCode", "payload", "pixKey", "qrCodeText", "paymentCode", "pixCopiaECola", "emv")
QR_IMAGE_KEYS = ("qrCodeImage", "qrCodeBase64", "image")


@dataclass(frozen=True)
class Customer:
    name: str
    email: str | None = None
    document: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class Charge:
    charge_id: str
    qr_payload: str
    qr_image: str | None = None


class PaymentGateway(Protocol):
    async def create_charge(self, amount: Decimal, customer: Customer) -> Charge: ...


def _first(body: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = body.get(key)
        if value:
            return value
    return None


class XGateGateway:
    """Async client for the XGate PIX API."""

    def __init__(
        self,
        base_url: str = "https://api.xgateglobal.com",
        email: str | None = None,
        password: str | None = None,
        timeout_s: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.password = password
        self.timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def _login(self) -> str:
        if not self.email or not self.password:
            raise GatewayError("gateway credentials are not configured")
        http = await self._get_http()
        resp = await http.post(
            f"{self.base_url}/auth/token",
            json={"email": self.email, "password": self.password},
        )
        if resp.is_error:
            raise GatewayError(f"gateway auth failed ({resp.status_code})")
        token = resp.json().get("token")
        if not token:
            raise GatewayError("gateway auth returned no token")
        return token

    async def _brl_currency(self, token: str) -> dict[str, Any]:
        http = await self._get_http()
        resp = await http.get(
            f"{self.base_url}/deposit/company/currencies",
            headers={"Authorization": f"Bearer {token}"},
        )
        if resp.is_error:
            raise GatewayError(f"currency lookup failed ({resp.status_code})")
        for currency in resp.json():
            if currency.get("name") == "BRL" or currency.get("symbol") == "R$":
                return currency
        raise GatewayError("BRL currency not offered by gateway")

    async def create_charge(self, amount: Decimal, customer: Customer) -> Charge:
        token = await self._login()
        currency = await self._brl_currency(token)
        payload = {
            "amount": float(amount),
            "currency": currency,
            "customer": {
                k: v
                for k, v in {
                    "name": customer.name,
                    "email": customer.email,
                    "document": customer.document,
                    "phone": customer.phone,
                }.items()
                if v is not None
            },
        }
        http = await self._get_http()
        resp = await http.post(
            f"{self.base_url}/deposit",
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
        )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error:
            raise GatewayError(body.get("message") or f"deposit rejected ({resp.status_code})")

        # Some responses wrap the charge in {"data": {...}}
        data = body.get("data") if isinstance(body.get("data"), dict) else body
        charge_id = _first(data, CHARGE_ID_KEYS) or _first(body, CHARGE_ID_KEYS)
        qr_payload = _first(data, QR_PAYLOAD_KEYS)
        if not charge_id or not qr_payload:
            raise GatewayError(f"unrecognised deposit response: {body}")
        return Charge(
            charge_id=str(charge_id),
            qr_payload=qr_payload,
            qr_image=_first(data, QR_IMAGE_KEYS),
        )
