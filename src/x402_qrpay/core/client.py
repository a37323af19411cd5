"""
HTTP client for the attestation-bridge settlement endpoint.

The endpoint is called twice with the same query: first to discover the
payment obligation (answered with code ``"402"``), then again with the signed
envelope in the ``X-PAYMENT`` header to settle it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from .codec import PaymentRequest
from .config import PaymentConfig
from .errors import (
    SettlementRejected,
    SigningFailed,
    UnexpectedResponse,
    WalletNotInitialized,
)
from .payloads import (
    SCHEME_EXACT,
    SettlementEnvelope,
    build_authorization,
    decode_envelope,
    to_typed_data,
)
from .registry import resolve_network
from .signers import Signer

__all__ = [
    "PAYMENT_PATH",
    "PAYMENT_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "Obligation",
    "ObligationSet",
    "SettlementClient",
    "SettlementOutcome",
]

PAYMENT_PATH = "/open/ai/402/payment"
PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-Payment-Response"


@dataclass(frozen=True)
class Obligation:
    max_amount_required: str
    pay_to: str
    asset: str
    network: str
    scheme: str = SCHEME_EXACT
    max_timeout_seconds: int = 60
    resource: str = ""
    description: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def order_no(self) -> Optional[str]:
        return self.extra.get("orderNo")

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "Obligation":
        try:
            return cls(
                max_amount_required=str(payload["maxAmountRequired"]),
                pay_to=payload["payTo"],
                asset=payload["asset"],
                network=payload["network"],
                scheme=payload.get("scheme") or SCHEME_EXACT,
                max_timeout_seconds=int(payload.get("maxTimeoutSeconds", 60)),
                resource=payload.get("resource", ""),
                description=payload.get("description"),
                extra=dict(payload.get("extra") or {}),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UnexpectedResponse(f"Malformed payment obligation: {payload!r}") from exc

    @classmethod
    def from_payment_request(
        cls,
        request: PaymentRequest,
        *,
        timeout_seconds: int = 60,
    ) -> "Obligation":
        """Treat a decoded ``x402://`` request as an ``exact`` obligation."""
        return cls(
            max_amount_required=request.max_amount_required,
            pay_to=request.pay_to,
            asset=request.asset,
            network=request.network,
            max_timeout_seconds=timeout_seconds,
            resource=request.resource,
            description=request.description,
        )


@dataclass(frozen=True)
class ObligationSet:
    code: str
    message: str
    accepts: List[Obligation]
    trace_id: Optional[str] = None
    x402_version: Optional[str] = None
    error: Optional[str] = None

    @property
    def first(self) -> Obligation:
        return self.accepts[0]

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "ObligationSet":
        return cls(
            code=str(payload.get("code")),
            message=payload.get("msg") or "",
            accepts=[Obligation.from_response(item) for item in payload.get("accepts") or []],
            trace_id=payload.get("traceId"),
            x402_version=payload.get("x402Version"),
            error=payload.get("error"),
        )


@dataclass(frozen=True)
class SettlementOutcome:
    success: bool
    network: Optional[str]
    amount: Optional[str]
    transaction: Optional[str]
    order_no: Optional[str]
    usd_amount: Optional[str] = None
    status: Optional[str] = None
    acknowledgment: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def reference(self) -> Optional[str]:
        return self.transaction or self.order_no


def _read_json(response: requests.Response, error_cls: type) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise error_cls(
            f"Settlement endpoint returned non-JSON body ({response.status_code}): {response.text}"
        ) from exc
    if not isinstance(body, dict):
        raise error_cls(f"Settlement endpoint returned unexpected body: {body!r}")
    return body


class SettlementClient:
    """
    Drives the discover, authorize and submit phases for one payer.

    The payer address is fixed for the lifetime of the instance; build a new
    client to pay from a different wallet.
    """

    def __init__(
        self,
        config: PaymentConfig,
        *,
        signer: Optional[Signer] = None,
        payer_address: Optional[str] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.signer = signer
        self.session = session or requests.Session()
        self._clock = clock
        self._payer_address = (
            payer_address
            or (signer.address if signer is not None else None)
            or config.payer_address
        )

    @property
    def payer_address(self) -> Optional[str]:
        return self._payer_address

    @property
    def payment_url(self) -> str:
        return f"{self.config.bridge_url}{PAYMENT_PATH}"

    def _params(self, app_id: str, code: str) -> Dict[str, str]:
        if not self._payer_address:
            raise WalletNotInitialized()
        return {"appId": app_id, "qrCode": code, "address": self._payer_address}

    def discover(self, app_id: str, code: str) -> ObligationSet:
        params = self._params(app_id, code)
        logging.info("Fetching payment details from %s (appId=%s)", self.payment_url, app_id)
        try:
            response = self.session.get(
                self.payment_url,
                params=params,
                timeout=self.config.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise UnexpectedResponse(f"Payment discovery request failed: {exc}") from exc

        obligations = ObligationSet.from_response(_read_json(response, UnexpectedResponse))
        if obligations.code != "402" or not obligations.accepts:
            raise UnexpectedResponse(f"Unexpected response: {obligations.message}")

        if len(obligations.accepts) > 1:
            logging.info(
                "Settlement endpoint offered %d obligations; using the first",
                len(obligations.accepts),
            )
        first = obligations.first
        logging.info(
            "Obligation: %s atomic units to %s on %s (timeout %ss)",
            first.max_amount_required,
            first.pay_to,
            first.network,
            first.max_timeout_seconds,
        )
        return obligations

    def authorize(
        self,
        obligation: Obligation,
        *,
        amount: Optional[str | int] = None,
    ) -> SettlementEnvelope:
        """
        Build and sign a fresh authorization for ``obligation``.

        ``amount`` may lower the transferred value but never exceed
        ``obligation.max_amount_required``.
        """
        if self.signer is None or not self._payer_address:
            raise WalletNotInitialized()

        authorization = build_authorization(
            obligation,
            self._payer_address,
            obligation.max_timeout_seconds,
            amount,
            clock=self._clock,
        )
        typed_data = to_typed_data(
            authorization,
            obligation.asset,
            resolve_network(obligation.network).chain_id,
            obligation.extra.get("name") or self.config.token_name,
            obligation.extra.get("version") or self.config.token_version,
        )

        try:
            signature = self.signer.sign_typed_data(typed_data)
        except Exception as exc:  # noqa: BLE001
            raise SigningFailed(f"Signing failed: {exc}") from exc

        return SettlementEnvelope(
            network=obligation.network,
            authorization=authorization,
            signature=signature,
            scheme=obligation.scheme,
        )

    def submit(self, app_id: str, code: str, envelope: SettlementEnvelope) -> SettlementOutcome:
        params = self._params(app_id, code)
        logging.info("Submitting payment to %s", self.payment_url)
        try:
            response = self.session.get(
                self.payment_url,
                params=params,
                headers={PAYMENT_HEADER: envelope.to_header()},
                timeout=self.config.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SettlementRejected(f"Payment submission failed: {exc}") from exc

        body = _read_json(response, SettlementRejected)
        acknowledgment = self._decode_acknowledgment(response)

        code_value = str(body.get("code"))
        if code_value != "0":
            raise SettlementRejected(body.get("msg") or "Payment failed", code=code_value)

        model = body.get("model") or {}
        outcome = SettlementOutcome(
            success=True,
            network=envelope.network,
            amount=str(envelope.authorization.value),
            transaction=model.get("txHash") or (acknowledgment or {}).get("txHash"),
            order_no=model.get("num"),
            usd_amount=model.get("usdAmount"),
            status=model.get("status"),
            acknowledgment=acknowledgment,
            raw=body,
        )
        logging.info(
            "Payment settled: order %s, tx %s, status %s",
            outcome.order_no,
            outcome.transaction,
            outcome.status,
        )
        return outcome

    @staticmethod
    def _decode_acknowledgment(response: requests.Response) -> Optional[Dict[str, Any]]:
        header = response.headers.get(PAYMENT_RESPONSE_HEADER)
        if not header:
            return None
        try:
            decoded = decode_envelope(header)
        except ValueError as exc:
            logging.warning("Ignoring undecodable %s header: %s", PAYMENT_RESPONSE_HEADER, exc)
            return None
        return decoded if isinstance(decoded, dict) else None

    def pay(self, app_id: str, code: str) -> SettlementOutcome:
        obligations = self.discover(app_id, code)
        envelope = self.authorize(obligations.first)
        return self.submit(app_id, code, envelope)
