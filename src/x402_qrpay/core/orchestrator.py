"""
Stage machine that drives one payment attempt from review to a result.

Requests flagged for the attestation bridge are settled through
:class:`SettlementClient`; everything else goes through the generic path,
which walks the checking, bridging and executing stages locally.
"""

from __future__ import annotations

import enum
import logging
import random
import secrets
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional, Tuple

import requests

from .codec import PaymentRequest
from .client import SettlementClient
from .config import DEFAULT_APP_ID, PaymentConfig
from .errors import (
    AttemptInProgress,
    InvalidStageTransition,
    PaymentCancelled,
    SettlementRejected,
    WalletNotInitialized,
)
from .signers import Signer

__all__ = [
    "BRIDGE_PROVIDER",
    "PaymentAttempt",
    "PaymentOrchestrator",
    "PaymentProgress",
    "PaymentResult",
    "PaymentSession",
    "Stage",
    "bridge_parameters",
    "is_bridge_payment",
    "routing_flags",
]

BRIDGE_PROVIDER = "aeon"
_BRIDGE_RESOURCE_MARKER = "aeon"

# Fallback path pauses, in seconds.
_BALANCE_CHECK_DELAY = 1.5
_BRIDGE_DELAY = 3.0
_EXECUTE_DELAY = 2.0


class Stage(str, enum.Enum):
    REVIEW = "review"
    CHECKING = "checking"
    BRIDGING = "bridging"
    EXECUTING = "executing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.FAILED)


@dataclass(frozen=True)
class PaymentProgress:
    stage: Stage
    message: str
    progress: int


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    settlement_reference: Optional[str] = None
    amount: Optional[str] = None
    network: Optional[str] = None
    error: Optional[str] = None


@dataclass
class PaymentAttempt:
    stage: Stage = Stage.REVIEW
    progress: int = 0
    error: Optional[str] = None
    settlement_reference: Optional[str] = None
    route: Optional[str] = None
    result: Optional[PaymentResult] = None


@dataclass
class PaymentSession:
    """
    Wallet identity shared by the attempts of one payer.

    The settlement client is created on the first bridged payment and reused
    afterwards. Only one attempt may run at a time.
    """

    config: PaymentConfig
    payer_address: Optional[str] = None
    signer: Optional[Signer] = None
    http: Optional[requests.Session] = None
    _client: Optional[SettlementClient] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.payer_address is None:
            if self.signer is not None:
                self.payer_address = self.signer.address
            else:
                self.payer_address = self.config.payer_address

    def settlement_client(self) -> Tuple[SettlementClient, bool]:
        """Return the session's client and whether it was just created."""
        if self._client is not None:
            return self._client, False
        self._client = SettlementClient(
            self.config,
            signer=self.signer,
            payer_address=self.payer_address,
            session=self.http,
        )
        return self._client, True

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise AttemptInProgress("Another payment is already running for this wallet")
        try:
            yield
        finally:
            self._lock.release()


def routing_flags(request: PaymentRequest, config: PaymentConfig) -> Dict[str, bool]:
    metadata = request.metadata
    return {
        "metadata": metadata is not None and metadata.provider == BRIDGE_PROVIDER,
        "resource": _BRIDGE_RESOURCE_MARKER in (request.resource or ""),
        "feature_flag": config.enable_bridge_payments,
    }


def is_bridge_payment(request: PaymentRequest, config: PaymentConfig) -> bool:
    flags = routing_flags(request, config)
    provider = request.metadata.provider if request.metadata is not None else None
    if provider and provider != BRIDGE_PROVIDER and (flags["resource"] or flags["feature_flag"]):
        logging.warning(
            "Routing conflict: metadata names provider %r but the %s selects the bridge",
            provider,
            "resource" if flags["resource"] else "feature flag",
        )
    return any(flags.values())


def bridge_parameters(request: PaymentRequest, config: PaymentConfig) -> Tuple[str, str]:
    """Return the ``(appId, qrCode)`` pair the settlement endpoint is keyed by."""
    metadata = request.metadata
    app_id = (metadata.app_id if metadata else None) or config.app_id or DEFAULT_APP_ID
    code = (metadata.qr_code if metadata else None) or request.resource or ""
    return app_id, code


ProgressCallback = Callable[[PaymentProgress], None]


class PaymentOrchestrator:
    """
    Runs a decoded request through review, checking, optional bridging,
    executing and a terminal stage, reporting progress at fixed checkpoints.
    """

    def __init__(
        self,
        request: PaymentRequest,
        session: PaymentSession,
        *,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
        needs_bridge: Optional[Callable[[PaymentRequest], bool]] = None,
    ) -> None:
        self.request = request
        self.session = session
        self.attempt = PaymentAttempt()
        self._on_progress = on_progress
        self._sleep = sleep
        self._needs_bridge = needs_bridge or (lambda _request: random.random() > 0.5)
        self._cancelled = threading.Event()

    @property
    def stage(self) -> Stage:
        return self.attempt.stage

    @property
    def can_confirm(self) -> bool:
        return (
            self.attempt.stage is Stage.REVIEW
            and self.request is not None
            and bool(self.session.payer_address)
        )

    def cancel(self) -> None:
        """Stop before the next phase; an in-flight call is left to finish."""
        self._cancelled.set()

    def retry(self) -> None:
        if self.attempt.stage is not Stage.FAILED:
            raise InvalidStageTransition(
                f"Only a failed payment can be retried (stage is {self.attempt.stage.value})"
            )
        self.attempt = PaymentAttempt()
        self._cancelled.clear()

    def confirm(self) -> PaymentResult:
        if self.attempt.stage is not Stage.REVIEW:
            raise InvalidStageTransition(
                f"Payment can only be confirmed from review (stage is {self.attempt.stage.value})"
            )
        if not self.session.payer_address:
            raise WalletNotInitialized()

        with self.session.exclusive():
            self.attempt.stage = Stage.CHECKING
            try:
                if self._use_bridge():
                    result = self._run_bridge()
                else:
                    result = self._run_fallback()
            except Exception as exc:  # noqa: BLE001
                return self._fail(exc)
            self.attempt.result = result
            return result

    def _use_bridge(self) -> bool:
        config = self.session.config
        flagged = is_bridge_payment(self.request, config)
        _, code = bridge_parameters(self.request, config)
        use_bridge = flagged and bool(code) and bool(self.session.payer_address)
        self.attempt.route = "bridge" if use_bridge else "fallback"
        logging.info(
            "Routing payment for %s via %s path",
            self.request.resource or self.request.pay_to,
            self.attempt.route,
        )
        return use_bridge

    def _report(self, stage: Stage, message: str, progress: int) -> None:
        self.attempt.stage = stage
        self.attempt.progress = max(self.attempt.progress, progress)
        logging.info("[%s %d%%] %s", stage.value, self.attempt.progress, message)
        if self._on_progress is not None:
            self._on_progress(PaymentProgress(stage, message, self.attempt.progress))

    def _checkpoint(self) -> None:
        if self._cancelled.is_set():
            raise PaymentCancelled("Payment cancelled")

    def _pause(self, seconds: float) -> None:
        if self.session.config.simulate_delays:
            self._sleep(seconds)

    def _complete(self, reference: str, amount: str, network: str) -> PaymentResult:
        self.attempt.settlement_reference = reference
        self._report(Stage.COMPLETE, "Payment successful!", 100)
        return PaymentResult(
            success=True,
            settlement_reference=reference,
            amount=amount,
            network=network,
        )

    def _fail(self, exc: Exception) -> PaymentResult:
        message = str(exc) or "Payment failed. Please try again."
        logging.error("Payment failed: %s", message)
        self.attempt.stage = Stage.FAILED
        self.attempt.progress = 0
        self.attempt.error = message
        if self._on_progress is not None:
            self._on_progress(PaymentProgress(Stage.FAILED, message, 0))
        result = PaymentResult(success=False, error=message)
        self.attempt.result = result
        return result

    def _run_bridge(self) -> PaymentResult:
        app_id, code = bridge_parameters(self.request, self.session.config)

        client, created = self.session.settlement_client()
        if created:
            self._report(Stage.CHECKING, "Initializing wallet...", 5)

        self._checkpoint()
        obligation = client.discover(app_id, code).first
        self._report(Stage.CHECKING, "Payment details received", 20)

        self._checkpoint()
        envelope = client.authorize(obligation)
        self._report(Stage.CHECKING, "Payment authorization created", 40)

        self._checkpoint()
        self._report(Stage.EXECUTING, "Submitting payment...", 70)
        outcome = client.submit(app_id, code, envelope)
        if not outcome.reference:
            raise SettlementRejected("Payment settled without a transaction reference")

        return self._complete(outcome.reference, obligation.max_amount_required, obligation.network)

    def _run_fallback(self) -> PaymentResult:
        self._checkpoint()
        self._pause(_BALANCE_CHECK_DELAY)
        self._report(Stage.CHECKING, "Checking your balances across chains...", 25)

        self._checkpoint()
        self._report(Stage.BRIDGING, "Checking whether funds need bridging...", 40)
        if self._needs_bridge(self.request):
            logging.info("Bridging funds to %s", self.request.network)
            self._pause(_BRIDGE_DELAY)
        self._report(Stage.BRIDGING, "Funds available on target network", 70)

        self._checkpoint()
        self._report(Stage.EXECUTING, "Executing payment...", 85)
        self._pause(_EXECUTE_DELAY)

        reference = "0x" + secrets.token_hex(32)
        return self._complete(reference, self.request.max_amount_required, self.request.network)
