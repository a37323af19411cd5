"""
Public, high-level helpers for creating and paying x402 QR payment requests.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping, Optional

import requests

from .core.client import Obligation, SettlementClient, SettlementOutcome
from .core.codec import (
    PaymentMetadata,
    PaymentRequest,
    decode_payment_request,
)
from .core.config import PaymentConfig, PaymentParameters, load_payment_config
from .core.errors import CodecError
from .core.orchestrator import (
    BRIDGE_PROVIDER,
    PaymentOrchestrator,
    PaymentProgress,
    PaymentResult,
    PaymentSession,
)
from .core.payloads import SettlementEnvelope
from .core.registry import resolve_network, resolve_token
from .core.signers import LocalAccountSigner, Signer

__all__ = [
    "authorize_payment_request",
    "create_payment_request",
    "create_payment_session",
    "create_settlement_client",
    "pay_uri",
    "send_payment",
]


def _resolve_config(
    config: Optional[PaymentConfig],
    *,
    env_file: Optional[str],
    overrides: Optional[Mapping[str, str]],
    base: Optional[Mapping[str, str]],
    parameters: Optional[PaymentParameters],
    values: Mapping[str, Any],
) -> PaymentConfig:
    if config is not None:
        extras = (overrides, base, parameters, *values.values())
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built PaymentConfig or individual parameters, not both."
            )
        return config
    return load_payment_config(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        **{key: value for key, value in values.items() if value is not None},
    )


def _default_signer(config: PaymentConfig, signer: Optional[Signer]) -> Optional[Signer]:
    if signer is not None:
        return signer
    if config.payer_private_key:
        return LocalAccountSigner(config.payer_private_key)
    return None


def create_settlement_client(
    *,
    config: Optional[PaymentConfig] = None,
    signer: Optional[Signer] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[PaymentParameters] = None,
    payer_private_key: Optional[str] = None,
    payer_address: Optional[str] = None,
    sandbox: Optional[bool] = None,
    app_id: Optional[str] = None,
) -> SettlementClient:
    """
    Construct a :class:`SettlementClient`.

    Without an explicit ``signer`` the client signs with
    ``X402_PAYER_PRIVATE_KEY`` when one is configured.
    """
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        values={
            "payer_private_key": payer_private_key,
            "payer_address": payer_address,
            "sandbox": sandbox,
            "app_id": app_id,
        },
    )
    return SettlementClient(
        cfg,
        signer=_default_signer(cfg, signer),
        payer_address=cfg.payer_address,
        session=session,
    )


def create_payment_session(
    *,
    config: Optional[PaymentConfig] = None,
    signer: Optional[Signer] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[PaymentParameters] = None,
) -> PaymentSession:
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        values={},
    )
    signer = _default_signer(cfg, signer)
    return PaymentSession(
        config=cfg,
        payer_address=cfg.payer_address or (signer.address if signer else None),
        signer=signer,
        http=session,
    )


def create_payment_request(
    *,
    amount: str,
    pay_to: str,
    network: str,
    token: str = "USDC",
    description: Optional[str] = None,
    resource: Optional[str] = None,
    bridge_app_id: Optional[str] = None,
    bridge_code: Optional[str] = None,
    clock: Callable[[], float] = time.time,
) -> PaymentRequest:
    """
    Build the request a payee renders as an ``x402://`` QR code.

    Passing ``bridge_app_id`` marks the request for the attestation bridge.
    """
    resolve_network(network)
    asset = resolve_token(token, network)
    timestamp = int(clock() * 1000)
    default_resource = f"/p2p-payment/{timestamp}"

    bridged = bridge_app_id is not None
    metadata = PaymentMetadata(
        item_name=description or "Payment Request",
        timestamp=timestamp,
        seller=pay_to,
        token=token.upper(),
        provider=BRIDGE_PROVIDER if bridged else None,
        app_id=bridge_app_id,
        qr_code=(bridge_code or default_resource) if bridged else None,
    )
    return PaymentRequest(
        max_amount_required=str(amount),
        resource=resource or (bridge_code if bridged and bridge_code else default_resource),
        pay_to=pay_to,
        asset=asset,
        network=network,
        description=description or f"Payment request for {amount} {token.upper()}",
        metadata=metadata,
    )


def pay_uri(
    uri: str,
    payment_session: PaymentSession,
    *,
    on_progress: Optional[Callable[[PaymentProgress], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PaymentResult:
    """
    Decode ``uri`` and drive a single payment attempt to a terminal stage.

    A malformed URI is reported as a failed result rather than raised.
    """
    try:
        request = decode_payment_request(uri)
    except CodecError as exc:
        return PaymentResult(success=False, error=str(exc))

    orchestrator = PaymentOrchestrator(
        request,
        payment_session,
        on_progress=on_progress,
        sleep=sleep,
    )
    return orchestrator.confirm()


def send_payment(
    app_id: str,
    code: str,
    *,
    config: Optional[PaymentConfig] = None,
    signer: Optional[Signer] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
) -> SettlementOutcome:
    """
    Non-interactive discover, authorize and submit against the bridge.
    """
    client = create_settlement_client(
        config=config,
        signer=signer,
        session=session,
        env_file=env_file,
    )
    return client.pay(app_id, code)


def authorize_payment_request(
    request: PaymentRequest | str,
    *,
    amount: Optional[str | int] = None,
    config: Optional[PaymentConfig] = None,
    signer: Optional[Signer] = None,
    env_file: Optional[str] = ".env",
) -> SettlementEnvelope:
    """
    Sign an ``exact`` authorization straight from a scanned request.

    The window is ``X402_DEFAULT_TIMEOUT_SECONDS`` long, since a QR request
    carries no timeout of its own.
    """
    if isinstance(request, str):
        request = decode_payment_request(request)
    client = create_settlement_client(config=config, signer=signer, env_file=env_file)
    obligation = Obligation.from_payment_request(
        request,
        timeout_seconds=client.config.default_timeout_seconds,
    )
    return client.authorize(obligation, amount=amount)
