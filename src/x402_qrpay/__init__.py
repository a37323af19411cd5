"""
Public facade for the x402 QR payment package.

The most useful pieces are re-exported here so integrators can
``from x402_qrpay import ...`` without navigating the package.
"""

from .api import (
    authorize_payment_request,
    create_payment_request,
    create_payment_session,
    create_settlement_client,
    pay_uri,
    send_payment,
)
from .core import (
    ConfigError,
    LocalAccountSigner,
    PaymentConfig,
    PaymentMetadata,
    PaymentOrchestrator,
    PaymentParameters,
    PaymentProgress,
    PaymentRequest,
    PaymentResult,
    PaymentSession,
    SettlementClient,
    SettlementOutcome,
    Stage,
    X402Error,
    decode_payment_request,
    encode_payment_request,
    load_payment_config,
    resolve_network,
    resolve_token,
)

__all__ = (
    "authorize_payment_request",
    "ConfigError",
    "LocalAccountSigner",
    "PaymentConfig",
    "PaymentMetadata",
    "PaymentOrchestrator",
    "PaymentParameters",
    "PaymentProgress",
    "PaymentRequest",
    "PaymentResult",
    "PaymentSession",
    "SettlementClient",
    "SettlementOutcome",
    "Stage",
    "X402Error",
    "create_payment_request",
    "create_payment_session",
    "create_settlement_client",
    "decode_payment_request",
    "encode_payment_request",
    "load_payment_config",
    "pay_uri",
    "resolve_network",
    "resolve_token",
    "send_payment",
)
