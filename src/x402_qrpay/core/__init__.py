"""
Core primitives that implement the x402 QR payment lifecycle.
"""

from .client import (
    Obligation,
    ObligationSet,
    SettlementClient,
    SettlementOutcome,
)
from .codec import (
    PaymentMetadata,
    PaymentRequest,
    decode_payment_request,
    encode_payment_request,
)
from .config import PaymentConfig, PaymentParameters, load_payment_config
from .environment import PaymentEnvironment, build_environment, load_env_file
from .errors import (
    AmountExceedsMaximum,
    AttemptInProgress,
    ConfigError,
    InvalidAddress,
    InvalidAmount,
    InvalidEncoding,
    InvalidPayload,
    InvalidStageTransition,
    InvalidTimeout,
    MalformedUri,
    MissingField,
    PaymentCancelled,
    SettlementRejected,
    SigningFailed,
    TokenUnavailableOnNetwork,
    UnexpectedResponse,
    UnknownNetwork,
    UnknownToken,
    WalletNotInitialized,
    X402Error,
)
from .orchestrator import (
    PaymentAttempt,
    PaymentOrchestrator,
    PaymentProgress,
    PaymentResult,
    PaymentSession,
    Stage,
    bridge_parameters,
    is_bridge_payment,
)
from .payloads import (
    SettlementEnvelope,
    TransferAuthorization,
    build_authorization,
    decode_envelope,
    encode_envelope,
    to_typed_data,
)
from .registry import (
    NetworkDescriptor,
    explorer_url,
    format_address,
    format_amount,
    resolve_network,
    resolve_token,
)
from .signers import LocalAccountSigner, Signer

__all__ = [
    "AmountExceedsMaximum",
    "AttemptInProgress",
    "ConfigError",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidEncoding",
    "InvalidPayload",
    "InvalidStageTransition",
    "InvalidTimeout",
    "MalformedUri",
    "MissingField",
    "PaymentCancelled",
    "SettlementRejected",
    "SigningFailed",
    "TokenUnavailableOnNetwork",
    "UnexpectedResponse",
    "UnknownNetwork",
    "UnknownToken",
    "WalletNotInitialized",
    "X402Error",
    "LocalAccountSigner",
    "NetworkDescriptor",
    "Obligation",
    "ObligationSet",
    "PaymentAttempt",
    "PaymentConfig",
    "PaymentEnvironment",
    "PaymentMetadata",
    "PaymentOrchestrator",
    "PaymentParameters",
    "PaymentProgress",
    "PaymentRequest",
    "PaymentResult",
    "PaymentSession",
    "SettlementClient",
    "SettlementEnvelope",
    "SettlementOutcome",
    "Signer",
    "Stage",
    "TransferAuthorization",
    "bridge_parameters",
    "build_authorization",
    "build_environment",
    "decode_envelope",
    "decode_payment_request",
    "encode_envelope",
    "encode_payment_request",
    "explorer_url",
    "format_address",
    "format_amount",
    "is_bridge_payment",
    "load_env_file",
    "load_payment_config",
    "resolve_network",
    "resolve_token",
    "to_typed_data",
]
