"""
Exception hierarchy shared by every x402 QR payment component.

Codec and registry errors are raised synchronously to the caller. Errors raised
while settling are caught by the orchestrator and reported as a failed attempt
with ``str(exc)`` preserved verbatim.
"""

from __future__ import annotations

__all__ = [
    "X402Error",
    "ConfigError",
    "CodecError",
    "MalformedUri",
    "InvalidEncoding",
    "InvalidPayload",
    "MissingField",
    "RegistryError",
    "UnknownNetwork",
    "UnknownToken",
    "TokenUnavailableOnNetwork",
    "AuthorizationError",
    "InvalidTimeout",
    "InvalidAmount",
    "AmountExceedsMaximum",
    "InvalidAddress",
    "SigningFailed",
    "SettlementError",
    "WalletNotInitialized",
    "UnexpectedResponse",
    "SettlementRejected",
    "AttemptInProgress",
    "InvalidStageTransition",
    "PaymentCancelled",
]


class X402Error(Exception):
    """Base class for all package errors."""


class ConfigError(X402Error):
    """Raised when the supplied configuration is invalid."""


class CodecError(X402Error):
    """Raised when a discovery string cannot be turned into a payment request."""


class MalformedUri(CodecError):
    pass


class InvalidEncoding(CodecError):
    pass


class InvalidPayload(CodecError):
    pass


class MissingField(CodecError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid payment request: missing {name}")


class RegistryError(X402Error):
    pass


class UnknownNetwork(RegistryError):
    def __init__(self, network: str):
        self.network = network
        super().__init__(f"Unknown network: {network}")


class UnknownToken(RegistryError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unknown token: {symbol}")


class TokenUnavailableOnNetwork(RegistryError):
    def __init__(self, symbol: str, network: str):
        self.symbol = symbol
        self.network = network
        super().__init__(f"Token {symbol} not available on {network}")


class AuthorizationError(X402Error):
    pass


class InvalidTimeout(AuthorizationError):
    def __init__(self, timeout_seconds: int):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Authorization timeout must be positive, got {timeout_seconds}"
        )


class InvalidAmount(AuthorizationError):
    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} must be a non-negative decimal integer, got {value!r}")


class AmountExceedsMaximum(AuthorizationError):
    def __init__(self, amount: int, maximum: int):
        self.amount = amount
        self.maximum = maximum
        super().__init__(
            f"Amount {amount} exceeds the maximum required amount {maximum}"
        )


class InvalidAddress(AuthorizationError):
    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} is not a valid EVM address: {value!r}")


class SigningFailed(AuthorizationError):
    pass


class SettlementError(X402Error):
    pass


class WalletNotInitialized(SettlementError):
    def __init__(self) -> None:
        super().__init__("Wallet not initialized: a payer address is required")


class UnexpectedResponse(SettlementError):
    pass


class SettlementRejected(SettlementError):
    def __init__(self, message: str, *, code: str | None = None):
        self.code = code
        super().__init__(message)


class AttemptInProgress(X402Error):
    pass


class InvalidStageTransition(X402Error):
    pass


class PaymentCancelled(X402Error):
    pass
