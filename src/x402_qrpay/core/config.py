"""
Configuration objects and helpers for x402 QR payments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_utils import is_hex_address, to_checksum_address

from .environment import PaymentEnvironment, build_environment
from .errors import ConfigError
from .signers import normalize_private_key

__all__ = [
    "BRIDGE_PROD_URL",
    "BRIDGE_SANDBOX_URL",
    "DEFAULT_APP_ID",
    "ConfigError",
    "PaymentConfig",
    "PaymentParameters",
    "load_payment_config",
]

BRIDGE_SANDBOX_URL = "https://ai-api-sbx.aeon.xyz"
BRIDGE_PROD_URL = "https://ai-api.aeon.xyz"
DEFAULT_APP_ID = "TEST000001"

_PARAMETER_TO_ENV_KEY = {
    "payer_private_key": "X402_PAYER_PRIVATE_KEY",
    "payer_address": "X402_PAYER_ADDRESS",
    "sandbox": "X402_BRIDGE_SANDBOX",
    "bridge_url": "X402_BRIDGE_BASE_URL",
    "app_id": "X402_BRIDGE_APP_ID",
    "enable_bridge_payments": "X402_ENABLE_BRIDGE_PAYMENTS",
    "request_timeout_seconds": "X402_REQUEST_TIMEOUT_SECONDS",
    "token_name": "X402_TOKEN_NAME",
    "token_version": "X402_TOKEN_VERSION",
    "default_timeout_seconds": "X402_DEFAULT_TIMEOUT_SECONDS",
    "simulate_delays": "X402_SIMULATE_DELAYS",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class PaymentParameters:
    """
    Explicit parameter bundle for constructing :class:`PaymentConfig`.

    Every field left as ``None`` falls through to the environment.
    """

    payer_private_key: Optional[str] = None
    payer_address: Optional[str] = None
    sandbox: Optional[bool | str] = None
    bridge_url: Optional[str] = None
    app_id: Optional[str] = None
    enable_bridge_payments: Optional[bool | str] = None
    request_timeout_seconds: Optional[float | int | str] = None
    token_name: Optional[str] = None
    token_version: Optional[str] = None
    default_timeout_seconds: Optional[int | str] = None
    simulate_delays: Optional[bool | str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _normalize_address(raw_address: str, field_name: str) -> str:
    value = raw_address.strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex_address(value):
        raise ConfigError(f"{field_name} is not a valid EVM address")
    return to_checksum_address(value)


def _positive_number(raw: str, field_name: str, kind: type) -> Any:
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{field_name} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigError(f"{field_name} must be greater than zero")
    return value


@dataclass(frozen=True)
class PaymentConfig:
    bridge_url: str
    app_id: str
    request_timeout_seconds: float
    payer_private_key: Optional[str] = None
    payer_address: Optional[str] = None
    enable_bridge_payments: bool = False
    token_name: str = "USD Coin"
    token_version: str = "2"
    default_timeout_seconds: int = 60
    simulate_delays: bool = True

    def __repr__(self) -> str:
        # Keeps the private key out of logs and tracebacks.
        return (
            f"PaymentConfig(bridge_url={self.bridge_url!r}, app_id={self.app_id!r}, "
            f"payer_address={self.payer_address!r}, "
            f"enable_bridge_payments={self.enable_bridge_payments!r})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "PaymentConfig":
        environment = (
            values if isinstance(values, PaymentEnvironment) else PaymentEnvironment(values)
        )

        sandbox = environment.flag("X402_BRIDGE_SANDBOX")
        bridge_url = environment.get("X402_BRIDGE_BASE_URL") or (
            BRIDGE_SANDBOX_URL if sandbox else BRIDGE_PROD_URL
        )

        private_key = environment.get("X402_PAYER_PRIVATE_KEY")
        payer_address = environment.get("X402_PAYER_ADDRESS")
        if private_key:
            private_key = normalize_private_key(private_key)
            if payer_address is None:
                payer_address = Account.from_key(private_key).address
        else:
            private_key = None
        if payer_address is not None:
            payer_address = _normalize_address(payer_address, "X402_PAYER_ADDRESS")

        return cls(
            bridge_url=bridge_url.rstrip("/"),
            app_id=environment.get("X402_BRIDGE_APP_ID") or DEFAULT_APP_ID,
            request_timeout_seconds=_positive_number(
                environment.get("X402_REQUEST_TIMEOUT_SECONDS", "30"),
                "X402_REQUEST_TIMEOUT_SECONDS",
                float,
            ),
            payer_private_key=private_key,
            payer_address=payer_address,
            enable_bridge_payments=environment.flag("X402_ENABLE_BRIDGE_PAYMENTS"),
            token_name=environment.get("X402_TOKEN_NAME", "USD Coin"),
            token_version=environment.get("X402_TOKEN_VERSION", "2"),
            default_timeout_seconds=_positive_number(
                environment.get("X402_DEFAULT_TIMEOUT_SECONDS", "60"),
                "X402_DEFAULT_TIMEOUT_SECONDS",
                int,
            ),
            simulate_delays=environment.flag("X402_SIMULATE_DELAYS", default=True),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[PaymentParameters] = None,
    ) -> "PaymentConfig":
        merged_overrides = dict(overrides or {})
        if parameters is not None:
            merged_overrides.update(parameters.as_overrides())

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment)


def load_payment_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[PaymentParameters] = None,
    **values: Any,
) -> PaymentConfig:
    """
    Convenience wrapper around :meth:`PaymentConfig.from_env`.

    Keyword arguments named after :class:`PaymentParameters` fields override
    both ``parameters`` and the environment.
    """
    unknown = set(values) - set(_PARAMETER_TO_ENV_KEY)
    if unknown:
        raise TypeError(f"Unknown payment parameter(s): {', '.join(sorted(unknown))}")

    merged = dict(overrides or {})
    if parameters is not None:
        merged.update(parameters.as_overrides())
    merged.update(PaymentParameters(**values).as_overrides())

    return PaymentConfig.from_env(env_file=env_file, overrides=merged, base=base)
