"""
Signer capability used by the settlement client.

Anything exposing an ``address`` and a ``sign_typed_data`` method can be
plugged in; :class:`LocalAccountSigner` signs with a raw private key through
``eth_account``.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address

from .errors import ConfigError

__all__ = ["Signer", "LocalAccountSigner", "normalize_private_key"]


@runtime_checkable
class Signer(Protocol):
    @property
    def address(self) -> str: ...

    def sign_typed_data(self, typed_data: Dict[str, Any]) -> str: ...


def normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    return key


class LocalAccountSigner:
    """Signs EIP-712 payloads with a locally held key."""

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(normalize_private_key(private_key))

    @property
    def address(self) -> str:
        return to_checksum_address(self._account.address)

    def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        signable = encode_typed_data(full_message=typed_data)
        signature = self._account.sign_message(signable).signature
        return "0x" + bytes(signature).hex()

    def __repr__(self) -> str:
        return f"LocalAccountSigner(address={self.address!r})"
