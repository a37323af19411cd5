"""
Helpers for constructing ERC-3009 transfer authorizations and the signed
envelopes carried in the ``X-PAYMENT`` header.
"""

from __future__ import annotations

import base64
import json
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from eth_utils import is_hex_address, to_checksum_address
from hexbytes import HexBytes

from .errors import AmountExceedsMaximum, InvalidAddress, InvalidAmount, InvalidTimeout

__all__ = [
    "X402_VERSION",
    "SCHEME_EXACT",
    "TRANSFER_WITH_AUTHORIZATION_TYPES",
    "TransferAuthorization",
    "SettlementEnvelope",
    "build_authorization",
    "to_typed_data",
    "encode_envelope",
    "decode_envelope",
]

X402_VERSION = 1
SCHEME_EXACT = "exact"

TRANSFER_WITH_AUTHORIZATION_TYPES: Dict[str, Any] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


@dataclass(frozen=True)
class TransferAuthorization:
    from_address: str
    to_address: str
    value: int
    valid_after: int
    valid_before: int
    nonce: bytes

    @property
    def nonce_hex(self) -> str:
        return "0x" + self.nonce.hex()

    def to_dict(self) -> Dict[str, str]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "value": str(self.value),
            "validAfter": str(self.valid_after),
            "validBefore": str(self.valid_before),
            "nonce": self.nonce_hex,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TransferAuthorization":
        return cls(
            from_address=payload["from"],
            to_address=payload["to"],
            value=int(payload["value"]),
            valid_after=int(payload["validAfter"]),
            valid_before=int(payload["validBefore"]),
            nonce=bytes(HexBytes(payload["nonce"])),
        )


@dataclass(frozen=True)
class SettlementEnvelope:
    network: str
    authorization: TransferAuthorization
    signature: str
    scheme: str = SCHEME_EXACT
    x402_version: int = X402_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x402Version": self.x402_version,
            "scheme": self.scheme,
            "network": self.network,
            "payload": {
                "signature": self.signature,
                "authorization": self.authorization.to_dict(),
            },
        }

    def to_header(self) -> str:
        return encode_envelope(self.to_dict())


def _parse_amount(raw: Any, field_name: str) -> int:
    # Atomic units travel as plain ASCII digit strings.
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise InvalidAmount(field_name, raw)
    text = str(raw)
    if not (text.isascii() and text.isdigit()):
        raise InvalidAmount(field_name, raw)
    return int(text)


def _require_address(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not is_hex_address(value):
        raise InvalidAddress(field_name, value)
    return to_checksum_address(value)


def build_authorization(
    obligation: Any,
    payer_address: str,
    declared_timeout_seconds: int,
    amount_override: Optional[str | int] = None,
    *,
    now: Optional[int] = None,
    nonce: Optional[bytes] = None,
    clock: Callable[[], float] = time.time,
) -> TransferAuthorization:
    """
    Construct a fresh authorization for ``obligation``.

    ``obligation`` only needs ``max_amount_required`` and ``pay_to``
    attributes. Every call draws a new 32-byte nonce unless one is given,
    and the window opens at the current wall-clock second.
    """
    if declared_timeout_seconds <= 0:
        raise InvalidTimeout(declared_timeout_seconds)

    maximum = _parse_amount(obligation.max_amount_required, "maxAmountRequired")
    if amount_override is None:
        value = maximum
    else:
        value = _parse_amount(amount_override, "amount")
        if value > maximum:
            raise AmountExceedsMaximum(value, maximum)

    now = int(clock()) if now is None else now
    nonce_bytes = nonce if nonce is not None else secrets.token_bytes(32)
    if len(nonce_bytes) != 32:
        raise ValueError("Authorization nonce must be exactly 32 bytes")

    return TransferAuthorization(
        from_address=_require_address(payer_address, "from"),
        to_address=_require_address(obligation.pay_to, "payTo"),
        value=value,
        valid_after=now,
        valid_before=now + declared_timeout_seconds,
        nonce=nonce_bytes,
    )


def to_typed_data(
    authorization: TransferAuthorization,
    asset_address: str,
    chain_id: int,
    token_name: str,
    token_version: str,
) -> Dict[str, Any]:
    """Build the EIP-712 structure signed for ``transferWithAuthorization``."""
    return {
        "types": TRANSFER_WITH_AUTHORIZATION_TYPES,
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": token_name,
            "version": token_version,
            "chainId": chain_id,
            "verifyingContract": _require_address(asset_address, "asset"),
        },
        "message": {
            "from": authorization.from_address,
            "to": authorization.to_address,
            "value": authorization.value,
            "validAfter": authorization.valid_after,
            "validBefore": authorization.valid_before,
            "nonce": HexBytes(authorization.nonce),
        },
    }


def encode_envelope(payload: Dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def decode_envelope(encoded: str) -> Dict[str, Any]:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))
