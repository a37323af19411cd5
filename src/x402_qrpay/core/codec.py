"""
Encoding and decoding of ``x402://`` payment request URIs.

A URI is the scheme prefix followed by the standard-alphabet base64 encoding
of the request serialized as UTF-8 JSON. Field order is fixed so that encoding
the same request always yields the same bytes.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidEncoding, InvalidPayload, MalformedUri, MissingField

__all__ = [
    "SCHEME",
    "URI_PREFIX",
    "REQUIRED_FIELDS",
    "NATIVE_ASSET",
    "PaymentMetadata",
    "PaymentRequest",
    "encode_payment_request",
    "decode_payment_request",
]

SCHEME = "x402"
URI_PREFIX = f"{SCHEME}://"

# Checked in this order; the first missing one is reported.
REQUIRED_FIELDS = ("maxAmountRequired", "payTo", "asset", "network")

NATIVE_ASSET = "0x" + "0" * 40

# JSON values that count as a missing mandatory field.
_ABSENT = (None, "", 0, False)

_METADATA_KEYS = {
    "provider": "provider",
    "appId": "app_id",
    "qrCode": "qr_code",
    "itemName": "item_name",
    "itemDescription": "item_description",
    "timestamp": "timestamp",
    "seller": "seller",
    "token": "token",
}


@dataclass(frozen=True)
class PaymentMetadata:
    """
    Typed view over the open ``metadata`` map.

    Keys the settlement dialect and the payee generator understand get their
    own attributes; anything else is kept verbatim in ``extra``.
    """

    provider: Optional[str] = None
    app_id: Optional[str] = None
    qr_code: Optional[str] = None
    item_name: Optional[str] = None
    item_description: Optional[str] = None
    timestamp: Optional[int] = None
    seller: Optional[str] = None
    token: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        clashing = sorted(set(self.extra) & set(_METADATA_KEYS))
        if clashing:
            raise InvalidPayload(
                f"Metadata extra keys shadow named fields: {', '.join(clashing)}"
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PaymentMetadata":
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in values.items():
            attr = _METADATA_KEYS.get(key)
            if attr is None:
                extra[key] = value
            else:
                known[attr] = value
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for key, attr in _METADATA_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        payload.update(self.extra)
        return payload


@dataclass(frozen=True)
class PaymentRequest:
    max_amount_required: str
    pay_to: str
    asset: str
    network: str
    resource: str = ""
    description: Optional[str] = None
    metadata: Optional[PaymentMetadata] = None

    @property
    def is_native_asset(self) -> bool:
        return self.asset.lower() == NATIVE_ASSET

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "maxAmountRequired": self.max_amount_required,
            "resource": self.resource,
            "payTo": self.pay_to,
            "asset": self.asset,
            "network": self.network,
        }
        if self.description is not None:
            payload["description"] = self.description
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PaymentRequest":
        for name in REQUIRED_FIELDS:
            if payload.get(name) in _ABSENT:
                raise MissingField(name)

        raw_metadata = payload.get("metadata")
        if raw_metadata is not None and not isinstance(raw_metadata, Mapping):
            raise InvalidPayload("Invalid payment request: metadata must be an object")

        return cls(
            max_amount_required=payload["maxAmountRequired"],
            pay_to=payload["payTo"],
            asset=payload["asset"],
            network=payload["network"],
            resource=payload.get("resource", ""),
            description=payload.get("description"),
            metadata=(
                PaymentMetadata.from_mapping(raw_metadata)
                if raw_metadata is not None
                else None
            ),
        )


def encode_payment_request(request: PaymentRequest) -> str:
    """Serialize ``request`` into an ``x402://`` URI."""
    payload = json.dumps(request.to_dict(), ensure_ascii=False, separators=(",", ":"))
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return URI_PREFIX + encoded


def decode_payment_request(uri: str) -> PaymentRequest:
    """
    Parse an ``x402://`` URI back into a :class:`PaymentRequest`.

    Only the presence of the mandatory fields is checked. Address shapes and
    amounts are left for the consumer to validate.
    """
    if not isinstance(uri, str) or not uri.startswith(URI_PREFIX):
        raise MalformedUri(f"Invalid x402 URI: must start with {URI_PREFIX}")

    body = uri[len(URI_PREFIX):].strip()
    try:
        raw = base64.b64decode(body, validate=True)
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError) as exc:
        raise InvalidEncoding(
            f"Invalid x402 URI: payload is not valid base64 UTF-8 ({exc})"
        ) from exc

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPayload(f"Invalid x402 URI: payload is not valid JSON ({exc})") from exc

    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid x402 URI: payload must be a JSON object")

    return PaymentRequest.from_dict(payload)
