import base64
import json

import pytest

from x402_qrpay.core.codec import (
    PaymentMetadata,
    PaymentRequest,
    decode_payment_request,
    encode_payment_request,
)
from x402_qrpay.core.errors import (
    InvalidEncoding,
    InvalidPayload,
    MalformedUri,
    MissingField,
)

from factories import PAY_TO, USDC_BASE


def _uri_for(payload) -> str:
    raw = json.dumps(payload).encode("utf-8")
    return "x402://" + base64.b64encode(raw).decode("ascii")


def _full_payload(**overrides):
    payload = {
        "maxAmountRequired": "500",
        "resource": "/p2p-payment/1",
        "payTo": PAY_TO,
        "asset": USDC_BASE,
        "network": "base",
    }
    payload.update(overrides)
    return payload


class TestRoundTrip:
    def test_ascii_description(self, plain_request):
        assert decode_payment_request(encode_payment_request(plain_request)) == plain_request

    def test_non_ascii_description(self):
        request = PaymentRequest(
            max_amount_required="120000",
            resource="/p2p-payment/2",
            pay_to=PAY_TO,
            asset=USDC_BASE,
            network="base",
            description="Cà phê sữa đá ☕ for 2",
        )
        assert decode_payment_request(encode_payment_request(request)) == request

    def test_metadata_with_unknown_keys(self):
        metadata = PaymentMetadata(
            provider="aeon",
            app_id="APP-1",
            qr_code="000201010212",
            timestamp=1700000000000,
            token="USDC",
            extra={"table": 7, "tags": ["a", "b"]},
        )
        request = PaymentRequest(
            max_amount_required="1",
            pay_to=PAY_TO,
            asset=USDC_BASE,
            network="base",
            metadata=metadata,
        )
        decoded = decode_payment_request(encode_payment_request(request))
        assert decoded == request
        assert decoded.metadata.extra == {"table": 7, "tags": ["a", "b"]}

    def test_extra_cannot_shadow_named_metadata(self):
        with pytest.raises(InvalidPayload, match="provider"):
            PaymentMetadata(provider="aeon", extra={"provider": "other"})

    def test_unknown_metadata_keys_survive_alongside_named_ones(self):
        request = PaymentRequest(
            max_amount_required="500",
            pay_to=PAY_TO,
            asset=PAY_TO,
            network="base",
            metadata=PaymentMetadata(provider="aeon", extra={"providerNote": "other"}),
        )
        decoded = decode_payment_request(encode_payment_request(request))
        assert decoded == request
        assert decoded.metadata.provider == "aeon"
        assert decoded.metadata.extra == {"providerNote": "other"}

    def test_encoding_is_deterministic(self, bridge_request):
        assert encode_payment_request(bridge_request) == encode_payment_request(bridge_request)

    def test_uses_standard_base64_alphabet(self):
        request = PaymentRequest(
            max_amount_required="1",
            pay_to=PAY_TO,
            asset=USDC_BASE,
            network="base",
            description="??>??>??>",
        )
        uri = encode_payment_request(request)
        assert uri.startswith("x402://")
        body = uri[len("x402://"):]
        assert "-" not in body and "_" not in body
        assert json.loads(base64.b64decode(body))["description"] == "??>??>??>"

    def test_canonical_field_order(self, plain_request):
        body = encode_payment_request(plain_request)[len("x402://"):]
        keys = list(json.loads(base64.b64decode(body)).keys())
        assert keys == ["maxAmountRequired", "resource", "payTo", "asset", "network", "description"]


class TestDecodeErrors:
    def test_missing_scheme(self):
        with pytest.raises(MalformedUri):
            decode_payment_request("https://example.com/pay")

    def test_non_string_input(self):
        with pytest.raises(MalformedUri):
            decode_payment_request(None)

    def test_invalid_base64(self):
        with pytest.raises(InvalidEncoding):
            decode_payment_request("x402://not base64!!")

    def test_invalid_utf8(self):
        uri = "x402://" + base64.b64encode(b"\xff\xfe\xfd").decode("ascii")
        with pytest.raises(InvalidEncoding):
            decode_payment_request(uri)

    def test_invalid_json(self):
        uri = "x402://" + base64.b64encode(b"{not json").decode("ascii")
        with pytest.raises(InvalidPayload):
            decode_payment_request(uri)

    def test_json_array_is_rejected(self):
        with pytest.raises(InvalidPayload):
            decode_payment_request(_uri_for(["maxAmountRequired"]))

    def test_metadata_must_be_object(self):
        with pytest.raises(InvalidPayload):
            decode_payment_request(_uri_for(_full_payload(metadata="aeon")))

    def test_missing_pay_to(self):
        payload = _full_payload()
        del payload["payTo"]
        with pytest.raises(MissingField) as excinfo:
            decode_payment_request(_uri_for(payload))
        assert excinfo.value.name == "payTo"

    def test_missing_amount_reported_first(self):
        payload = _full_payload()
        for name in ("maxAmountRequired", "payTo", "asset", "network"):
            del payload[name]
        with pytest.raises(MissingField) as excinfo:
            decode_payment_request(_uri_for(payload))
        assert excinfo.value.name == "maxAmountRequired"

    def test_asset_checked_before_network(self):
        payload = _full_payload()
        del payload["asset"]
        del payload["network"]
        with pytest.raises(MissingField) as excinfo:
            decode_payment_request(_uri_for(payload))
        assert excinfo.value.name == "asset"

    @pytest.mark.parametrize("value", [None, "", 0, False])
    def test_falsy_values_count_as_missing(self, value):
        with pytest.raises(MissingField) as excinfo:
            decode_payment_request(_uri_for(_full_payload(maxAmountRequired=value)))
        assert excinfo.value.name == "maxAmountRequired"

    def test_zero_string_amount_is_present(self):
        request = decode_payment_request(_uri_for(_full_payload(maxAmountRequired="0")))
        assert request.max_amount_required == "0"


def test_addresses_and_amounts_are_not_validated():
    request = decode_payment_request(
        _uri_for(_full_payload(payTo="not-an-address", maxAmountRequired="abc"))
    )
    assert request.pay_to == "not-an-address"
    assert request.max_amount_required == "abc"


def test_native_asset_sentinel():
    request = decode_payment_request(_uri_for(_full_payload(asset="0x" + "0" * 40)))
    assert request.is_native_asset
