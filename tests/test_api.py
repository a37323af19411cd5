"""
Tests for the high-level helpers.
"""

from dataclasses import replace

import pytest

from x402_qrpay import (
    authorize_payment_request,
    create_payment_request,
    create_payment_session,
    create_settlement_client,
    pay_uri,
    send_payment,
)
from x402_qrpay.core.codec import encode_payment_request
from x402_qrpay.core.errors import AmountExceedsMaximum, UnknownToken, WalletNotInitialized
from x402_qrpay.core.orchestrator import Stage

from factories import (
    PAY_TO,
    PAYER_ADDRESS,
    USDC_BASE,
    discovery_body,
    make_response,
    settlement_body,
)


class TestCreatePaymentRequest:
    def test_plain_request(self):
        request = create_payment_request(
            amount="500", pay_to=PAY_TO, network="base", clock=lambda: 1_700_000_000
        )
        assert request.asset == USDC_BASE
        assert request.resource == "/p2p-payment/1700000000000"
        assert request.description == "Payment request for 500 USDC"
        assert request.metadata.timestamp == 1_700_000_000_000
        assert request.metadata.seller == PAY_TO
        assert request.metadata.provider is None

    def test_bridge_request(self):
        request = create_payment_request(
            amount="550000",
            pay_to=PAY_TO,
            network="base",
            bridge_app_id="APP-1",
            bridge_code="VIETQR-PAYLOAD",
        )
        assert request.metadata.provider == "aeon"
        assert request.metadata.app_id == "APP-1"
        assert request.metadata.qr_code == "VIETQR-PAYLOAD"
        assert request.resource == "VIETQR-PAYLOAD"

    def test_unknown_token(self):
        with pytest.raises(UnknownToken):
            create_payment_request(amount="1", pay_to=PAY_TO, network="base", token="DOGE")


def test_pay_uri_reports_malformed_uri(config, mock_signer):
    session = create_payment_session(config=config, signer=mock_signer)
    result = pay_uri("not-a-uri", session)
    assert not result.success
    assert "x402://" in result.error


def test_pay_uri_bridge_flow(config, mock_signer, http_session, bridge_request):
    http_session.get.side_effect = [
        make_response(discovery_body()),
        make_response(settlement_body()),
    ]
    session = create_payment_session(config=config, signer=mock_signer, session=http_session)
    events = []

    result = pay_uri(encode_payment_request(bridge_request), session, on_progress=events.append)

    assert result.success
    assert result.settlement_reference == "0xabc123"
    assert events[-1].stage is Stage.COMPLETE


def test_config_and_parameters_are_exclusive(config):
    with pytest.raises(ValueError):
        create_settlement_client(config=config, app_id="APP-2")


def test_settlement_client_uses_configured_key(mock_evm_private_key, http_session):
    client = create_settlement_client(
        env_file=None,
        base={},
        payer_private_key=mock_evm_private_key,
        session=http_session,
    )
    assert client.payer_address is not None
    assert client.payer_address.startswith("0x")


def test_send_payment(config, mock_signer, http_session):
    http_session.get.side_effect = [
        make_response(discovery_body()),
        make_response(settlement_body()),
    ]
    outcome = send_payment("APP-1", "QR-1", config=config, signer=mock_signer, session=http_session)
    assert outcome.success
    params = http_session.get.call_args_list[0].kwargs["params"]
    assert params["address"] == PAYER_ADDRESS


class TestAuthorizePaymentRequest:
    def test_window_uses_default_timeout(self, config, mock_signer, plain_request):
        config = replace(config, default_timeout_seconds=45)

        envelope = authorize_payment_request(
            encode_payment_request(plain_request), config=config, signer=mock_signer
        )

        authorization = envelope.authorization
        assert authorization.valid_before - authorization.valid_after == 45
        assert authorization.value == 500
        assert envelope.network == "base"
        typed_data = mock_signer.sign_typed_data.call_args.args[0]
        assert typed_data["domain"]["chainId"] == 8453
        assert typed_data["domain"]["name"] == config.token_name

    def test_accepts_decoded_request_and_lower_amount(self, config, mock_signer, plain_request):
        envelope = authorize_payment_request(
            plain_request, amount="200", config=config, signer=mock_signer
        )
        assert envelope.authorization.value == 200

        with pytest.raises(AmountExceedsMaximum):
            authorize_payment_request(
                plain_request, amount="501", config=config, signer=mock_signer
            )

    def test_requires_signer(self, config, plain_request):
        with pytest.raises(WalletNotInitialized):
            authorize_payment_request(plain_request, config=config)
