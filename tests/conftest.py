"""
Shared pytest fixtures.
"""

from unittest.mock import MagicMock

import pytest

from x402_qrpay.core.codec import PaymentMetadata, PaymentRequest
from x402_qrpay.core.config import PaymentConfig

from factories import BRIDGE_URL, PAY_TO, PAYER_ADDRESS, USDC_BASE


@pytest.fixture
def mock_evm_private_key():
    """Deterministic key for signing tests."""
    return "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def config():
    return PaymentConfig(
        bridge_url=BRIDGE_URL,
        app_id="TEST000001",
        request_timeout_seconds=5,
        simulate_delays=False,
    )


@pytest.fixture
def mock_signer():
    signer = MagicMock()
    signer.address = PAYER_ADDRESS
    signer.sign_typed_data.return_value = "0x" + "ab" * 65
    return signer


@pytest.fixture
def http_session():
    return MagicMock()


@pytest.fixture
def bridge_request():
    return PaymentRequest(
        max_amount_required="550000",
        resource="/p2p-payment/1700000000000",
        pay_to=PAY_TO,
        asset=USDC_BASE,
        network="base",
        description="Coffee",
        metadata=PaymentMetadata(provider="aeon", app_id="APP-1", qr_code="VIETQR-PAYLOAD"),
    )


@pytest.fixture
def plain_request():
    return PaymentRequest(
        max_amount_required="500",
        resource="/p2p-payment/1700000000000",
        pay_to=PAY_TO,
        asset=USDC_BASE,
        network="base",
        description="Lunch",
    )
