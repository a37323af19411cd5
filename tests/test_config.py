import pytest
from eth_account import Account
from eth_utils import to_checksum_address

from x402_qrpay.core.config import (
    BRIDGE_PROD_URL,
    BRIDGE_SANDBOX_URL,
    PaymentConfig,
    PaymentParameters,
    load_payment_config,
)
from x402_qrpay.core.environment import build_environment, load_env_file
from x402_qrpay.core.errors import ConfigError

from factories import PAY_TO


def test_defaults_from_empty_environment():
    config = PaymentConfig.from_mapping({})
    assert config.bridge_url == BRIDGE_PROD_URL
    assert config.app_id == "TEST000001"
    assert config.request_timeout_seconds == 30.0
    assert config.default_timeout_seconds == 60
    assert config.token_name == "USD Coin"
    assert config.token_version == "2"
    assert config.enable_bridge_payments is False
    assert config.simulate_delays is True
    assert config.payer_private_key is None
    assert config.payer_address is None


def test_sandbox_flag_selects_sandbox_url():
    config = PaymentConfig.from_mapping({"X402_BRIDGE_SANDBOX": "yes"})
    assert config.bridge_url == BRIDGE_SANDBOX_URL


def test_explicit_base_url_wins_and_is_trimmed():
    config = PaymentConfig.from_mapping(
        {"X402_BRIDGE_SANDBOX": "true", "X402_BRIDGE_BASE_URL": "https://bridge.local/"}
    )
    assert config.bridge_url == "https://bridge.local"


def test_payer_derived_from_private_key(mock_evm_private_key):
    config = PaymentConfig.from_mapping({"X402_PAYER_PRIVATE_KEY": mock_evm_private_key[2:]})
    assert config.payer_private_key == mock_evm_private_key
    assert config.payer_address == Account.from_key(mock_evm_private_key).address


def test_private_key_hidden_from_repr(mock_evm_private_key):
    config = PaymentConfig.from_mapping({"X402_PAYER_PRIVATE_KEY": mock_evm_private_key})
    assert mock_evm_private_key[2:] not in repr(config)


def test_payer_address_is_checksummed():
    config = PaymentConfig.from_mapping({"X402_PAYER_ADDRESS": PAY_TO[2:]})
    assert config.payer_address == to_checksum_address(PAY_TO)


@pytest.mark.parametrize(
    "values",
    [
        {"X402_PAYER_ADDRESS": "merchant"},
        {"X402_PAYER_PRIVATE_KEY": "0x1234"},
        {"X402_REQUEST_TIMEOUT_SECONDS": "soon"},
        {"X402_REQUEST_TIMEOUT_SECONDS": "0"},
        {"X402_DEFAULT_TIMEOUT_SECONDS": "-1"},
    ],
)
def test_invalid_values(values):
    with pytest.raises(ConfigError):
        PaymentConfig.from_mapping(values)


def test_flags_accept_common_spellings():
    for raw in ("1", "TRUE", "yes", "On"):
        config = PaymentConfig.from_mapping({"X402_ENABLE_BRIDGE_PAYMENTS": raw})
        assert config.enable_bridge_payments
    config = PaymentConfig.from_mapping({"X402_SIMULATE_DELAYS": "off"})
    assert config.simulate_delays is False


def test_env_file_parsing(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local settings\n"
        "export X402_BRIDGE_APP_ID=APP-FILE\n"
        'X402_TOKEN_NAME="USD Coin Bridged"\n'
        "X402_TOKEN_VERSION='3'\n"
        "X402_REQUEST_TIMEOUT_SECONDS=12 # seconds\n"
        "not a pair\n",
        encoding="utf-8",
    )

    config = PaymentConfig.from_env(env_file=str(env_file), base={})

    assert config.app_id == "APP-FILE"
    assert config.token_name == "USD Coin Bridged"
    assert config.token_version == "3"
    assert config.request_timeout_seconds == 12.0


def test_env_file_does_not_replace_base(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("X402_BRIDGE_APP_ID=FROM-FILE\n", encoding="utf-8")

    environment = build_environment(
        env_file=str(env_file),
        base={"X402_BRIDGE_APP_ID": "FROM-PROCESS"},
    )

    assert environment.get("X402_BRIDGE_APP_ID") == "FROM-PROCESS"


def test_missing_env_file_is_ignored(tmp_path):
    config = PaymentConfig.from_env(env_file=str(tmp_path / "absent.env"), base={})
    assert config.app_id == "TEST000001"


def test_load_env_file_into_mapping(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("A=1\nB=2\n", encoding="utf-8")
    target = {"A": "0"}
    merged = load_env_file(str(env_file), environ=target)
    assert merged == {"A": "0", "B": "2"}


def test_overrides_take_precedence(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("X402_BRIDGE_APP_ID=FROM-FILE\n", encoding="utf-8")

    config = PaymentConfig.from_env(
        env_file=str(env_file),
        base={},
        overrides={"X402_BRIDGE_APP_ID": "FROM-OVERRIDE"},
    )

    assert config.app_id == "FROM-OVERRIDE"


def test_parameters_bundle():
    parameters = PaymentParameters(sandbox=True, app_id="APP-9", request_timeout_seconds=7)
    assert parameters.as_overrides() == {
        "X402_BRIDGE_SANDBOX": "true",
        "X402_BRIDGE_APP_ID": "APP-9",
        "X402_REQUEST_TIMEOUT_SECONDS": "7",
    }

    config = PaymentConfig.from_env(env_file=None, base={}, parameters=parameters)

    assert config.bridge_url == BRIDGE_SANDBOX_URL
    assert config.app_id == "APP-9"
    assert config.request_timeout_seconds == 7.0


def test_load_payment_config_keywords_win():
    config = load_payment_config(
        env_file=None,
        base={"X402_BRIDGE_APP_ID": "FROM-BASE"},
        parameters=PaymentParameters(app_id="FROM-PARAMETERS"),
        app_id="FROM-KEYWORD",
        simulate_delays=False,
    )
    assert config.app_id == "FROM-KEYWORD"
    assert config.simulate_delays is False


def test_load_payment_config_rejects_unknown_keywords():
    with pytest.raises(TypeError, match="colour"):
        load_payment_config(env_file=None, base={}, colour="blue")
