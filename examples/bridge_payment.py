"""
Minimal script that settles a provider QR code through the attestation bridge.
"""

from __future__ import annotations

import argparse
import logging
import sys

from x402_qrpay import ConfigError, X402Error, create_settlement_client, load_payment_config
from x402_qrpay.cli import _collect_overrides, _configure_logging, _env_override
from x402_qrpay.core.payloads import decode_envelope


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pay a provider QR code through the bridge")
    parser.add_argument("qr_code", help="Provider QR code string to settle")
    parser.add_argument(
        "--app-id",
        help="Application id registered with the provider (default: X402_BRIDGE_APP_ID)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--sandbox",
        action="store_true",
        help="Talk to the provider sandbox instead of production",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Discover and sign, print the X-PAYMENT header, but do not submit it",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    _configure_logging(args.log_level)

    try:
        config = load_payment_config(
            env_file=args.env_file,
            overrides=_collect_overrides(args.set or ()),
            sandbox=True if args.sandbox else None,
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_settlement_client(config=config)
    app_id = args.app_id or config.app_id
    logging.info("Paying as %s via %s", client.payer_address, config.bridge_url)

    try:
        obligation = client.discover(app_id, args.qr_code).first
        envelope = client.authorize(obligation)
    except X402Error as exc:
        logging.error("Could not prepare payment: %s", exc)
        return 1

    header = envelope.to_header()
    logging.info("X-PAYMENT header created (%d chars)", len(header))

    if args.dry_run:
        print(header)
        logging.info("Decoded envelope: %s", decode_envelope(header))
        return 0

    try:
        outcome = client.submit(app_id, args.qr_code, envelope)
    except X402Error as exc:
        logging.error("Settlement failed: %s", exc)
        return 1

    logging.info(
        "Payment settled on %s. Order %s, USD amount %s, reference %s",
        outcome.network,
        outcome.order_no,
        outcome.usd_amount,
        outcome.reference,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
