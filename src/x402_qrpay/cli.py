"""
Command-line interface for creating, inspecting and paying x402 QR requests.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, Sequence, Tuple

import requests

from .api import (
    authorize_payment_request,
    create_payment_request,
    create_payment_session,
    pay_uri,
)
from .core.codec import decode_payment_request, encode_payment_request
from .core.config import load_payment_config
from .core.errors import ConfigError, X402Error
from .core.orchestrator import PaymentProgress


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x402-qrpay",
        description="Create, inspect and pay x402 QR payment requests",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings (default: .env)",
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
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    encode = commands.add_parser("encode", help="Print an x402:// URI for a new request")
    encode.add_argument("--amount", required=True, help="Amount in token units")
    encode.add_argument("--pay-to", required=True, help="Recipient wallet address")
    encode.add_argument("--network", default="base", help="Network key (default: base)")
    encode.add_argument("--token", default="USDC", help="Token symbol (default: USDC)")
    encode.add_argument("--description", default=None)
    encode.add_argument(
        "--bridge-app-id",
        default=None,
        help="Mark the request for the attestation bridge with this application id",
    )
    encode.add_argument("--bridge-code", default=None, help="Provider QR code string")

    decode = commands.add_parser("decode", help="Decode an x402:// URI to JSON")
    decode.add_argument("uri")

    pay = commands.add_parser("pay", help="Pay an x402:// URI")
    pay.add_argument("uri")

    authorize = commands.add_parser(
        "authorize",
        help="Sign an authorization for an x402:// URI and print the X-PAYMENT header",
    )
    authorize.add_argument("uri")
    authorize.add_argument("--amount", default=None, help="Pay less than the requested amount")
    return parser


def _log_progress(progress: PaymentProgress) -> None:
    logging.info("%s (%d%%): %s", progress.stage.value, progress.progress, progress.message)


def _run_encode(args: argparse.Namespace) -> int:
    try:
        request = create_payment_request(
            amount=args.amount,
            pay_to=args.pay_to,
            network=args.network,
            token=args.token,
            description=args.description,
            bridge_app_id=args.bridge_app_id,
            bridge_code=args.bridge_code,
        )
    except X402Error as exc:
        logging.error("Cannot create payment request: %s", exc)
        return 1
    print(encode_payment_request(request))
    return 0


def _run_decode(args: argparse.Namespace) -> int:
    try:
        request = decode_payment_request(args.uri)
    except X402Error as exc:
        logging.error("Cannot decode payment request: %s", exc)
        return 1
    json.dump(request.to_dict(), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def _run_pay(args: argparse.Namespace) -> int:
    overrides = _collect_overrides(args.set or ())
    try:
        payment_session = create_payment_session(
            env_file=args.env_file,
            overrides=overrides,
            session=requests.Session(),
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        result = pay_uri(args.uri, payment_session, on_progress=_log_progress)
    except X402Error as exc:
        logging.error("Cannot start payment: %s", exc)
        return 1
    if not result.success:
        logging.error("Payment failed: %s", result.error)
        return 1

    logging.info(
        "Payment settled on %s. Reference: %s",
        result.network,
        result.settlement_reference,
    )
    return 0


def _run_authorize(args: argparse.Namespace) -> int:
    try:
        config = load_payment_config(
            env_file=args.env_file,
            overrides=_collect_overrides(args.set or ()),
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        envelope = authorize_payment_request(args.uri, amount=args.amount, config=config)
    except X402Error as exc:
        logging.error("Cannot authorize payment: %s", exc)
        return 1
    print(envelope.to_header())
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    handlers = {
        "encode": _run_encode,
        "decode": _run_decode,
        "pay": _run_pay,
        "authorize": _run_authorize,
    }
    return handlers[args.command](args)


def main() -> None:
    sys.exit(run_cli())
