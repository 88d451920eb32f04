"""
Command-line interface for exercising the paid API through the relay.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Iterable, Sequence, Tuple

import requests

from .api import create_paid_client
from .core.client import PaidApiClient
from .core.config import ConfigError, load_client_config
from .core.errors import ApiError, PaymentError


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _json_body(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"--data must be valid JSON: {exc}") from exc


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    return {key: value for key, value in pairs}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x402-relay",
        description="Call an x402 paid API, settling payments through a fee-sponsoring relay",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing SVM_PRIVATE_KEY and X402_* settings (default: .env)",
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

    request = commands.add_parser("request", help="Issue a request, paying if the API asks for it")
    request.add_argument("method", help="HTTP method, e.g. POST")
    request.add_argument("path", help="Endpoint path relative to X402_API_URL")
    request.add_argument("--data", type=_json_body, default=None, help="JSON request body")
    request.add_argument(
        "--wait",
        action="store_true",
        help="Poll the job returned by the request until it completes",
    )

    status = commands.add_parser("job-status", help="Show the current status of a job")
    status.add_argument("job_id")

    wait = commands.add_parser("wait", help="Poll a job until it completes or fails")
    wait.add_argument("job_id")

    commands.add_parser("payment-info", help="Show current pricing for the paid API")
    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _run_command(
    args: argparse.Namespace,
    client: PaidApiClient,
    max_attempts: int,
    initial_delay: float,
) -> int:
    if args.command == "payment-info":
        _emit(client.payment_info())
        return 0

    if args.command == "job-status":
        job = client.get_job(args.job_id)
        _emit(
            {
                "job_id": job.id,
                "status": job.status,
                "video_url": job.result_url,
                "error": job.error,
                "is_complete": job.is_complete,
            }
        )
        return 0

    if args.command == "wait":
        job = client.wait_for_job(args.job_id, max_attempts, initial_delay)
        _emit(job.raw)
        return 0

    response = client.pay_and_request(args.path, args.data, method=args.method.upper())
    try:
        result = response.json()
    except ValueError:
        logging.error("Response body is not JSON: %s", response.text)
        return 1
    if args.wait:
        job_id = result.get("job_id") if isinstance(result, dict) else None
        if not job_id:
            logging.error("Response did not include a job_id to wait for: %s", result)
            return 1
        logging.info("Waiting for job %s", job_id)
        result = client.wait_for_job(job_id, max_attempts, initial_delay).raw
    _emit(result)
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_client_config(env_file=args.env_file, overrides=overrides)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    logging.info("Wallet: %s", config.wallet_address)
    client = create_paid_client(config=config)

    try:
        return _run_command(args, client, config.job_max_attempts, config.job_initial_delay)
    except ApiError as exc:
        logging.error("API request failed: %s", exc)
        return 1
    except PaymentError as exc:
        logging.error("%s: %s", type(exc).__name__, exc)
        return 1
    except requests.RequestException as exc:
        logging.error("Network request failed: %s", exc)
        return 1


def main() -> None:
    sys.exit(run_cli())
