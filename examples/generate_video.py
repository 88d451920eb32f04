"""
Minimal script that pays for a video generation request and waits for it.
"""

from __future__ import annotations

import argparse
import logging
import sys

from x402_relay import ConfigError, PaymentError, create_paid_client, load_client_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a video through the x402 paid API")
    parser.add_argument("prompt", help="Text description of the video to generate")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing SVM_PRIVATE_KEY and X402_* settings",
    )
    parser.add_argument(
        "--relay-url",
        help="Override the fee-sponsoring relay URL",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Poll the generation job until the video is ready",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = load_client_config(env_file=args.env_file, relay_url=args.relay_url)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_paid_client(config=config)
    logging.info("Paying from wallet %s", config.wallet_address)

    try:
        response = client.pay_and_request("/api/generate-x402", {"script_text": args.prompt})
        job = response.json()
        logging.info("Job created: %s (%s)", job.get("job_id"), job.get("status"))

        if args.wait:
            finished = client.wait_for_job(
                job["job_id"], config.job_max_attempts, config.job_initial_delay
            )
            logging.info("Video ready: %s", finished.result_url)
    except PaymentError as exc:
        logging.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
