"""
Public, high-level helpers that wire the payment engine together.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from .core.client import PaidApiClient
from .core.config import ClientConfig, ClientParameters, load_client_config
from .core.ledger import LedgerClient
from .core.orchestrator import PaymentOrchestrator
from .core.relay import RelayClient

__all__ = ["create_orchestrator", "create_paid_client", "pay_and_request"]


def create_orchestrator(
    config: ClientConfig,
    *,
    session: Optional[requests.Session] = None,
    ledger: Optional[LedgerClient] = None,
) -> PaymentOrchestrator:
    relay = RelayClient(config.relay_url, session=session)
    return PaymentOrchestrator(
        relay=relay,
        signer=config.signer,
        ledger=ledger or LedgerClient(config.rpc_url),
    )


def create_paid_client(
    *,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    ledger: Optional[LedgerClient] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
) -> PaidApiClient:
    """
    Construct a :class:`PaidApiClient` with its relay, ledger and signer.

    Callers can either supply a ready-made :class:`ClientConfig` or let the
    helper assemble one from environment data.
    """
    if config is not None:
        if any(item for item in (overrides, base, parameters)):
            raise ValueError(
                "Provide either a pre-built ClientConfig or environment overrides, not both."
            )
        cfg = config
    else:
        cfg = load_client_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
        )

    session = session or requests.Session()
    return PaidApiClient(
        cfg.api_url,
        create_orchestrator(cfg, session=session, ledger=ledger),
        session=session,
        timeout=cfg.request_timeout,
    )


def pay_and_request(
    endpoint: str,
    body: Optional[Any] = None,
    *,
    method: str = "POST",
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
) -> requests.Response:
    """
    One-shot helper: build a client from ``config`` or the environment and
    issue a single, paid if necessary, request.
    """
    client = create_paid_client(config=config, session=session, env_file=env_file)
    return client.pay_and_request(endpoint, body, method=method)
