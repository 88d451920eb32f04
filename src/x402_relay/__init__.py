"""
Public facade for the sponsored x402 payment client.

Integrators can ``from x402_relay import ...`` the client factory, the
engine components and every error type without navigating the package.
"""

from .api import create_orchestrator, create_paid_client, pay_and_request
from .core import (
    ApiError,
    ClientConfig,
    ClientParameters,
    ConfigError,
    InvalidChallenge,
    Job,
    JobFailed,
    JobNotFound,
    JobPoller,
    JobTimeout,
    LedgerClient,
    NegotiationState,
    PaidApiClient,
    PaymentChallenge,
    PaymentError,
    PaymentOrchestrator,
    RelayClient,
    RelayRejected,
    SettlementFailed,
    SettlementResult,
    Signer,
    SponsorUnavailable,
    TransportError,
    build_environment,
    load_client_config,
    load_env_file,
    parse_payment_required,
)

__all__ = (
    "ApiError",
    "ClientConfig",
    "ClientParameters",
    "ConfigError",
    "InvalidChallenge",
    "Job",
    "JobFailed",
    "JobNotFound",
    "JobPoller",
    "JobTimeout",
    "LedgerClient",
    "NegotiationState",
    "PaidApiClient",
    "PaymentChallenge",
    "PaymentError",
    "PaymentOrchestrator",
    "RelayClient",
    "RelayRejected",
    "SettlementFailed",
    "SettlementResult",
    "Signer",
    "SponsorUnavailable",
    "TransportError",
    "build_environment",
    "create_orchestrator",
    "create_paid_client",
    "load_client_config",
    "load_env_file",
    "parse_payment_required",
    "pay_and_request",
)

__version__ = "0.1.0"
