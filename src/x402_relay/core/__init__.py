"""
Core primitives that implement the sponsored x402 payment lifecycle.
"""

from .challenge import PaymentChallenge, parse_payment_required
from .client import DEFAULT_PAYMENT_INFO, PaidApiClient
from .config import ClientConfig, ClientParameters, ConfigError, load_client_config
from .environment import ClientEnvironment, build_environment, load_env_file
from .errors import (
    ApiError,
    InvalidChallenge,
    JobError,
    JobFailed,
    JobNotFound,
    JobTimeout,
    PaymentError,
    RelayError,
    RelayRejected,
    SettlementFailed,
    SigningError,
    SponsorUnavailable,
    TransportError,
)
from .ledger import LedgerClient
from .orchestrator import Negotiation, NegotiationState, PaymentOrchestrator
from .payloads import PAYMENT_HEADER, encode_payment_header
from .poller import Job, JobPoller, backoff_delays
from .relay import FeeSponsor, RelayClient, SettlementResult
from .signer import SignedProof, Signer
from .transaction import (
    AccountReference,
    AccountRole,
    DraftTransaction,
    RelayInstruction,
    append_relay_instruction,
    build_transfer_draft,
    canonical_instruction_data,
)

__all__ = [
    "AccountReference",
    "AccountRole",
    "ApiError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientParameters",
    "ConfigError",
    "DEFAULT_PAYMENT_INFO",
    "DraftTransaction",
    "FeeSponsor",
    "InvalidChallenge",
    "Job",
    "JobError",
    "JobFailed",
    "JobNotFound",
    "JobPoller",
    "JobTimeout",
    "LedgerClient",
    "Negotiation",
    "NegotiationState",
    "PAYMENT_HEADER",
    "PaidApiClient",
    "PaymentChallenge",
    "PaymentError",
    "PaymentOrchestrator",
    "RelayClient",
    "RelayError",
    "RelayInstruction",
    "RelayRejected",
    "SettlementFailed",
    "SettlementResult",
    "SignedProof",
    "Signer",
    "SigningError",
    "SponsorUnavailable",
    "TransportError",
    "append_relay_instruction",
    "backoff_delays",
    "build_environment",
    "build_transfer_draft",
    "canonical_instruction_data",
    "encode_payment_header",
    "load_client_config",
    "load_env_file",
    "parse_payment_required",
]
