"""
Exception types raised by the x402 relay payment engine.
"""

from __future__ import annotations

from typing import Any, Optional

__all__ = [
    "ApiError",
    "InvalidChallenge",
    "JobError",
    "JobFailed",
    "JobNotFound",
    "JobTimeout",
    "PaymentError",
    "RelayError",
    "RelayRejected",
    "SettlementFailed",
    "SigningError",
    "SponsorUnavailable",
    "TransportError",
]


class PaymentError(Exception):
    """Base class for every failure surfaced by the payment engine."""


class InvalidChallenge(PaymentError):
    """The 402 body is missing fields or carries unusable values."""


class RelayError(PaymentError):
    """A relay step failed; ``reason`` holds the upstream explanation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class SponsorUnavailable(RelayError):
    """The relay did not advertise a usable fee sponsor."""


class RelayRejected(RelayError):
    """The relay refused to build a payment instruction."""


class SettlementFailed(RelayError):
    """The relay did not confirm settlement of the signed transaction."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or "unknown")


class SigningError(PaymentError):
    """The caller's key is not a required signer of the draft."""


class TransportError(PaymentError):
    """A network call to the paid API or the ledger got no usable response."""


class ApiError(PaymentError):
    """
    A non-payment error response from the paid API, kept verbatim.
    """

    def __init__(self, response: Any) -> None:
        self.response = response
        self.status_code: int = response.status_code
        self.body: str = response.text
        super().__init__(f"API responded with {self.status_code}: {self.body}")


class JobError(PaymentError):
    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id


class JobNotFound(JobError):
    def __init__(self, job_id: str) -> None:
        super().__init__(job_id, f"Job not found: {job_id}")


class JobFailed(JobError):
    def __init__(self, job_id: str, reason: Optional[str] = None) -> None:
        self.reason = reason or "Unknown error"
        super().__init__(job_id, f"Job failed: {self.reason}")


class JobTimeout(JobError):
    def __init__(self, job_id: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(job_id, f"Job timed out after {attempts} attempts")
