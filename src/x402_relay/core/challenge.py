"""
Parsing of the payment requirements carried by an HTTP 402 response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .errors import InvalidChallenge

__all__ = ["PaymentChallenge", "parse_payment_required"]

DEFAULT_SCHEME = "exact"
X402_VERSION = 1


def _require_str(values: Mapping[str, Any], key: str) -> str:
    value = values.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidChallenge(f"Payment requirements are missing '{key}'")
    return value.strip()


def _parse_amount(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidChallenge(f"maxAmountRequired must be an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise InvalidChallenge(f"maxAmountRequired must be an integer, got {raw!r}")


@dataclass(frozen=True)
class PaymentChallenge:
    """
    One entry of the ``accepts`` list of a 402 body.

    ``amount`` is expressed in the asset's smallest unit. ``raw`` keeps the
    entry exactly as received so it can be echoed back to the relay.
    """

    network: str
    pay_to: str
    asset: str
    amount: int
    tenant_id: str
    resource: str = ""
    scheme: str = DEFAULT_SCHEME
    x402_version: int = X402_VERSION
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_requirements(
        cls,
        requirements: Mapping[str, Any],
        *,
        x402_version: int = X402_VERSION,
    ) -> "PaymentChallenge":
        if not isinstance(requirements, Mapping):
            raise InvalidChallenge("Payment requirements must be a JSON object")

        extra = requirements.get("extra") or {}
        if not isinstance(extra, Mapping):
            raise InvalidChallenge("Payment requirements 'extra' must be a JSON object")

        resource = requirements.get("resource") or ""
        return cls(
            network=_require_str(requirements, "network"),
            pay_to=_require_str(requirements, "payTo"),
            asset=_require_str(requirements, "asset"),
            amount=_parse_amount(requirements.get("maxAmountRequired")),
            tenant_id=_require_str(extra, "tenantId"),
            resource=str(resource),
            scheme=str(requirements.get("scheme") or DEFAULT_SCHEME),
            x402_version=x402_version,
            raw=dict(requirements),
        )


def parse_payment_required(body: Any) -> PaymentChallenge:
    """
    Return the first offered challenge of a 402 body. Later entries of
    ``accepts`` are ignored.
    """
    if not isinstance(body, Mapping):
        raise InvalidChallenge("402 body must be a JSON object")

    accepts = body.get("accepts")
    if not isinstance(accepts, list) or not accepts:
        raise InvalidChallenge("402 body does not offer any payment requirements")

    version = body.get("x402Version", X402_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidChallenge(f"Unsupported x402Version {version!r}")

    return PaymentChallenge.from_requirements(accepts[0], x402_version=version)
