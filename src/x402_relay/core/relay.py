"""
HTTP client helpers for the fee-sponsoring relay.

Three endpoints are used, in this order, once per negotiation: discovery of
the fee sponsor, construction of the relay's payment instruction, and
settlement of the partially signed transaction.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type

import requests
from solders.pubkey import Pubkey

from .challenge import PaymentChallenge
from .errors import RelayError, RelayRejected, SettlementFailed, SponsorUnavailable
from .payloads import build_instruction_request, build_settlement_request
from .signer import SignedProof
from .transaction import DraftTransaction, RelayInstruction

__all__ = [
    "FeeSponsor",
    "RelayClient",
    "SettlementResult",
    "request_payment_instruction",
    "resolve_fee_sponsor",
    "settle_payment",
]

TENANT_HEADER = "X-Tenant-Id"
DISCOVERY_PATH = "/supported"
INSTRUCTION_PATH = "/payment-instruction"
SETTLEMENT_PATH = "/settle"
DEFAULT_TIMEOUT = 30


def _failure_reason(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    reason = payload.get("errorReason") or payload.get("error")
    if isinstance(reason, dict):
        reason = reason.get("message") or json.dumps(reason)
    return str(reason) if reason else None


def _decode(
    response: requests.Response,
    url: str,
    error_cls: Type[RelayError],
    *,
    tolerate_status: bool = False,
) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise error_cls(
            f"Relay responded with {response.status_code} and no JSON at {url}: {response.text}"
        ) from exc

    if response.status_code >= 400 and not tolerate_status:
        raise error_cls(
            _failure_reason(payload)
            or f"Relay responded with {response.status_code}: {response.text}"
        )
    if not isinstance(payload, dict):
        raise error_cls(f"Relay returned a non-object body at {url}")
    return payload


def _send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    tenant_id: str,
    error_cls: Type[RelayError],
    body: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    tolerate_status: bool = False,
) -> Dict[str, Any]:
    try:
        response = session.request(
            method,
            url,
            json=body,
            params=params,
            headers={TENANT_HEADER: tenant_id},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise error_cls(f"Relay request to {url} failed: {exc}") from exc
    return _decode(response, url, error_cls, tolerate_status=tolerate_status)


@dataclass(frozen=True)
class FeeSponsor:
    """Provisional fee payer; valid only for the negotiation that resolved it."""

    address: str
    tenant_id: str


def resolve_fee_sponsor(
    session: requests.Session,
    relay_url: str,
    tenant_id: str,
    *,
    scheme: str = "exact",
    network: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> FeeSponsor:
    url = f"{relay_url}{DISCOVERY_PATH}"
    logging.info("Resolving fee sponsor for tenant %s at %s", tenant_id, url)
    payload = _send(
        session,
        "GET",
        url,
        tenant_id=tenant_id,
        params={"tenantId": tenant_id},
        error_cls=SponsorUnavailable,
        timeout=timeout,
    )

    kinds = payload.get("kinds")
    if not isinstance(kinds, list):
        raise SponsorUnavailable("Relay discovery response has no 'kinds'")

    for kind in kinds:
        if not isinstance(kind, dict):
            continue
        if kind.get("scheme", scheme) != scheme:
            continue
        if network is not None and kind.get("network", network) != network:
            continue
        extra = kind.get("extra")
        if not isinstance(extra, dict):
            continue
        fee_payer = extra.get("feePayer")
        if isinstance(fee_payer, str) and fee_payer:
            return FeeSponsor(address=fee_payer, tenant_id=tenant_id)

    raise SponsorUnavailable(f"Relay advertises no fee payer for tenant {tenant_id}")


def request_payment_instruction(
    session: requests.Session,
    relay_url: str,
    draft: DraftTransaction,
    asset: str,
    sender_address: str,
    tenant_id: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[RelayInstruction, str]:
    """
    Submit ``draft`` unsigned and return the relay's instruction together
    with the signer the relay will pay fees from.
    """
    url = f"{relay_url}{INSTRUCTION_PATH}"
    logging.info("Requesting payment instruction from %s", url)
    payload = _send(
        session,
        "POST",
        url,
        tenant_id=tenant_id,
        body=build_instruction_request(draft, asset, sender_address),
        error_cls=RelayRejected,
        timeout=timeout,
    )

    reason = _failure_reason(payload)
    if reason:
        raise RelayRejected(reason)
    if not payload.get("payment_instruction"):
        raise RelayRejected("Relay response is missing 'payment_instruction'")

    signer_address = payload.get("signer_address")
    if not isinstance(signer_address, str) or not signer_address:
        raise RelayRejected("Relay response is missing 'signer_address'")
    try:
        Pubkey.from_string(signer_address)
    except ValueError as exc:
        raise RelayRejected(f"Relay signer address is invalid: {signer_address!r}") from exc

    return RelayInstruction.from_response(payload["payment_instruction"]), signer_address


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    network: Optional[str]
    transaction: Optional[str]
    error_reason: Optional[str]
    raw: Dict[str, Any]

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "SettlementResult":
        return cls(
            success=payload.get("success") is True,
            network=payload.get("network"),
            transaction=payload.get("transaction"),
            error_reason=_failure_reason(payload),
            raw=payload,
        )


def settle_payment(
    session: requests.Session,
    relay_url: str,
    proof: SignedProof,
    challenge: PaymentChallenge,
    signer_address: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> SettlementResult:
    url = f"{relay_url}{SETTLEMENT_PATH}"
    logging.info("Submitting payment for settlement to %s", url)
    payload = _send(
        session,
        "POST",
        url,
        tenant_id=challenge.tenant_id,
        body=build_settlement_request(proof, challenge, signer_address),
        error_cls=SettlementFailed,
        timeout=timeout,
        tolerate_status=True,
    )

    result = SettlementResult.from_response(payload)
    if not result.success:
        raise SettlementFailed(result.error_reason)
    if not result.transaction:
        raise SettlementFailed("Relay confirmed settlement without a transaction id")
    return result


class RelayClient:
    """
    Thin convenience wrapper around the relay endpoints.
    """

    def __init__(
        self,
        relay_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.relay_url = relay_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve_fee_sponsor(
        self,
        tenant_id: str,
        *,
        scheme: str = "exact",
        network: Optional[str] = None,
    ) -> FeeSponsor:
        return resolve_fee_sponsor(
            self.session,
            self.relay_url,
            tenant_id,
            scheme=scheme,
            network=network,
            timeout=self.timeout,
        )

    def request_instruction(
        self,
        draft: DraftTransaction,
        asset: str,
        sender_address: str,
        tenant_id: str,
    ) -> Tuple[RelayInstruction, str]:
        return request_payment_instruction(
            self.session,
            self.relay_url,
            draft,
            asset,
            sender_address,
            tenant_id,
            timeout=self.timeout,
        )

    def settle(
        self,
        proof: SignedProof,
        challenge: PaymentChallenge,
        signer_address: str,
    ) -> SettlementResult:
        return settle_payment(
            self.session,
            self.relay_url,
            proof,
            challenge,
            signer_address,
            timeout=self.timeout,
        )
