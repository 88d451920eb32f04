"""
Helpers for constructing the JSON bodies exchanged with the relay and the
paid API.
"""

from __future__ import annotations

import base64
import json
from typing import TYPE_CHECKING, Any, Dict

from .challenge import PaymentChallenge

if TYPE_CHECKING:
    from .signer import SignedProof
    from .transaction import DraftTransaction

__all__ = [
    "PAYMENT_HEADER",
    "build_instruction_request",
    "build_payment_payload",
    "build_payment_requirements",
    "build_settlement_request",
    "encode_payment_header",
]

PAYMENT_HEADER = "X-PAYMENT"


def build_instruction_request(
    draft: "DraftTransaction",
    asset: str,
    sender_address: str,
) -> Dict[str, Any]:
    """Body for the relay's instruction endpoint; the draft goes unsigned."""
    return {
        "transaction": draft.serialize_unsigned(),
        "feeToken": asset,
        "sourceWallet": sender_address,
    }


def build_payment_payload(challenge: PaymentChallenge, transaction: str) -> Dict[str, Any]:
    return {
        "x402Version": challenge.x402_version,
        "scheme": challenge.scheme,
        "network": challenge.network,
        "payload": {"transaction": transaction},
    }


def build_payment_requirements(
    challenge: PaymentChallenge,
    fee_payer: str,
) -> Dict[str, Any]:
    """
    Echo the challenge back to the relay with the authoritative fee payer
    recorded under ``extra``.
    """
    requirements = dict(challenge.raw)
    requirements.update(
        {
            "scheme": challenge.scheme,
            "network": challenge.network,
            "maxAmountRequired": str(challenge.amount),
            "payTo": challenge.pay_to,
            "asset": challenge.asset,
            "resource": challenge.resource,
        }
    )
    extra = dict(requirements.get("extra") or {})
    extra.update({"feePayer": fee_payer, "tenantId": challenge.tenant_id})
    requirements["extra"] = extra
    return requirements


def build_settlement_request(
    proof: "SignedProof",
    challenge: PaymentChallenge,
    fee_payer: str,
) -> Dict[str, Any]:
    return {
        "x402Version": challenge.x402_version,
        "paymentPayload": build_payment_payload(challenge, proof.transaction),
        "paymentRequirements": build_payment_requirements(challenge, fee_payer),
    }


def encode_payment_header(challenge: PaymentChallenge, transaction_id: str) -> str:
    """Value of the ``X-PAYMENT`` header presented on the replayed request."""
    payload = build_payment_payload(challenge, transaction_id)
    encoded = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(encoded).decode("ascii")
