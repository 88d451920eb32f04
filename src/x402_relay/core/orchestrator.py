"""
Payment negotiation state machine.

A negotiation turns one 402 challenge into a settled transaction id:

    CHALLENGED -> SPONSOR_RESOLVED -> DRAFTED -> INSTRUCTION_OBTAINED
        -> FINALIZED -> SIGNED -> SETTLED -> PAID

Every step runs exactly once and in order. Any failure moves the
negotiation to FAILED and the originating error propagates to the caller,
who may start over with a fresh negotiation. The transaction is drafted
twice: first with the sponsor advertised by the relay so the relay can
inspect a well-formed transaction, then again with the signer the relay
assigns, which takes precedence over the advertised sponsor.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from solders.hash import Hash

from .challenge import PaymentChallenge
from .ledger import LedgerClient
from .relay import FeeSponsor, RelayClient, SettlementResult
from .signer import SignedProof, Signer
from .transaction import (
    DraftTransaction,
    RelayInstruction,
    append_relay_instruction,
    build_transfer_draft,
    token_account,
)

__all__ = ["Negotiation", "NegotiationState", "PaymentOrchestrator"]


class NegotiationState(Enum):
    CHALLENGED = "challenged"
    SPONSOR_RESOLVED = "sponsor_resolved"
    DRAFTED = "drafted"
    INSTRUCTION_OBTAINED = "instruction_obtained"
    FINALIZED = "finalized"
    SIGNED = "signed"
    SETTLED = "settled"
    PAID = "paid"
    FAILED = "failed"


@dataclass
class Negotiation:
    """Record of a single negotiation. Never reused after it ends."""

    challenge: PaymentChallenge
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: NegotiationState = NegotiationState.CHALLENGED
    history: List[NegotiationState] = field(
        default_factory=lambda: [NegotiationState.CHALLENGED]
    )
    sponsor: Optional[FeeSponsor] = None
    anchor: Optional[Hash] = None
    draft: Optional[DraftTransaction] = None
    instruction: Optional[RelayInstruction] = None
    signer_address: Optional[str] = None
    final_draft: Optional[DraftTransaction] = None
    proof: Optional[SignedProof] = None
    settlement: Optional[SettlementResult] = None
    error: Optional[Exception] = None

    @property
    def transaction_id(self) -> Optional[str]:
        if self.state is not NegotiationState.PAID or self.settlement is None:
            return None
        return self.settlement.transaction

    def advance(self, state: NegotiationState) -> None:
        self.state = state
        self.history.append(state)
        logging.info("Negotiation %s -> %s", self.id, state.value)

    def fail(self, error: Exception) -> None:
        self.error = error
        self.advance(NegotiationState.FAILED)


class PaymentOrchestrator:
    def __init__(self, relay: RelayClient, signer: Signer, ledger: LedgerClient) -> None:
        self.relay = relay
        self.signer = signer
        self.ledger = ledger

    def fulfill(self, challenge: PaymentChallenge) -> str:
        """Pay ``challenge`` and return the settled transaction id."""
        negotiation = self.negotiate(challenge)
        return negotiation.transaction_id

    def negotiate(self, challenge: PaymentChallenge) -> Negotiation:
        negotiation = Negotiation(challenge=challenge)
        logging.info(
            "Negotiation %s started: %s of %s to %s on %s",
            negotiation.id,
            challenge.amount,
            challenge.asset,
            challenge.pay_to,
            challenge.network,
        )
        try:
            self._run(negotiation)
        except Exception as exc:
            logging.error("Negotiation %s failed: %s", negotiation.id, exc)
            negotiation.fail(exc)
            raise
        return negotiation

    def _run(self, negotiation: Negotiation) -> None:
        challenge = negotiation.challenge
        caller = self.signer.pubkey

        negotiation.sponsor = self.relay.resolve_fee_sponsor(
            challenge.tenant_id, scheme=challenge.scheme
        )
        negotiation.advance(NegotiationState.SPONSOR_RESOLVED)

        sender_account = token_account(caller, challenge.asset)
        recipient_account = token_account(challenge.pay_to, challenge.asset)
        negotiation.anchor = self.ledger.latest_anchor()
        negotiation.draft = build_transfer_draft(
            challenge,
            sender_account,
            recipient_account,
            caller,
            negotiation.sponsor.address,
            negotiation.anchor,
        )
        negotiation.advance(NegotiationState.DRAFTED)

        negotiation.instruction, negotiation.signer_address = self.relay.request_instruction(
            negotiation.draft,
            challenge.asset,
            self.signer.address,
            challenge.tenant_id,
        )
        negotiation.advance(NegotiationState.INSTRUCTION_OBTAINED)
        if negotiation.signer_address != negotiation.sponsor.address:
            logging.warning(
                "Relay assigned fee payer %s instead of advertised sponsor %s",
                negotiation.signer_address,
                negotiation.sponsor.address,
            )

        rebuilt = build_transfer_draft(
            challenge,
            sender_account,
            recipient_account,
            caller,
            negotiation.signer_address,
            negotiation.draft.anchor,
        )
        negotiation.final_draft = append_relay_instruction(rebuilt, negotiation.instruction)
        negotiation.advance(NegotiationState.FINALIZED)

        negotiation.proof = self.signer.partially_sign(negotiation.final_draft)
        negotiation.advance(NegotiationState.SIGNED)

        negotiation.settlement = self.relay.settle(
            negotiation.proof, challenge, negotiation.signer_address
        )
        negotiation.advance(NegotiationState.SETTLED)
        logging.info(
            "Payment settled on %s. Transaction: %s",
            negotiation.settlement.network or challenge.network,
            negotiation.settlement.transaction,
        )
        negotiation.advance(NegotiationState.PAID)
