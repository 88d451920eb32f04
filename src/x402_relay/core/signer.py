"""
Caller-side signing of sponsored transactions.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import base58
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import SigningError
from .transaction import DraftTransaction

__all__ = ["SignedProof", "Signer"]


@dataclass(frozen=True)
class SignedProof:
    """
    Base64 transaction carrying only the caller's signature; the fee payer
    slot stays empty until the relay co-signs at settlement.
    """

    transaction: str
    signature: str


class Signer:
    """
    Holds the caller's keypair. Signing is a pure function of the key and
    the message, so one instance can be shared across threads.
    """

    __slots__ = ("_keypair",)

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @classmethod
    def from_base58(cls, secret: str) -> "Signer":
        raw = base58.b58decode(secret.strip())
        if len(raw) != 64:
            raise ValueError(f"Expected a 64-byte secret key, got {len(raw)} bytes")
        return cls(Keypair.from_bytes(raw))

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def address(self) -> str:
        return str(self._keypair.pubkey())

    def __repr__(self) -> str:
        return f"Signer(address={self.address!r})"

    def partially_sign(self, draft: DraftTransaction) -> SignedProof:
        message = draft.compile()
        header = message.header
        required = list(message.account_keys[: header.num_required_signatures])
        try:
            position = required.index(self.pubkey)
        except ValueError as exc:
            raise SigningError(
                f"{self.address} is not a required signer of the transaction"
            ) from exc

        signatures = [Signature.default()] * len(required)
        signatures[position] = self._keypair.sign_message(to_bytes_versioned(message))
        transaction = VersionedTransaction.populate(message, signatures)
        return SignedProof(
            transaction=base64.b64encode(bytes(transaction)).decode("ascii"),
            signature=str(signatures[position]),
        )
