"""
Construction of the sponsored transfer transaction.

A draft is plain value data: the ordered instructions, the recent blockhash
it is anchored to and the fee payer. Nothing here performs I/O and no
function mutates a draft; every step returns a new one.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Mapping, Tuple, Union

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address, transfer
from spl.token.models import TransferParams

from .challenge import PaymentChallenge
from .errors import InvalidChallenge, RelayRejected

__all__ = [
    "AccountReference",
    "AccountRole",
    "DraftTransaction",
    "RelayInstruction",
    "append_relay_instruction",
    "build_transfer_draft",
    "canonical_instruction_data",
    "parse_address",
    "token_account",
]

AddressLike = Union[str, Pubkey]

_MAX_U64 = 2**64 - 1


class AccountRole(IntEnum):
    """Signer/writable flags packed the way the relay encodes them."""

    READONLY = 0
    WRITABLE = 1
    READONLY_SIGNER = 2
    WRITABLE_SIGNER = 3

    @property
    def is_signer(self) -> bool:
        return self >= AccountRole.READONLY_SIGNER

    @property
    def is_writable(self) -> bool:
        return bool(self & 1)


def parse_address(value: AddressLike, field_name: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str):
        raise InvalidChallenge(f"{field_name} must be a base58 address, got {value!r}")
    try:
        return Pubkey.from_string(value.strip())
    except ValueError as exc:
        raise InvalidChallenge(f"{field_name} is not a valid address: {value!r}") from exc


def token_account(owner: AddressLike, mint: AddressLike) -> Pubkey:
    """Associated token account of ``owner`` for ``mint``."""
    return get_associated_token_address(
        parse_address(owner, "owner"),
        parse_address(mint, "asset"),
    )


def _byte(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
        raise RelayRejected(f"Instruction data contains a non-byte value: {value!r}")
    return value


def canonical_instruction_data(raw: Any) -> bytes:
    """
    Reduce the relay's instruction payload to bytes.

    Accepted shapes: a flat list of ints, an object wrapping such a list under
    ``data`` (e.g. a serialised ``Buffer``), or a map of stringified indices
    (``{"0": 3, "1": 64, ...}``) whose keys must cover ``0..n-1``.
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, list):
        return bytes(_byte(item) for item in raw)
    if isinstance(raw, Mapping):
        if "data" in raw:
            return canonical_instruction_data(raw["data"])
        try:
            indexed = {int(key): value for key, value in raw.items()}
        except (TypeError, ValueError) as exc:
            raise RelayRejected("Instruction data map has non-numeric keys") from exc
        if sorted(indexed) != list(range(len(indexed))):
            raise RelayRejected("Instruction data map has missing indices")
        return bytes(_byte(indexed[index]) for index in range(len(indexed)))
    raise RelayRejected(f"Unsupported instruction data shape: {type(raw).__name__}")


@dataclass(frozen=True)
class AccountReference:
    address: str
    role: AccountRole

    def to_meta(self) -> AccountMeta:
        return AccountMeta(
            pubkey=Pubkey.from_string(self.address),
            is_signer=self.role.is_signer,
            is_writable=self.role.is_writable,
        )


@dataclass(frozen=True)
class RelayInstruction:
    """Instruction built by the relay, with its payload already normalised."""

    program_address: str
    accounts: Tuple[AccountReference, ...]
    data: bytes

    @classmethod
    def from_response(cls, payload: Any) -> "RelayInstruction":
        if not isinstance(payload, Mapping):
            raise RelayRejected("Relay returned a malformed payment instruction")

        program = payload.get("programAddress") or payload.get("programId")
        if not isinstance(program, str) or not program:
            raise RelayRejected("Relay instruction is missing its program address")
        _validate_relay_address(program, "program address")

        raw_accounts = payload.get("accounts") or []
        if not isinstance(raw_accounts, list):
            raise RelayRejected("Relay instruction accounts must be a list")

        accounts = []
        for index, entry in enumerate(raw_accounts):
            if not isinstance(entry, Mapping):
                raise RelayRejected(f"Relay instruction account[{index}] is malformed")
            address = entry.get("address") or entry.get("pubkey")
            if not isinstance(address, str):
                raise RelayRejected(f"Relay instruction account[{index}] has no address")
            _validate_relay_address(address, f"account[{index}]")
            try:
                role = AccountRole(entry.get("role"))
            except ValueError as exc:
                raise RelayRejected(
                    f"Relay instruction account[{index}] has unknown role {entry.get('role')!r}"
                ) from exc
            accounts.append(AccountReference(address=address, role=role))

        return cls(
            program_address=program,
            accounts=tuple(accounts),
            data=canonical_instruction_data(payload.get("data", [])),
        )

    def to_instruction(self) -> Instruction:
        return Instruction(
            Pubkey.from_string(self.program_address),
            self.data,
            [account.to_meta() for account in self.accounts],
        )


def _validate_relay_address(value: str, label: str) -> None:
    try:
        Pubkey.from_string(value)
    except ValueError as exc:
        raise RelayRejected(f"Relay instruction {label} is not a valid address: {value!r}") from exc


@dataclass(frozen=True)
class DraftTransaction:
    instructions: Tuple[Instruction, ...]
    anchor: Hash
    fee_payer: Pubkey

    @property
    def transfer_instruction(self) -> Instruction:
        return self.instructions[0]

    def compile(self) -> MessageV0:
        return MessageV0.try_compile(self.fee_payer, list(self.instructions), [], self.anchor)

    def serialize_unsigned(self) -> str:
        """Base64 wire form with every signature slot left empty."""
        message = self.compile()
        empty = [Signature.default()] * message.header.num_required_signatures
        transaction = VersionedTransaction.populate(message, empty)
        return base64.b64encode(bytes(transaction)).decode("ascii")


def build_transfer_draft(
    challenge: PaymentChallenge,
    sender_account: AddressLike,
    recipient_account: AddressLike,
    authority: AddressLike,
    fee_payer: AddressLike,
    anchor: Hash,
) -> DraftTransaction:
    """
    Draft holding a single SPL token transfer of ``challenge.amount`` from
    ``sender_account`` to ``recipient_account``, authorised by ``authority``.
    """
    if challenge.amount <= 0:
        raise InvalidChallenge(f"Payment amount must be positive, got {challenge.amount}")
    if challenge.amount > _MAX_U64:
        raise InvalidChallenge(f"Payment amount {challenge.amount} does not fit in u64")

    instruction = transfer(
        TransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=parse_address(sender_account, "sender account"),
            dest=parse_address(recipient_account, "recipient account"),
            owner=parse_address(authority, "authority"),
            amount=challenge.amount,
        )
    )
    return DraftTransaction(
        instructions=(instruction,),
        anchor=anchor,
        fee_payer=parse_address(fee_payer, "fee payer"),
    )


def append_relay_instruction(
    draft: DraftTransaction,
    relay_instruction: RelayInstruction,
) -> DraftTransaction:
    """Return a copy of ``draft`` with the relay instruction after the transfer."""
    if len(draft.instructions) != 1:
        raise ValueError("Relay instruction can only be appended to a transfer-only draft")
    return replace(
        draft,
        instructions=draft.instructions + (relay_instruction.to_instruction(),),
    )
