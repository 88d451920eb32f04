from __future__ import annotations

import json
from unittest.mock import Mock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from x402_relay.core.challenge import PaymentChallenge
from x402_relay.core.signer import Signer
from x402_relay.core.transaction import RelayInstruction

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SOLANA_MAINNET = "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp"
TENANT = "tenant-unreel"


@pytest.fixture
def make_response():
    def _make(status_code: int = 200, payload=None, text: str | None = None) -> Mock:
        response = Mock()
        response.status_code = status_code
        if payload is None and text is not None:
            response.json.side_effect = ValueError("No JSON object could be decoded")
            response.text = text
        else:
            response.json.return_value = payload
            response.text = json.dumps(payload)
        return response

    return _make


@pytest.fixture
def caller_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signer(caller_keypair) -> Signer:
    return Signer(caller_keypair)


@pytest.fixture
def recipient() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def sponsor_a() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def sponsor_b() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def anchor() -> Hash:
    return Hash.new_unique()


@pytest.fixture
def requirements(recipient) -> dict:
    return {
        "scheme": "exact",
        "network": SOLANA_MAINNET,
        "maxAmountRequired": "25000000",
        "resource": "https://x402.unreel.ai/api/generate-x402",
        "description": "Generate a short video",
        "mimeType": "application/json",
        "payTo": str(recipient),
        "maxTimeoutSeconds": 300,
        "asset": USDC_MINT,
        "extra": {"tenantId": TENANT},
    }


@pytest.fixture
def payment_required_body(requirements) -> dict:
    return {"x402Version": 1, "error": "Payment required", "accepts": [requirements]}


@pytest.fixture
def challenge(requirements) -> PaymentChallenge:
    return PaymentChallenge.from_requirements(requirements)


@pytest.fixture
def relay_instruction_payload(sponsor_b) -> dict:
    return {
        "programAddress": str(Pubkey.new_unique()),
        "accounts": [
            {"address": str(Pubkey.new_unique()), "role": 1},
            {"address": str(sponsor_b), "role": 3},
            {"address": str(Pubkey.new_unique()), "role": 0},
        ],
        "data": {"type": "Buffer", "data": [2, 64, 66, 15, 0, 0, 0, 0, 0]},
    }


@pytest.fixture
def relay_instruction(relay_instruction_payload) -> RelayInstruction:
    return RelayInstruction.from_response(relay_instruction_payload)

