"""Tests for x402_relay.api and x402_relay.core.ledger."""

from unittest.mock import Mock

import base58
import pytest
import requests

from x402_relay import create_paid_client
from x402_relay.core.config import load_client_config
from x402_relay.core.ledger import LedgerClient


@pytest.fixture
def config(caller_keypair):
    return load_client_config(
        env_file=None,
        base={},
        private_key=base58.b58encode(bytes(caller_keypair)).decode("ascii"),
        relay_url="https://relay.example.com",
        api_url="https://api.example.com",
        request_timeout=15,
    )


def test_create_paid_client_wires_components(config):
    session = Mock(spec=requests.Session)
    ledger = Mock(spec=LedgerClient)

    client = create_paid_client(config=config, session=session, ledger=ledger)

    assert client.base_url == "https://api.example.com"
    assert client.timeout == 15.0
    assert client.session is session
    orchestrator = client.orchestrator
    assert orchestrator.relay.relay_url == "https://relay.example.com"
    assert orchestrator.relay.session is session
    assert orchestrator.ledger is ledger
    assert orchestrator.signer is config.signer


def test_config_and_overrides_are_exclusive(config):
    with pytest.raises(ValueError):
        create_paid_client(config=config, overrides={"X402_API_URL": "https://x"})
