"""Tests for x402_relay.core.relay."""

import base64
from unittest.mock import Mock

import pytest
import requests
from solders.transaction import VersionedTransaction

from x402_relay.core.errors import RelayRejected, SettlementFailed, SponsorUnavailable
from x402_relay.core.relay import TENANT_HEADER, RelayClient
from x402_relay.core.signer import SignedProof
from x402_relay.core.transaction import build_transfer_draft, token_account

RELAY_URL = "https://relay.example.com/x402/"


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def relay(session):
    return RelayClient(RELAY_URL, session=session)


@pytest.fixture
def draft(challenge, signer, sponsor_a, anchor):
    return build_transfer_draft(
        challenge,
        token_account(signer.pubkey, challenge.asset),
        token_account(challenge.pay_to, challenge.asset),
        signer.pubkey,
        sponsor_a,
        anchor,
    )


def _sent(session):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestResolveFeeSponsor:
    def test_returns_first_advertised_fee_payer(self, relay, session, make_response, sponsor_a, sponsor_b):
        session.request.return_value = make_response(
            200,
            {
                "kinds": [
                    {"scheme": "upto", "extra": {"feePayer": str(sponsor_b)}},
                    {"scheme": "exact", "extra": {}},
                    {"scheme": "exact", "extra": {"feePayer": str(sponsor_a)}},
                    {"scheme": "exact", "extra": {"feePayer": str(sponsor_b)}},
                ]
            },
        )

        sponsor = relay.resolve_fee_sponsor("tenant-unreel")

        assert sponsor.address == str(sponsor_a)
        assert sponsor.tenant_id == "tenant-unreel"
        method, url, kwargs = _sent(session)
        assert (method, url) == ("GET", "https://relay.example.com/x402/supported")
        assert kwargs["headers"][TENANT_HEADER] == "tenant-unreel"
        assert kwargs["params"] == {"tenantId": "tenant-unreel"}

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"kinds": []},
            {"kinds": [{"extra": {}}]},
            {"kinds": [{"scheme": "exact", "extra": "oops"}]},
            {"kinds": [{"scheme": "exact", "extra": ["feePayer"]}]},
        ],
    )
    def test_missing_sponsor(self, relay, session, make_response, payload):
        session.request.return_value = make_response(200, payload)
        with pytest.raises(SponsorUnavailable):
            relay.resolve_fee_sponsor("tenant-unreel")

    def test_http_failure(self, relay, session, make_response):
        session.request.return_value = make_response(503, text="upstream unavailable")
        with pytest.raises(SponsorUnavailable, match="503"):
            relay.resolve_fee_sponsor("tenant-unreel")


class TestRequestInstruction:
    def test_returns_instruction_and_assigned_signer(
        self, relay, session, make_response, draft, relay_instruction_payload, sponsor_b, signer
    ):
        session.request.return_value = make_response(
            200,
            {"payment_instruction": relay_instruction_payload, "signer_address": str(sponsor_b)},
        )

        instruction, signer_address = relay.request_instruction(
            draft, "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", signer.address, "tenant-unreel"
        )

        assert signer_address == str(sponsor_b)
        assert instruction.program_address == relay_instruction_payload["programAddress"]
        assert instruction.data == bytes([2, 64, 66, 15, 0, 0, 0, 0, 0])

        method, url, kwargs = _sent(session)
        assert (method, url) == ("POST", "https://relay.example.com/x402/payment-instruction")
        body = kwargs["json"]
        assert body["feeToken"] == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        assert body["sourceWallet"] == signer.address
        submitted = VersionedTransaction.from_bytes(base64.b64decode(body["transaction"]))
        assert submitted.message == draft.compile()

    def test_error_field_is_surfaced(self, relay, session, make_response, draft, signer):
        session.request.return_value = make_response(200, {"error": "no funds"})

        with pytest.raises(RelayRejected) as excinfo:
            relay.request_instruction(draft, "mint", signer.address, "tenant-unreel")
        assert excinfo.value.reason == "no funds"

    def test_error_status_uses_relay_message(self, relay, session, make_response, draft, signer):
        session.request.return_value = make_response(400, {"error": {"message": "bad transaction"}})

        with pytest.raises(RelayRejected, match="bad transaction"):
            relay.request_instruction(draft, "mint", signer.address, "tenant-unreel")

    @pytest.mark.parametrize(
        "payload",
        [
            {"signer_address": "11111111111111111111111111111111"},
            {"payment_instruction": {"programAddress": "11111111111111111111111111111111"}},
            {"payment_instruction": {"programAddress": "11111111111111111111111111111111"}, "signer_address": "SponsorB"},
        ],
    )
    def test_incomplete_responses(self, relay, session, make_response, draft, signer, payload):
        session.request.return_value = make_response(200, payload)
        with pytest.raises(RelayRejected):
            relay.request_instruction(draft, "mint", signer.address, "tenant-unreel")


class TestSettle:
    @pytest.fixture
    def proof(self):
        return SignedProof(transaction="AQID", signature="sig")

    def test_success(self, relay, session, make_response, proof, challenge, sponsor_b):
        session.request.return_value = make_response(
            200, {"success": True, "transaction": "5xTxSig", "network": challenge.network}
        )

        result = relay.settle(proof, challenge, str(sponsor_b))

        assert result.success
        assert result.transaction == "5xTxSig"
        method, url, kwargs = _sent(session)
        assert (method, url) == ("POST", "https://relay.example.com/x402/settle")
        body = kwargs["json"]
        assert body["paymentPayload"] == {
            "x402Version": 1,
            "scheme": "exact",
            "network": challenge.network,
            "payload": {"transaction": "AQID"},
        }
        requirements = body["paymentRequirements"]
        assert requirements["maxAmountRequired"] == "25000000"
        assert requirements["payTo"] == challenge.pay_to
        assert requirements["asset"] == challenge.asset
        assert requirements["extra"] == {"tenantId": "tenant-unreel", "feePayer": str(sponsor_b)}
        assert requirements["mimeType"] == "application/json"

    @pytest.mark.parametrize(
        "payload, reason",
        [
            ({"success": False, "errorReason": "insufficient_funds"}, "insufficient_funds"),
            ({"success": False, "error": "blockhash expired"}, "blockhash expired"),
            ({"transaction": "5xTxSig"}, "unknown"),
            ({"success": "true", "transaction": "5xTxSig"}, "unknown"),
        ],
    )
    def test_failures(self, relay, session, make_response, proof, challenge, sponsor_b, payload, reason):
        session.request.return_value = make_response(200, payload)

        with pytest.raises(SettlementFailed) as excinfo:
            relay.settle(proof, challenge, str(sponsor_b))
        assert excinfo.value.reason == reason

    def test_error_status_carries_reason(self, relay, session, make_response, proof, challenge, sponsor_b):
        session.request.return_value = make_response(
            422, {"success": False, "errorReason": "invalid_transaction"}
        )
        with pytest.raises(SettlementFailed, match="invalid_transaction"):
            relay.settle(proof, challenge, str(sponsor_b))

    def test_transport_error(self, relay, session, proof, challenge, sponsor_b):
        session.request.side_effect = requests.ConnectionError("connection reset")
        with pytest.raises(SettlementFailed, match="connection reset"):
            relay.settle(proof, challenge, str(sponsor_b))
