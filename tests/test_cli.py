"""Tests for x402_relay.cli."""

import json
from unittest.mock import Mock, patch

import base58
import pytest
import requests

from x402_relay import cli
from x402_relay.core.errors import JobNotFound, TransportError
from x402_relay.core.poller import Job


@pytest.fixture
def env(monkeypatch, caller_keypair):
    monkeypatch.setenv("SVM_PRIVATE_KEY", base58.b58encode(bytes(caller_keypair)).decode("ascii"))
    monkeypatch.setenv("X402_RELAY_URL", "https://relay.example.com")


@pytest.fixture
def client():
    with patch("x402_relay.cli.create_paid_client") as factory:
        factory.return_value = Mock()
        yield factory.return_value


def test_invalid_configuration_exits_with_error(monkeypatch, tmp_path):
    monkeypatch.delenv("SVM_PRIVATE_KEY", raising=False)
    assert cli.run_cli(["--env-file", str(tmp_path / "none.env"), "payment-info"]) == 1


def test_payment_info(env, client, tmp_path, capsys):
    client.payment_info.return_value = {"price_usdc": "25.00"}

    assert cli.run_cli(["--env-file", str(tmp_path / "none.env"), "payment-info"]) == 0
    assert json.loads(capsys.readouterr().out) == {"price_usdc": "25.00"}


def test_request_and_wait(env, client, tmp_path, capsys):
    client.pay_and_request.return_value.json.return_value = {"job_id": "job-1"}
    client.wait_for_job.return_value = Job(
        id="job-1", status="completed", raw={"status": "completed", "video_url": "u"}
    )

    code = cli.run_cli(
        [
            "--env-file", str(tmp_path / "none.env"),
            "request", "post", "/api/generate-x402",
            "--data", '{"script_text": "sunset"}',
            "--wait",
        ]
    )

    assert code == 0
    client.pay_and_request.assert_called_once_with(
        "/api/generate-x402", {"script_text": "sunset"}, method="POST"
    )
    client.wait_for_job.assert_called_once_with("job-1", 60, 5.0)
    assert json.loads(capsys.readouterr().out)["video_url"] == "u"


def test_payment_errors_exit_with_error(env, client, tmp_path):
    client.get_job.side_effect = JobNotFound("job-404")
    assert cli.run_cli(["--env-file", str(tmp_path / "none.env"), "job-status", "job-404"]) == 1


def test_connection_failure_exits_with_error(env, client, tmp_path):
    client.pay_and_request.side_effect = requests.ConnectionError("network down")

    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"), "request", "POST", "/api/generate-x402"]
    )

    assert code == 1


def test_transport_error_exits_with_error(env, client, tmp_path):
    client.wait_for_job.side_effect = TransportError("GET /api/jobs/job-1 failed")
    assert cli.run_cli(["--env-file", str(tmp_path / "none.env"), "wait", "job-1"]) == 1


def test_non_json_response_exits_with_error(env, client, tmp_path, capsys):
    client.pay_and_request.return_value.json.side_effect = ValueError("not json")
    client.pay_and_request.return_value.text = "<html>ok</html>"

    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"), "request", "GET", "/api/status"]
    )

    assert code == 1
    assert capsys.readouterr().out == ""


def test_wait_needs_a_job_id_object(env, client, tmp_path):
    client.pay_and_request.return_value.json.return_value = ["job-1"]

    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"), "request", "POST", "/api/generate-x402", "--wait"]
    )

    assert code == 1
    client.wait_for_job.assert_not_called()
