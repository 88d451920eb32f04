"""
HTTP client for APIs that answer unpaid requests with ``402 Payment Required``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .challenge import parse_payment_required
from .errors import ApiError, InvalidChallenge, JobNotFound, TransportError
from .orchestrator import PaymentOrchestrator
from .payloads import PAYMENT_HEADER, encode_payment_header
from .poller import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_ATTEMPTS, Job, JobPoller

__all__ = ["DEFAULT_PAYMENT_INFO", "PaidApiClient"]

PAYMENT_REQUIRED = 402
JOB_PATH = "/api/jobs/{job_id}"
PAYMENT_INFO_PATH = "/api/payment-info"

DEFAULT_PAYMENT_INFO: Dict[str, Any] = {
    "price_usdc": "25.00",
    "network": "solana",
    "asset": "USDC",
    "note": "Payment info endpoint unavailable, showing defaults",
}


def _checked(response: requests.Response) -> requests.Response:
    if response.status_code >= 400:
        raise ApiError(response)
    return response


class PaidApiClient:
    """
    Issues requests against the paid API and settles any 402 challenge
    through the relay before replaying the request once.
    """

    def __init__(
        self,
        base_url: str,
        orchestrator: PaymentOrchestrator,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 120,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.orchestrator = orchestrator
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _send(
        self,
        method: str,
        endpoint: str,
        body: Optional[Any],
        headers: Optional[Mapping[str, str]],
    ) -> requests.Response:
        url = self._url(endpoint)
        try:
            return self.session.request(
                method,
                url,
                json=body,
                headers=dict(headers or {}),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    def pay_and_request(
        self,
        endpoint: str,
        body: Optional[Any] = None,
        *,
        method: str = "POST",
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        response = self._send(method, endpoint, body, headers)
        if response.status_code != PAYMENT_REQUIRED:
            return _checked(response)

        try:
            payment_required = response.json()
        except ValueError as exc:
            raise InvalidChallenge(f"402 body is not JSON: {response.text}") from exc
        challenge = parse_payment_required(payment_required)
        logging.info("Payment required for %s %s", method, endpoint)

        transaction_id = self.orchestrator.fulfill(challenge)

        replay_headers = dict(headers or {})
        replay_headers[PAYMENT_HEADER] = encode_payment_header(challenge, transaction_id)
        logging.info("Replaying %s %s with payment %s", method, endpoint, transaction_id)
        return _checked(self._send(method, endpoint, body, replay_headers))

    def get_job(self, job_id: str) -> Job:
        url = self._url(JOB_PATH.format(job_id=job_id))
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc}") from exc
        if response.status_code == 404:
            raise JobNotFound(job_id)
        try:
            payload = _checked(response).json()
        except ValueError as exc:
            raise ApiError(response) from exc
        return Job.from_response(job_id, payload)

    def wait_for_job(
        self,
        job_id: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        *,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> Job:
        poller = JobPoller(self.get_job) if sleep is None else JobPoller(self.get_job, sleep=sleep)
        return poller.poll(job_id, max_attempts=max_attempts, initial_delay=initial_delay)

    def payment_info(self) -> Dict[str, Any]:
        """
        Current pricing as advertised by the API, or the published defaults
        when the endpoint cannot be reached.
        """
        try:
            response = self.session.get(self._url(PAYMENT_INFO_PATH), timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logging.warning("Payment info unavailable (%s); using defaults", exc)
            return dict(DEFAULT_PAYMENT_INFO)
