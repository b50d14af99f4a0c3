"""
Client for the remote order verification endpoint.

A capability token proves who issued it, not whether the order it references
is still valid. This client asks the order service directly, once per request:

    GET {base_url}/api/{version}/order/verify
    Cookie: jwt=<token signed by this gateway>

Every outcome is folded into a ``VerificationOutcome``. There are no retries;
the gate treats anything but an explicit success as a deny.
"""
import logging
import time
from typing import Optional

import httpx

from gateway.auth.outcomes import VerificationFailure, VerificationOutcome, VerificationSuccess
from gateway.auth.tokens import SigningError, build_service_claims, sign_claims
from gateway.config import GatewayConfig
from gateway.schemas.order import OrderMetadata
from gateway.utils.logging import log_remote_verification
from gateway.utils.metrics import (
    remote_verification_latency_seconds,
    remote_verification_requests_total,
)

logger = logging.getLogger(__name__)

# Status reported when no HTTP response was received
TRANSPORT_FAILURE_STATUS = 500
# Status reported when a 200 response carries an unreadable body
MALFORMED_RESPONSE_STATUS = 502


def _error_message(response: httpx.Response) -> str:
    """Pull ``error.message`` out of a failure body, falling back to the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return response.text or response.reason_phrase


class RemoteVerificationClient:
    """
    One-shot authenticated call to the order verification service.

    Args:
        config: Gateway configuration (outbound key, service identity, endpoint)
        transport: Optional httpx transport, used by tests to stub the service
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._config = config
        self._transport = transport

    def issue_token(self, metadata: OrderMetadata) -> str:
        """
        Re-sign order metadata into a fresh token authored by this gateway.

        Raises:
            SigningError: If the outbound signing key is unusable
        """
        claims = build_service_claims(metadata, self._config.service_identity)
        return sign_claims(
            claims,
            self._config.outbound_signing_key,
            self._config.signing_algorithm,
        )

    async def verify(self, metadata: OrderMetadata) -> VerificationOutcome:
        """
        Ask the order service whether the order is still valid.

        Returns:
            VerificationSuccess with the decoded body on HTTP 200, otherwise
            VerificationFailure with the service's message and status code
            (500 for signing or transport failures).
        """
        start_time = time.time()
        outcome = await self._execute(metadata)
        duration = time.time() - start_time

        remote_verification_latency_seconds.observe(duration)
        if isinstance(outcome, VerificationSuccess):
            remote_verification_requests_total.labels(outcome="success").inc()
            log_remote_verification(
                logger,
                success=True,
                status_code=200,
                duration_ms=duration * 1000,
                order_id=metadata.order_id,
            )
        else:
            remote_verification_requests_total.labels(outcome=str(outcome.status_code)).inc()
            log_remote_verification(
                logger,
                success=False,
                status_code=outcome.status_code,
                duration_ms=duration * 1000,
                error=outcome.message,
                order_id=metadata.order_id,
            )
        return outcome

    async def _execute(self, metadata: OrderMetadata) -> VerificationOutcome:
        try:
            token = self.issue_token(metadata)
        except SigningError as e:
            return VerificationFailure(str(e), TRANSPORT_FAILURE_STATUS)

        headers = {"cookie": f"{self._config.verification_cookie_name}={token}"}

        try:
            async with httpx.AsyncClient(
                timeout=self._config.verification_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(self._config.verification_url, headers=headers)
        except httpx.HTTPError as e:
            # DNS, TLS, timeouts and resets all land here
            return VerificationFailure(str(e) or e.__class__.__name__, TRANSPORT_FAILURE_STATUS)

        if response.status_code != 200:
            return VerificationFailure(_error_message(response), response.status_code)

        try:
            payload = response.json()
        except ValueError:
            return VerificationFailure(
                "Malformed verification response body",
                MALFORMED_RESPONSE_STATUS,
            )
        return VerificationSuccess(payload)
