"""
Authorization gate run before every object operation.

Flow:
1. Read the capability token from the configured cookie
2. Verify its signature with the inbound verification key
3. Require sub, realm, aud and may_act.client_id to equal the authorized identity
4. Re-sign the embedded order metadata as this gateway (outbound signing key)
5. Ask the order verification service whether the order is still valid

Any failing step denies the request. Only an explicit success from the
verification service allows it.
"""
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional

from gateway.auth.outcomes import VerificationFailure, VerificationSuccess
from gateway.auth.remote_verification import RemoteVerificationClient
from gateway.auth.tokens import verify_token
from gateway.config import GatewayConfig
from gateway.errors import AuthenticationFailure
from gateway.schemas.order import Claims
from gateway.utils.logging import log_authorization_decision
from gateway.utils.metrics import authorization_decisions_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str
    claims: Optional[Claims] = None


class AuthorizationGate:
    """
    Allow/deny decision for a single request.

    Holds no per-request state; one instance serves the whole process.
    """

    def __init__(self, config: GatewayConfig, verifier: RemoteVerificationClient):
        self._config = config
        self._verifier = verifier

    def _identity_matches(self, claims: Claims) -> bool:
        identity = self._config.authorized_identity
        return (
            claims.sub == identity.subject
            and claims.realm == identity.realm
            and claims.aud == identity.audience
            and claims.may_act.client_id == identity.client_id
        )

    async def authorize(self, cookies: Mapping[str, str]) -> AuthorizationDecision:
        """
        Run the full gate against a request's cookies.

        Args:
            cookies: Parsed request cookies

        Returns:
            AuthorizationDecision; ``reason`` is for logs only
        """
        start_time = time.time()
        decision = await self._decide(cookies)

        authorization_decisions_total.labels(
            decision="allow" if decision.allowed else "deny",
            reason=decision.reason,
        ).inc()
        log_authorization_decision(
            logger,
            allowed=decision.allowed,
            reason=decision.reason,
            order_id=decision.claims.addl.order_id if decision.claims else None,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return decision

    async def require(self, cookies: Mapping[str, str]) -> Claims:
        """
        Same as ``authorize`` but raises on deny.

        Raises:
            AuthenticationFailure: For every deny, whatever the reason
        """
        decision = await self.authorize(cookies)
        if not decision.allowed:
            raise AuthenticationFailure()
        return decision.claims

    async def _decide(self, cookies: Mapping[str, str]) -> AuthorizationDecision:
        token = cookies.get(self._config.cookie_name)
        if not token:
            return AuthorizationDecision(False, "missing_token")

        verified = verify_token(
            token,
            self._config.inbound_verification_key,
            self._config.signing_algorithm,
        )
        if isinstance(verified, VerificationFailure):
            logger.debug(f"Token verification failed: {verified.message}")
            return AuthorizationDecision(False, "invalid_token")

        if not self._identity_matches(verified):
            return AuthorizationDecision(False, "identity_mismatch", verified)

        # The verifier re-signs claims.addl with the outbound key before calling out
        outcome = await self._verifier.verify(verified.addl)
        if not isinstance(outcome, VerificationSuccess):
            return AuthorizationDecision(False, "order_not_verified", verified)

        return AuthorizationDecision(True, "verified", verified)
