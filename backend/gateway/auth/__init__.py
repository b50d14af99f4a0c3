"""
Capability token verification and the authorization gate.
"""
from gateway.auth.outcomes import VerificationSuccess, VerificationFailure, VerificationOutcome
from gateway.auth.tokens import SigningError, sign_claims, verify_token
from gateway.auth.remote_verification import RemoteVerificationClient
from gateway.auth.gate import AuthorizationGate, AuthorizationDecision

__all__ = [
    "VerificationSuccess",
    "VerificationFailure",
    "VerificationOutcome",
    "SigningError",
    "sign_claims",
    "verify_token",
    "RemoteVerificationClient",
    "AuthorizationGate",
    "AuthorizationDecision",
]
