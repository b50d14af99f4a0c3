"""
Compact JWS signing and verification for capability tokens.

Uses PyJWT with an asymmetric algorithm (RS512 in production). Verification
checks the signature, the algorithm and the structure of the claim set only:
``exp``/``nbf``/``iat``/``aud`` are deliberately not validated here, the
gate compares identity fields itself and token issuers do not set ``exp``.
"""
import time
from typing import Optional, Union

import jwt
from pydantic import ValidationError

from gateway.auth.outcomes import VerificationFailure
from gateway.config import ServiceIdentity
from gateway.schemas.order import Claims, MayAct, OrderMetadata

# Structure and signature only; see module docstring
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


class SigningError(Exception):
    """Raised when a token cannot be signed, usually because the key is malformed."""


def sign_claims(claims: Claims, private_key: str, algorithm: str) -> str:
    """
    Serialize and sign a claim set.

    Args:
        claims: Claim set to sign
        private_key: PEM-encoded private key
        algorithm: JWS algorithm name (e.g. RS512)

    Returns:
        Compact token (header.payload.signature)

    Raises:
        SigningError: If the key is malformed or unusable for the algorithm
    """
    try:
        return jwt.encode(claims.to_payload(), private_key, algorithm=algorithm)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign token: {e}") from e


def verify_token(
    token: str,
    public_key: str,
    algorithm: str
) -> Union[Claims, VerificationFailure]:
    """
    Verify a token's signature and parse its claim set.

    Never raises for bad input: a malformed token, a signature or algorithm
    mismatch and an unparseable payload all come back as ``VerificationFailure``.
    """
    try:
        payload = jwt.decode(
            token,
            public_key,
            algorithms=[algorithm],
            options=_DECODE_OPTIONS,
        )
    except jwt.InvalidAlgorithmError as e:
        return VerificationFailure(f"Algorithm mismatch: {e}")
    except jwt.InvalidSignatureError:
        return VerificationFailure("Signature verification failed")
    except jwt.DecodeError as e:
        return VerificationFailure(f"Malformed token: {e}")
    except (jwt.PyJWTError, ValueError) as e:
        return VerificationFailure(f"Invalid token: {e}")

    try:
        return Claims.model_validate(payload)
    except ValidationError as e:
        return VerificationFailure(f"Unparseable claims: {e.error_count()} validation error(s)")


def build_service_claims(
    metadata: OrderMetadata,
    identity: ServiceIdentity,
    now: Optional[int] = None
) -> Claims:
    """Wrap order metadata in a fresh claim set authored as the gateway itself."""
    issued_at = int(time.time()) if now is None else now
    return Claims(
        aud=identity.audience,
        realm=identity.realm,
        sub=identity.subject,
        may_act=MayAct(client_id=identity.client_id),
        nbf=issued_at,
        iat=issued_at,
        addl=metadata,
    )
