"""
Application configuration using Pydantic Settings.

Environment variables are loaded once into ``Settings`` and then frozen into a
``GatewayConfig`` value that is handed to every component constructor.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Inbound capability token
    cookie_name: str = "jwt"
    authorized_subject: str = ""
    authorized_realm: str = ""
    authorized_audience: str = ""
    authorized_client_id: str = ""
    inbound_public_key: str = ""  # PEM, verifies caller tokens
    signing_algorithm: str = "RS512"

    # Outbound service token (the gateway's own identity)
    outbound_private_key: str = ""  # PEM, signs verification requests
    service_subject: str = ""
    service_realm: str = ""
    service_audience: str = ""
    service_client_id: str = ""

    # Order verification service
    conveyor_api_url: str = "http://localhost:8080"
    conveyor_api_version: str = "v1"
    verification_cookie_name: str = "jwt"
    verification_timeout: float = 10.0

    # Cloudflare R2 / S3-compatible storage
    r2_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    r2_bucket: str = "orders"
    r2_access_key: Optional[str] = None
    r2_secret_key: Optional[str] = None
    r2_region: str = "auto"  # R2 uses "auto" for region

    # Prometheus exposition port (None disables the server)
    metrics_port: Optional[int] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


def _normalize_pem(value: str) -> str:
    # Keys passed through env files usually carry escaped newlines
    return value.replace("\\n", "\n").strip()


@dataclass(frozen=True)
class AuthorizedIdentity:
    """The single caller identity allowed through the gate."""
    subject: str
    realm: str
    audience: str
    client_id: str


@dataclass(frozen=True)
class ServiceIdentity:
    """Identity the gateway signs its outbound tokens as."""
    subject: str
    realm: str
    audience: str
    client_id: str


@dataclass(frozen=True)
class StorageConfig:
    endpoint: Optional[str]
    bucket: str
    access_key: Optional[str]
    secret_key: Optional[str]
    region: str


@dataclass(frozen=True)
class GatewayConfig:
    """
    Immutable runtime configuration.

    The two keys belong to two different key pairs: ``inbound_verification_key``
    is the public half used to verify caller tokens, ``outbound_signing_key`` is
    the private half the gateway signs its own verification tokens with.
    """
    cookie_name: str
    authorized_identity: AuthorizedIdentity
    service_identity: ServiceIdentity
    inbound_verification_key: str
    outbound_signing_key: str
    signing_algorithm: str
    verification_base_url: str
    verification_api_version: str
    verification_cookie_name: str
    verification_timeout: float
    storage: StorageConfig

    @property
    def verification_url(self) -> str:
        base = self.verification_base_url.rstrip("/")
        return f"{base}/api/{self.verification_api_version}/order/verify"

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        return cls(
            cookie_name=settings.cookie_name,
            authorized_identity=AuthorizedIdentity(
                subject=settings.authorized_subject,
                realm=settings.authorized_realm,
                audience=settings.authorized_audience,
                client_id=settings.authorized_client_id,
            ),
            service_identity=ServiceIdentity(
                subject=settings.service_subject,
                realm=settings.service_realm,
                audience=settings.service_audience,
                client_id=settings.service_client_id,
            ),
            inbound_verification_key=_normalize_pem(settings.inbound_public_key),
            outbound_signing_key=_normalize_pem(settings.outbound_private_key),
            signing_algorithm=settings.signing_algorithm,
            verification_base_url=settings.conveyor_api_url,
            verification_api_version=settings.conveyor_api_version,
            verification_cookie_name=settings.verification_cookie_name,
            verification_timeout=settings.verification_timeout,
            storage=StorageConfig(
                endpoint=settings.r2_endpoint,
                bucket=settings.r2_bucket,
                access_key=settings.r2_access_key,
                secret_key=settings.r2_secret_key,
                region=settings.r2_region,
            ),
        )


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
