"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- key
- upload_id
- duration_ms

Tokens and key material are never passed to these helpers.

Usage:
    from gateway.utils.logging import configure_logging, log_multipart_event

    configure_logging('order-gateway', 'INFO')
    log_multipart_event(logger, 'create', key='songs/a.wav', upload_id='abc')
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return

        cls._service_name = service_name

        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    key: Optional[str] = None,
    upload_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        key: Optional object key
        upload_id: Optional multipart upload ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if key:
        extra["key"] = key
    if upload_id:
        extra["upload_id"] = upload_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Authorization event functions

def log_authorization_decision(
    logger: logging.Logger,
    allowed: bool,
    reason: str,
    order_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log the outcome of the authorization gate.

    Denials are logged at WARNING with the internal reason; the caller only
    ever sees "Unauthorized".

    Args:
        logger: Logger instance
        allowed: Whether the request was allowed
        reason: Short machine-readable reason (e.g. missing_token, identity_mismatch)
        order_id: Order referenced by the token, when known
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="authorization_decision",
        duration_ms=duration_ms,
        decision="allow" if allowed else "deny",
        reason=reason,
        **kwargs
    )
    if order_id:
        extra["order_id"] = order_id

    if allowed:
        logger.info("Request authorized", extra=extra)
    else:
        logger.warning(f"Request denied: {reason}", extra=extra)


def log_remote_verification(
    logger: logging.Logger,
    success: bool,
    status_code: int,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None,
    **kwargs
):
    """
    Log a call to the order verification service.

    Args:
        logger: Logger instance
        success: Whether the service confirmed the order
        status_code: HTTP status returned (500 for transport failures)
        duration_ms: Optional duration in milliseconds
        error: Error message for failures
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="remote_verification",
        duration_ms=duration_ms,
        status_code=status_code,
        success=success,
        **kwargs
    )
    if error:
        extra["error"] = str(error)

    if success:
        logger.info("Order verification succeeded", extra=extra)
    else:
        logger.warning(f"Order verification failed ({status_code}): {error}", extra=extra)


# Storage event functions

def log_multipart_event(
    logger: logging.Logger,
    operation: str,
    key: str,
    upload_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful multipart upload step.

    Args:
        logger: Logger instance
        operation: create, upload_part, complete or abort
        key: Object key (required)
        upload_id: Upload ID, once known
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields (e.g. part_number)
    """
    extra = _build_log_extra(
        event=f"multipart_{operation}",
        key=key,
        upload_id=upload_id,
        duration_ms=duration_ms,
        **kwargs
    )

    logger.info(f"Multipart {operation}: {key}", extra=extra)


def log_store_failure(
    logger: logging.Logger,
    operation: str,
    key: str,
    error: str,
    upload_id: Optional[str] = None,
    **kwargs
):
    """
    Log a store operation the backing store rejected.

    Args:
        logger: Logger instance
        operation: Store operation name (required)
        key: Object key (required)
        error: Error message from the store (required)
        upload_id: Optional multipart upload ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="store_failure",
        key=key,
        upload_id=upload_id,
        operation=operation,
        error=str(error),
        **kwargs
    )

    logger.error(f"Store failure: {operation} {key} - {error}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
