"""
Gateway error taxonomy.

Every failure detected while handling a request is raised as a ``GatewayError``
and turned into a plain-text response by the handler registered in ``main``.
"""
from typing import Dict, Optional


class GatewayError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class AuthenticationFailure(GatewayError):
    """Missing, invalid or mismatched token, or the order failed remote verification."""

    status_code = 401

    def __init__(self):
        # No detail is leaked to the caller
        super().__init__("Unauthorized")


class ClientRequestError(GatewayError):
    status_code = 400


class MissingParameter(ClientRequestError):
    pass


class InvalidParameter(ClientRequestError):
    pass


class MissingBody(ClientRequestError):
    pass


class UnknownAction(ClientRequestError):
    def __init__(self, action: str, method: str):
        super().__init__(f"Unknown action {action} for {method}")
        self.action = action
        self.method = method


class MethodNotAllowed(GatewayError):
    status_code = 405
    ALLOWED_METHODS = "PUT, POST, GET, DELETE"

    def __init__(self):
        super().__init__("Method Not Allowed", headers={"Allow": self.ALLOWED_METHODS})


class ResourceNotFound(GatewayError):
    status_code = 404

    def __init__(self, message: str = "Object Not Found"):
        super().__init__(message)


class StoreOperationFailure(GatewayError):
    """The store rejected an operation; its message is passed through verbatim."""

    status_code = 400


class PartUploadFailure(StoreOperationFailure):
    pass


class CompletionFailure(StoreOperationFailure):
    pass


class AbortFailure(StoreOperationFailure):
    pass


class UpstreamStoreFailure(GatewayError):
    """The store failed an operation that has no caller-side cause (e.g. create)."""

    status_code = 502
