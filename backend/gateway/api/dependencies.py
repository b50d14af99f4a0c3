"""
FastAPI dependencies.

Components are built once in the application lifespan and kept on
``app.state``; these accessors hand them to routes and give tests a single
place to override them.
"""
from fastapi import Depends, Request

from gateway.auth.gate import AuthorizationGate
from gateway.schemas.order import Claims
from gateway.services.multipart import MultipartUploadOrchestrator
from gateway.services.objects import ObjectService


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_orchestrator(request: Request) -> MultipartUploadOrchestrator:
    return request.app.state.orchestrator


def get_object_service(request: Request) -> ObjectService:
    return request.app.state.object_service


async def require_authorization(
    request: Request,
    gate: AuthorizationGate = Depends(get_gate)
) -> Claims:
    """
    FastAPI dependency that runs the authorization gate on the request cookies.

    Raises:
        AuthenticationFailure: 401 for any deny
    """
    return await gate.require(request.cookies)
