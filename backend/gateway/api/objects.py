"""
Object endpoints.

A single catch-all route: the object key is the request path and the
operation is picked by HTTP method plus the ``action`` query parameter.

    GET    ?action=get
    POST   ?action=mpu-create
    PUT    ?action=mpu-uploadpart&uploadId=...&partNumber=...
    POST   ?action=mpu-complete&uploadId=...        body: {"parts": [...]}
    DELETE ?action=mpu-abort&uploadId=...
    DELETE ?action=delete

Every request has already passed the authorization gate when it gets here.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from gateway.api.dependencies import get_object_service, get_orchestrator, require_authorization
from gateway.errors import ClientRequestError, MethodNotAllowed, MissingParameter, UnknownAction
from gateway.services.multipart import MultipartUploadOrchestrator
from gateway.services.objects import ObjectService

router = APIRouter()

SUPPORTED_METHODS = ("PUT", "POST", "GET", "DELETE")

# Accepted by the route so that other methods reach the handler and get a proper 405
ROUTED_METHODS = list(SUPPORTED_METHODS) + ["PATCH", "HEAD", "OPTIONS"]


async def _get_object(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    stored = await objects.get(key)
    return StreamingResponse(stored.body, headers=stored.http_headers())


async def _delete_object(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    await objects.delete(key)
    return Response(status_code=204)


async def _mpu_create(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    handle = await orchestrator.create(key)
    return JSONResponse(handle.model_dump(by_alias=True))


async def _mpu_upload_part(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    if not part_number or not upload_id:
        raise MissingParameter("Missing partNumber or uploadId")
    handle = orchestrator.resume(key, upload_id)
    number = orchestrator.parse_part_number(part_number)
    part = await orchestrator.upload_part(handle, number, request.stream())
    return JSONResponse(part.model_dump(by_alias=True))


async def _mpu_complete(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    handle = orchestrator.resume(key, upload_id)
    parts = orchestrator.parse_parts(await request.body())
    etag = await orchestrator.complete(handle, parts)
    return Response(headers={"etag": etag})


async def _mpu_abort(request, key, upload_id, part_number, orchestrator, objects) -> Response:
    handle = orchestrator.resume(key, upload_id)
    await orchestrator.abort(handle)
    return Response(status_code=204)


ACTION_HANDLERS = {
    ("GET", "get"): _get_object,
    ("POST", "mpu-create"): _mpu_create,
    ("POST", "mpu-complete"): _mpu_complete,
    ("PUT", "mpu-uploadpart"): _mpu_upload_part,
    ("DELETE", "mpu-abort"): _mpu_abort,
    ("DELETE", "delete"): _delete_object,
}


@router.api_route(
    "/{object_key:path}",
    methods=ROUTED_METHODS,
    dependencies=[Depends(require_authorization)],
)
async def handle_object_request(
    request: Request,
    object_key: str,
    action: Optional[str] = None,
    upload_id: Optional[str] = Query(None, alias="uploadId"),
    part_number: Optional[str] = Query(None, alias="partNumber"),
    orchestrator: MultipartUploadOrchestrator = Depends(get_orchestrator),
    objects: ObjectService = Depends(get_object_service),
):
    """Dispatch an object request by method and action."""
    if action is None:
        raise ClientRequestError("Missing action type")

    method = request.method
    if method not in SUPPORTED_METHODS:
        raise MethodNotAllowed()

    handler = ACTION_HANDLERS.get((method, action))
    if handler is None:
        raise UnknownAction(action, method)

    return await handler(request, object_key, upload_id, part_number, orchestrator, objects)
