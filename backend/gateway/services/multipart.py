"""
Multipart upload orchestration.

Lifecycle of one upload, driven by separate requests:

    create -> upload_part* -> complete
    create -> upload_part* -> abort

The gateway keeps no upload registry. The caller holds the
``MultipartUploadHandle`` (key + upload ID) and the list of uploaded parts,
and the store is the source of truth for whether an upload ID is still open.
Store rejections are surfaced as 400s carrying the store's message, since they
are nearly always caller mistakes (unknown upload ID, bad part list).
"""
import json
import logging
from tempfile import SpooledTemporaryFile
from typing import AsyncIterator, List, Optional

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from gateway.errors import (
    AbortFailure,
    CompletionFailure,
    InvalidParameter,
    MissingBody,
    MissingParameter,
    PartUploadFailure,
    UpstreamStoreFailure,
)
from gateway.schemas.multipart import CompleteUploadRequest, MultipartUploadHandle, UploadedPart
from gateway.services.store_calls import call_store
from gateway.storage.base import ObjectStore, ObjectStoreError
from gateway.utils.logging import log_multipart_event, log_store_failure

logger = logging.getLogger(__name__)

# Parts larger than this are spooled to disk instead of held in memory
SPOOL_MAX_SIZE = 8 * 1024 * 1024


class MultipartUploadOrchestrator:
    """Drives multipart uploads against an ``ObjectStore``."""

    def __init__(self, store: ObjectStore):
        self._store = store

    # ------------------------------------------------------------------
    # Request parsing (no store access)
    # ------------------------------------------------------------------

    @staticmethod
    def resume(key: str, upload_id: Optional[str]) -> MultipartUploadHandle:
        """
        Rebuild a handle from a request.

        Raises:
            MissingParameter: If no upload ID was supplied
        """
        if not upload_id:
            raise MissingParameter("Missing uploadId")
        return MultipartUploadHandle(key=key, upload_id=upload_id)

    @staticmethod
    def parse_part_number(raw: str) -> int:
        """
        Parse a ``partNumber`` query value.

        Raises:
            InvalidParameter: If the value is not a plain decimal integer >= 1
        """
        digits = raw.strip()
        # int() alone would also take "+2", "1_0" and non-ASCII digits
        if not (digits.isascii() and digits.isdigit()):
            raise InvalidParameter(f"Invalid partNumber: {raw}")
        part_number = int(digits)
        if part_number < 1:
            raise InvalidParameter(f"Invalid partNumber: {raw}")
        return part_number

    @staticmethod
    def parse_parts(raw_body: Optional[bytes]) -> List[UploadedPart]:
        """
        Parse an ``mpu-complete`` body into the ordered part list.

        Raises:
            MissingBody: If the body is absent, not JSON, or lists no parts
        """
        if not raw_body:
            raise MissingBody("Missing or incomplete body")
        try:
            request = CompleteUploadRequest.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError):
            # json.JSONDecodeError is a ValueError
            raise MissingBody("Missing or incomplete body")
        if not request.parts:
            raise MissingBody("Missing or incomplete body")
        return request.parts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(self, key: str) -> MultipartUploadHandle:
        """
        Start a multipart upload.

        Raises:
            UpstreamStoreFailure: If the store cannot start the upload
        """
        try:
            upload_id = await call_store("create_multipart_upload", self._store.create_multipart_upload, key)
        except ObjectStoreError as e:
            log_store_failure(logger, "create_multipart_upload", key, e.message)
            raise UpstreamStoreFailure(e.message)

        log_multipart_event(logger, "create", key=key, upload_id=upload_id)
        return MultipartUploadHandle(key=key, upload_id=upload_id)

    async def upload_part(
        self,
        handle: MultipartUploadHandle,
        part_number: int,
        chunks: Optional[AsyncIterator[bytes]]
    ) -> UploadedPart:
        """
        Upload one part of an open upload.

        The part is spooled to a temporary file as it arrives (in memory up to
        ``SPOOL_MAX_SIZE``, then on disk) and handed to the store as a file.

        Raises:
            MissingBody: If the request carried no bytes
            PartUploadFailure: If the store rejects the part or the upload ID
        """
        if chunks is None:
            raise MissingBody("Missing request body")

        spool = UploadFile(file=SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE), size=0)
        try:
            async for chunk in chunks:
                if chunk:
                    await spool.write(chunk)
            if not spool.size:
                raise MissingBody("Missing request body")
            await spool.seek(0)

            try:
                etag = await call_store(
                    "upload_part",
                    self._store.upload_part,
                    handle.key,
                    handle.upload_id,
                    part_number,
                    spool.file,
                    spool.size,
                )
            except ObjectStoreError as e:
                log_store_failure(logger, "upload_part", handle.key, e.message, upload_id=handle.upload_id)
                raise PartUploadFailure(e.message)
        finally:
            await spool.close()

        log_multipart_event(
            logger,
            "upload_part",
            key=handle.key,
            upload_id=handle.upload_id,
            part_number=part_number,
            size_bytes=spool.size,
        )
        return UploadedPart(part_number=part_number, etag=etag)

    async def complete(self, handle: MultipartUploadHandle, parts: List[UploadedPart]) -> str:
        """
        Assemble the supplied parts into the final object.

        Returns:
            Etag of the assembled object

        Raises:
            MissingBody: If no parts were supplied
            CompletionFailure: If the store rejects the part list or the upload ID
        """
        if not parts:
            raise MissingBody("Missing or incomplete body")

        try:
            etag = await call_store(
                "complete_multipart_upload",
                self._store.complete_multipart_upload,
                handle.key,
                handle.upload_id,
                parts,
            )
        except ObjectStoreError as e:
            log_store_failure(logger, "complete_multipart_upload", handle.key, e.message, upload_id=handle.upload_id)
            raise CompletionFailure(e.message)

        log_multipart_event(
            logger,
            "complete",
            key=handle.key,
            upload_id=handle.upload_id,
            part_count=len(parts),
        )
        return etag

    async def abort(self, handle: MultipartUploadHandle) -> None:
        """
        Discard an open upload.

        Raises:
            AbortFailure: If the store refuses to abort
        """
        try:
            await call_store(
                "abort_multipart_upload",
                self._store.abort_multipart_upload,
                handle.key,
                handle.upload_id,
            )
        except ObjectStoreError as e:
            log_store_failure(logger, "abort_multipart_upload", handle.key, e.message, upload_id=handle.upload_id)
            raise AbortFailure(e.message)

        log_multipart_event(logger, "abort", key=handle.key, upload_id=handle.upload_id)
