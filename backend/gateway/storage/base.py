"""
Base class for object stores.
All stores must implement this interface so the orchestrator and the
get/delete path can run against R2 or an in-memory fake alike.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Iterator, List, Optional

from gateway.schemas.multipart import UploadedPart


class ObjectStoreError(Exception):
    """
    The store rejected or failed an operation.

    ``message`` is the store's own diagnostic and is shown to the caller.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class StoredObject:
    """An object read from the store, with the HTTP metadata it was written with."""
    body: Iterator[bytes]
    etag: str
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    http_metadata: Dict[str, str] = field(default_factory=dict)

    def http_headers(self) -> Dict[str, str]:
        headers = dict(self.http_metadata)
        if self.content_type:
            headers["content-type"] = self.content_type
        if self.content_length is not None:
            headers["content-length"] = str(self.content_length)
        headers["etag"] = self.etag
        return headers


class ObjectStore(ABC):
    """
    Abstract object store.

    Methods are blocking; callers on the event loop run them in a threadpool.
    Every failure is raised as ``ObjectStoreError``.
    """

    @abstractmethod
    def create_multipart_upload(self, key: str) -> str:
        """Start a multipart upload and return its upload ID."""
        pass

    @abstractmethod
    def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        body: BinaryIO,
        content_length: int,
    ) -> str:
        """Upload one part read from ``body`` (positioned at its start) and return its etag."""
        pass

    @abstractmethod
    def complete_multipart_upload(self, key: str, upload_id: str, parts: List[UploadedPart]) -> str:
        """Assemble the parts into the final object and return its etag."""
        pass

    @abstractmethod
    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """Discard an in-progress upload and its parts."""
        pass

    @abstractmethod
    def get_object(self, key: str) -> Optional[StoredObject]:
        """Read an object, or None if it does not exist."""
        pass

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """Delete an object; deleting a missing key is not an error."""
        pass
