"""
Single-object read and delete pass-through.
"""
import logging

from gateway.errors import ResourceNotFound, UpstreamStoreFailure
from gateway.services.store_calls import call_store
from gateway.storage.base import ObjectStore, ObjectStoreError, StoredObject
from gateway.utils.logging import log_store_failure

logger = logging.getLogger(__name__)


class ObjectService:
    """Reads and deletes whole objects."""

    def __init__(self, store: ObjectStore):
        self._store = store

    async def get(self, key: str) -> StoredObject:
        """
        Raises:
            ResourceNotFound: If the key does not exist
            UpstreamStoreFailure: If the store fails the read
        """
        try:
            stored = await call_store("get_object", self._store.get_object, key)
        except ObjectStoreError as e:
            log_store_failure(logger, "get_object", key, e.message)
            raise UpstreamStoreFailure(e.message)
        if stored is None:
            raise ResourceNotFound()
        return stored

    async def delete(self, key: str) -> None:
        try:
            await call_store("delete_object", self._store.delete_object, key)
        except ObjectStoreError as e:
            log_store_failure(logger, "delete_object", key, e.message)
            raise UpstreamStoreFailure(e.message)
