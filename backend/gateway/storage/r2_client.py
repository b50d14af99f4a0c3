"""
Cloudflare R2 / S3-compatible storage client.

Uses boto3 with the S3-compatible API. This is storage-provider agnostic and
works with any S3-compatible store. Multipart uploads map one-to-one onto the
S3 multipart API; R2 keeps the upload state, this client keeps none.
"""
import logging
from email.utils import formatdate
from typing import BinaryIO, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gateway.config import StorageConfig
from gateway.schemas.multipart import UploadedPart
from gateway.storage.base import ObjectStore, ObjectStoreError, StoredObject

logger = logging.getLogger(__name__)

# Read chunk size when streaming objects back to the caller
STREAM_CHUNK_SIZE = 64 * 1024

# get_object response field -> HTTP header
_HTTP_METADATA_FIELDS = {
    'ContentLanguage': 'content-language',
    'ContentDisposition': 'content-disposition',
    'ContentEncoding': 'content-encoding',
    'CacheControl': 'cache-control',
}


def _store_error(e: Exception) -> ObjectStoreError:
    if isinstance(e, ClientError):
        error = e.response.get('Error', {})
        return ObjectStoreError(error.get('Message') or str(e), error.get('Code'))
    return ObjectStoreError(str(e))


class R2Client(ObjectStore):
    """
    S3-compatible client for Cloudflare R2.

    Args:
        storage: Storage section of the gateway configuration
        client: Pre-built boto3 S3 client (tests pass a stubbed one)
    """

    def __init__(self, storage: StorageConfig, client=None):
        self._bucket = storage.bucket
        self._client = client

        if self._client is not None:
            return

        if not all([storage.endpoint, storage.access_key, storage.secret_key]):
            logger.warning(
                "R2 storage not configured. "
                "Set R2_ENDPOINT, R2_ACCESS_KEY, and R2_SECRET_KEY."
            )
            return

        # Use signature_version='s3v4' for R2 compatibility
        self._client = boto3.client(
            's3',
            endpoint_url=storage.endpoint,
            aws_access_key_id=storage.access_key,
            aws_secret_access_key=storage.secret_key,
            region_name=storage.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}  # R2 uses path-style
            )
        )
        logger.info(f"R2 client initialized for bucket: {self._bucket}")

    @property
    def is_configured(self) -> bool:
        """Check if R2 client is properly configured."""
        return self._client is not None

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._bucket

    def _require_client(self):
        if not self.is_configured:
            raise ObjectStoreError("Object storage is not configured")
        return self._client

    def create_multipart_upload(self, key: str) -> str:
        client = self._require_client()
        try:
            response = client.create_multipart_upload(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _store_error(e) from e
        return response['UploadId']

    def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        body: BinaryIO,
        content_length: int,
    ) -> str:
        client = self._require_client()
        try:
            response = client.upload_part(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=body,
                ContentLength=content_length,
            )
        except (ClientError, BotoCoreError) as e:
            raise _store_error(e) from e
        return response['ETag']

    def complete_multipart_upload(self, key: str, upload_id: str, parts: List[UploadedPart]) -> str:
        client = self._require_client()
        try:
            response = client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    'Parts': [
                        {'PartNumber': part.part_number, 'ETag': part.etag}
                        for part in parts
                    ]
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise _store_error(e) from e
        return response['ETag']

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        client = self._require_client()
        try:
            client.abort_multipart_upload(Bucket=self.bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as e:
            raise _store_error(e) from e

    def get_object(self, key: str) -> Optional[StoredObject]:
        client = self._require_client()
        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response['Error']['Code'] in ('NoSuchKey', '404'):
                return None
            raise _store_error(e) from e
        except BotoCoreError as e:
            raise _store_error(e) from e

        http_metadata = {
            header: response[field]
            for field, header in _HTTP_METADATA_FIELDS.items()
            if response.get(field)
        }
        if response.get('Expires'):
            http_metadata['expires'] = formatdate(response['Expires'].timestamp(), usegmt=True)

        return StoredObject(
            body=response['Body'].iter_chunks(STREAM_CHUNK_SIZE),
            etag=response['ETag'],
            content_type=response.get('ContentType'),
            content_length=response.get('ContentLength'),
            http_metadata=http_metadata,
        )

    def delete_object(self, key: str) -> None:
        client = self._require_client()
        try:
            client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            # If object doesn't exist, consider it a success (idempotent)
            if e.response['Error']['Code'] in ('NoSuchKey', '404'):
                logger.debug(f"Object {key} not found in R2 (already deleted)")
                return
            raise _store_error(e) from e
        except BotoCoreError as e:
            raise _store_error(e) from e
