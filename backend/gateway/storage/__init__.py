"""
Storage module for the S3-compatible backing store (Cloudflare R2).

The gateway streams object bytes through itself; it never hands out presigned URLs.
"""
from gateway.storage.base import ObjectStore, ObjectStoreError, StoredObject
from gateway.storage.r2_client import R2Client

__all__ = ["ObjectStore", "ObjectStoreError", "StoredObject", "R2Client"]
