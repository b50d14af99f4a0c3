"""
Services layer.
Contains business logic separated from API routes.
"""
from gateway.services.multipart import MultipartUploadOrchestrator
from gateway.services.objects import ObjectService

__all__ = [
    "MultipartUploadOrchestrator",
    "ObjectService",
]
