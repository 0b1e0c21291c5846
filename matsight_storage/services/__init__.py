"""Services package for customer image storage."""
from .metadata_service import ImageMetadataService
from .object_service import ImageObjectService

__all__ = [
    "ImageMetadataService",
    "ImageObjectService",
]
