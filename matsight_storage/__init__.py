"""
Customer image storage for the material recognition service.

S3 key layout, image IDs and DynamoDB metadata records for uploaded and
saved-result images.
"""
from .config import StorageConfig
from .exceptions import (
    StorageError,
    InvalidFormatError,
    ImageAlreadyExistsError,
    ImageNotFoundError,
)
from .models import (
    ImageType,
    ImageStatus,
    ProcessingStatus,
    UploadSource,
    ParsedImageID,
    ImageRecord,
)
from .storage_utils import StorageKeyCodec

__all__ = [
    "StorageConfig",
    "StorageError",
    "InvalidFormatError",
    "ImageAlreadyExistsError",
    "ImageNotFoundError",
    "ImageType",
    "ImageStatus",
    "ProcessingStatus",
    "UploadSource",
    "ParsedImageID",
    "ImageRecord",
    "StorageKeyCodec",
]
