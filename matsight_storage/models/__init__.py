"""Models package for customer image storage."""
from .image_record import (
    ImageType,
    ImageStatus,
    ProcessingStatus,
    UploadSource,
    ParsedImageID,
    ImageDetails,
    ImageMetadataOptions,
    ImageRecord,
)

__all__ = [
    "ImageType",
    "ImageStatus",
    "ProcessingStatus",
    "UploadSource",
    "ParsedImageID",
    "ImageDetails",
    "ImageMetadataOptions",
    "ImageRecord",
]
