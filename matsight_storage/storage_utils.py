"""
Storage utilities for customer images: S3 key layout, image IDs and metadata records.

Key layout under the per-customer prefix:

    {customerID}/uploaded/{imageID}_original.jpg
    {customerID}/uploaded/{imageID}_thumbnail.jpg
    {customerID}/saved-result/{imageID}_saved.jpg
    {customerID}/saved-result/{imageID}_thumbnail.jpg
"""
import math
import random
import re
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

from .config import StorageConfig
from .exceptions import InvalidFormatError
from .models.image_record import (
    FOLDER_BY_TYPE,
    ORIGINAL_SUFFIX_BY_TYPE,
    THUMBNAIL_SUFFIX,
    ImageDetails,
    ImageMetadataOptions,
    ImageRecord,
    ImageStatus,
    ImageType,
    ParsedImageID,
    ProcessingStatus,
    UploadSource,
    build_object_key,
)

CUSTOMER_ID_PATTERN = re.compile(r'^[a-zA-Z0-9-]{3,50}$')
IMAGE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{10,100}$')
LEADING_INTEGER_PATTERN = re.compile(r'^\s*([+-]?\d+)')
KEY_EXTENSION_PATTERN = re.compile(r'\.(jpg|jpeg|png|gif)\Z')
KEY_SUFFIX_PATTERN = re.compile(r'_(original|saved|thumbnail)\Z')

VALID_IMAGE_FORMATS = ('jpg', 'jpeg', 'png', 'gif', 'bmp', 'webp')
FILE_SIZE_UNITS = ('Bytes', 'KB', 'MB', 'GB')
PRESIGNED_OPERATIONS = ('getObject', 'putObject')

DEFAULT_TTL_DAYS = 365
MS_PER_DAY = 24 * 60 * 60 * 1000
RANDOM_TOKEN_MAX_DIGITS = 13
BASE36_DIGITS = '0123456789abcdefghijklmnopqrstuvwxyz'


def current_time_ms() -> int:
    return int(time.time() * 1000)


def _base36_fraction(value: float, max_digits: int = RANDOM_TOKEN_MAX_DIGITS) -> str:
    """Base-36 digits of a fraction in [0, 1), stopping early when it terminates"""
    digits = []
    while value > 0 and len(digits) < max_digits:
        value *= 36
        digit = int(value)
        digits.append(BASE36_DIGITS[digit])
        value -= digit
    return ''.join(digits)


def _parse_leading_int(text: str) -> Optional[int]:
    """Leading integer of a string ("123abc" -> 123), None when there is none"""
    match = LEADING_INTEGER_PATTERN.match(text)
    return int(match.group(1)) if match else None


class StorageKeyCodec:
    """
    Generates, parses and validates S3 keys and metadata records for the
    customer image store.

    Key helpers and validators are static and pure. Operations that read the
    clock, the random source or the bucket name are instance methods so those
    can be injected.
    """

    def __init__(self, bucket_name: Optional[str] = None,
                 clock: Optional[Callable[[], int]] = None,
                 rng: Optional[random.Random] = None):
        self.bucket_name = bucket_name or StorageConfig.from_env().bucket_name
        self.clock = clock or current_time_ms
        self.rng = rng or random.Random()

    # Key generation

    @staticmethod
    def get_original_image_key(customer_id: str, image_id: str) -> str:
        """S3 key for an original uploaded image"""
        return f"{customer_id}/uploaded/{image_id}_original.jpg"

    @staticmethod
    def get_uploaded_thumbnail_key(customer_id: str, image_id: str) -> str:
        """S3 key for an uploaded image thumbnail"""
        return f"{customer_id}/uploaded/{image_id}_thumbnail.jpg"

    @staticmethod
    def get_saved_image_key(customer_id: str, image_id: str) -> str:
        """S3 key for a saved result image"""
        return f"{customer_id}/saved-result/{image_id}_saved.jpg"

    @staticmethod
    def get_saved_thumbnail_key(customer_id: str, image_id: str) -> str:
        """S3 key for a saved result thumbnail"""
        return f"{customer_id}/saved-result/{image_id}_thumbnail.jpg"

    @staticmethod
    def get_image_key(customer_id: str, image_id: str, image_type: ImageType) -> str:
        """Original-object key for either image type"""
        image_type = ImageType(image_type)
        return build_object_key(customer_id, image_id, image_type, ORIGINAL_SUFFIX_BY_TYPE[image_type])

    @staticmethod
    def get_thumbnail_key(customer_id: str, image_id: str, image_type: ImageType) -> str:
        return build_object_key(customer_id, image_id, ImageType(image_type), THUMBNAIL_SUFFIX)

    @staticmethod
    def get_customer_folder_structure(customer_id: str) -> Dict[str, str]:
        return {
            'uploaded': f"{customer_id}/{FOLDER_BY_TYPE[ImageType.UPLOADED]}/",
            'savedResult': f"{customer_id}/{FOLDER_BY_TYPE[ImageType.SAVED_RESULT]}/",
        }

    def get_s3_url(self, s3_key: str) -> str:
        """Full s3:// URL of an object in the configured bucket"""
        return f"s3://{self.bucket_name}/{s3_key}"

    def generate_presigned_url_signature(self, operation: str, s3_key: str,
                                         expires_in: int = 3600) -> Dict[str, Any]:
        """
        Parameters for presigning an object URL.

        The signing itself is done by an S3 client (see ImageObjectService).

        Args:
            operation: "getObject" or "putObject"
            s3_key: Object key inside the configured bucket
            expires_in: URL lifetime in seconds

        Returns:
            Dict with bucket, key, operation and expiresIn
        """
        if operation not in PRESIGNED_OPERATIONS:
            raise ValueError(f"Unsupported presign operation: {operation}")
        return {
            'bucket': self.bucket_name,
            'key': s3_key,
            'operation': operation,
            'expiresIn': expires_in,
        }

    # Image IDs

    def generate_image_id(self, image_type: ImageType) -> str:
        """
        Generate an image ID of the form "{type}-{timestamp}-{random}".

        The random token is not guaranteed unique; the metadata table write
        is conditional on the key not existing.

        Examples:
            ImageType.UPLOADED -> "uploaded-1700000000000-k3j9x0q1z7"
        """
        image_type = ImageType(image_type)
        token = _base36_fraction(self.rng.random())
        return f"{image_type.value.lower()}-{self.clock()}-{token}"

    @staticmethod
    def parse_image_id(image_id: str, strict: bool = False) -> ParsedImageID:
        """
        Split an image ID into type, timestamp and random token.

        By default the type is only upper-cased (not checked against
        ImageType) and the timestamp is the leading integer of the second
        segment, or None when it has none. With strict=True both are checked.

        Raises:
            InvalidFormatError: fewer than three "-" separated segments, or a
                strict check failed
        """
        parts = image_id.split('-')
        if len(parts) < 3:
            raise InvalidFormatError(f"Invalid image ID format: {image_id}")

        parsed = ParsedImageID(
            type=parts[0].upper(),
            timestamp=_parse_leading_int(parts[1]),
            random='-'.join(parts[2:]),
        )

        if strict:
            if parsed.type not in ImageType.__members__:
                raise InvalidFormatError(f"Unknown image type in image ID: {image_id}")
            if parsed.timestamp is None or not parts[1].isdigit():
                raise InvalidFormatError(f"Invalid timestamp in image ID: {image_id}")
        return parsed

    # Validation

    @staticmethod
    def validate_customer_id(customer_id: str) -> bool:
        """Alphanumeric and hyphens, 3-50 characters"""
        return isinstance(customer_id, str) and CUSTOMER_ID_PATTERN.fullmatch(customer_id) is not None

    @staticmethod
    def validate_image_id(image_id: str) -> bool:
        """Alphanumeric, hyphens and underscores, 10-100 characters"""
        return isinstance(image_id, str) and IMAGE_ID_PATTERN.fullmatch(image_id) is not None

    @staticmethod
    def validate_image_format(image_format: str) -> bool:
        return isinstance(image_format, str) and image_format.lower() in VALID_IMAGE_FORMATS

    # Key parsing

    @staticmethod
    def extract_customer_id_from_s3_key(s3_key: str) -> Optional[str]:
        parts = s3_key.split('/')
        if len(parts) >= 2:
            return parts[0]
        return None

    @staticmethod
    def extract_image_id_from_s3_key(s3_key: str) -> Optional[str]:
        """
        Best-effort inverse of the key generators.

        Strips the file extension, then the _original/_saved/_thumbnail
        descriptor from the last path segment.

        Examples:
            "c-1/uploaded/uploaded-1700000000000-abc123_original.jpg"
                -> "uploaded-1700000000000-abc123"
            "c-1/photo.jpg" -> None
        """
        parts = s3_key.split('/')
        if len(parts) < 3:
            return None
        filename = KEY_EXTENSION_PATTERN.sub('', parts[-1], count=1)
        return KEY_SUFFIX_PATTERN.sub('', filename, count=1)

    @staticmethod
    def get_image_type_from_s3_key(s3_key: str) -> Optional[ImageType]:
        if '/uploaded/' in s3_key:
            return ImageType.UPLOADED
        elif '/saved-result/' in s3_key:
            return ImageType.SAVED_RESULT
        return None

    @staticmethod
    def is_thumbnail(s3_key: str) -> bool:
        return '_thumbnail' in s3_key

    # Records

    def create_image_metadata(self, customer_id: str, image_id: str, image_type: ImageType,
                              options: Optional[Dict[str, Any]] = None, **kwargs) -> ImageRecord:
        """
        Build a complete ImageRecord for the metadata table.

        Options may be given as a dict (snake_case or camelCase names) and/or
        keyword arguments. Defaults: image_format "jpg", processing_status
        "pending", upload_source "api", ttl_days 365. metadata.material falls
        back to material_type.
        """
        opts = ImageMetadataOptions.model_validate({**(options or {}), **kwargs})
        image_type = ImageType(image_type)

        now = self.clock()
        ttl_days = opts.ttl_days or DEFAULT_TTL_DAYS
        expires_at = now + ttl_days * MS_PER_DAY

        # Recognized keys take precedence over same-named extras
        details = ImageDetails.model_validate({
            **opts.extra_metadata,
            'width': opts.width,
            'height': opts.height,
            'uploadSource': opts.upload_source or UploadSource.API,
            'originalFilename': opts.original_filename,
            'material': opts.material or opts.material_type,
        })

        return ImageRecord(
            customer_id=customer_id,
            image_id=image_id,
            created_at=now,
            type=image_type,
            status=ImageStatus.ACTIVE,
            material_type=opts.material_type,
            image_size=opts.image_size,
            image_format=opts.image_format or 'jpg',
            processing_status=opts.processing_status or ProcessingStatus.PENDING,
            metadata=details,
            expires_at=expires_at,
        )

    def create_processing_metadata(self, width: int, height: int,
                                   upload_source: UploadSource = UploadSource.API,
                                   original_filename: Optional[str] = None) -> Dict[str, Any]:
        return {
            'width': width,
            'height': height,
            'uploadSource': UploadSource(upload_source).value,
            'originalFilename': original_filename,
            'processingTimestamp': self.clock(),
        }

    # File helpers

    @staticmethod
    def format_file_size(size_bytes: float) -> str:
        """
        Human readable file size, e.g. 2048576 -> "1.95 MB".

        Units stop at GB; larger sizes are expressed in GB.
        """
        if size_bytes == 0:
            return '0 Bytes'
        if size_bytes < 0:
            raise ValueError(f"File size cannot be negative: {size_bytes}")

        k = 1024
        i = math.floor(math.log(size_bytes) / math.log(k))
        # Units stop at GB; 1024**4 and above stay in GB instead of running off the table
        i = min(max(i, 0), len(FILE_SIZE_UNITS) - 1)

        value = Decimal(size_bytes / math.pow(k, i)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        text = format(value, 'f')
        if '.' in text:
            text = text.rstrip('0').rstrip('.')
        return f"{text} {FILE_SIZE_UNITS[i]}"

    @staticmethod
    def generate_thumbnail_filename(original_filename: str) -> str:
        """
        Examples:
            "photo.png" -> "photo_thumbnail.png"
            "noext" -> "noext_thumbnail.jpg"
        """
        parts = original_filename.split('.')
        extension = parts.pop() if len(parts) > 1 else 'jpg'
        name = '.'.join(parts)
        return f"{name}_thumbnail.{extension}"

    @staticmethod
    def get_file_extension(filename: str) -> str:
        parts = filename.split('.')
        return parts[-1].lower() if len(parts) > 1 else ''
