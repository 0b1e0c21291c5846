"""Image record models for the CustomerImages table."""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ImageType(str, Enum):
    """Lifecycle type of an image, fixes its key layout"""
    UPLOADED = "UPLOADED"
    SAVED_RESULT = "SAVED_RESULT"


class ImageStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadSource(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    API = "api"


# Per-type folder and original-object descriptor under the customer prefix
FOLDER_BY_TYPE = {
    ImageType.UPLOADED: "uploaded",
    ImageType.SAVED_RESULT: "saved-result",
}
ORIGINAL_SUFFIX_BY_TYPE = {
    ImageType.UPLOADED: "original",
    ImageType.SAVED_RESULT: "saved",
}
THUMBNAIL_SUFFIX = "thumbnail"
KEY_EXTENSION = "jpg"


def build_object_key(customer_id: str, image_id: str, image_type: ImageType, suffix: str) -> str:
    """Template an object key; inputs are not validated"""
    folder = FOLDER_BY_TYPE[ImageType(image_type)]
    return f"{customer_id}/{folder}/{image_id}_{suffix}.{KEY_EXTENSION}"


class ParsedImageID(NamedTuple):
    """Components of an image ID. ``type`` is not checked against ImageType."""
    type: str
    timestamp: Optional[int]
    random: str


class ImageDetails(BaseModel):
    """Open ``metadata`` map: recognized keys plus arbitrary extras"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    width: Optional[int] = None
    height: Optional[int] = None
    upload_source: Optional[UploadSource] = Field(default=None, alias="uploadSource")
    original_filename: Optional[str] = Field(default=None, alias="originalFilename")
    material: Optional[str] = None


class ImageMetadataOptions(BaseModel):
    """Optional inputs accepted when building an ImageRecord.

    Accepts both the snake_case names and the camelCase attribute names used
    in the table, so option dicts from other services can be passed through.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    material_type: Optional[str] = Field(default=None, alias="materialType")
    image_size: Optional[int] = Field(default=None, alias="imageSize")
    image_format: Optional[str] = Field(default=None, alias="imageFormat")
    processing_status: Optional[ProcessingStatus] = Field(default=None, alias="processingStatus")
    width: Optional[int] = None
    height: Optional[int] = None
    upload_source: Optional[UploadSource] = Field(default=None, alias="uploadSource")
    original_filename: Optional[str] = Field(default=None, alias="originalFilename")
    material: Optional[str] = None
    ttl_days: Optional[int] = Field(default=None, alias="ttlDays")
    extra_metadata: Dict[str, Any] = Field(default_factory=dict, alias="extraMetadata")


class ImageRecord(BaseModel):
    """
    One row of the CustomerImages table, keyed by (customerID, imageID).

    ``s3_key`` and ``thumbnail_key`` are computed from the identity fields on
    every access. Values supplied for them on input are ignored.
    """
    model_config = ConfigDict(populate_by_name=True)

    customer_id: str = Field(alias="customerID")
    image_id: str = Field(alias="imageID")
    created_at: int = Field(alias="createdAt")
    type: ImageType
    status: ImageStatus = ImageStatus.ACTIVE
    material_type: Optional[str] = Field(default=None, alias="materialType")
    image_size: Optional[int] = Field(default=None, alias="imageSize")
    image_format: Optional[str] = Field(default=None, alias="imageFormat")
    processing_status: Optional[ProcessingStatus] = Field(default=None, alias="processingStatus")
    metadata: ImageDetails = Field(default_factory=ImageDetails)
    expires_at: Optional[int] = Field(default=None, alias="expiresAt")

    @computed_field(alias="s3Key")
    @property
    def s3_key(self) -> str:
        return build_object_key(self.customer_id, self.image_id, self.type,
                                ORIGINAL_SUFFIX_BY_TYPE[self.type])

    @computed_field(alias="thumbnailKey")
    @property
    def thumbnail_key(self) -> str:
        return build_object_key(self.customer_id, self.image_id, self.type, THUMBNAIL_SUFFIX)

    def to_item(self) -> Dict[str, Any]:
        """DynamoDB item shape: camelCase attributes, no empty values, floats as Decimal"""
        item = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return to_dynamodb_value(item)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ImageRecord":
        """Load a record from a DynamoDB item"""
        return cls.model_validate(from_dynamodb_value(item))


def to_dynamodb_value(value: Any) -> Any:
    """Convert floats (unsupported by boto3) to Decimal, recursively"""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamodb_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(v) for v in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """Convert Decimal numbers returned by boto3 back to int/float, recursively"""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(v) for v in value]
    return value
