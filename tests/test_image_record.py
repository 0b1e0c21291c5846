"""Tests for the ImageRecord model and its DynamoDB item shape."""
from decimal import Decimal

from matsight_storage.models import ImageRecord, ImageType, ImageStatus, ProcessingStatus


def make_item(**overrides):
    item = {
        "customerID": "customer-12345",
        "imageID": "uploaded-1700000000000-abc123",
        "createdAt": Decimal("1700000000000"),
        "type": "UPLOADED",
        "status": "active",
        "imageSize": Decimal("2048576"),
        "imageFormat": "jpg",
        "processingStatus": "pending",
        "metadata": {
            "width": Decimal("1920"),
            "height": Decimal("1080"),
            "uploadSource": "web",
            "scale": Decimal("0.25"),
        },
        "expiresAt": Decimal("1731536000000"),
    }
    item.update(overrides)
    return item


def test_from_item_converts_decimals():
    record = ImageRecord.from_item(make_item())

    assert record.created_at == 1700000000000
    assert isinstance(record.created_at, int)
    assert record.image_size == 2048576
    assert record.metadata.width == 1920
    assert record.type == ImageType.UPLOADED
    assert record.processing_status == ProcessingStatus.PENDING
    assert record.to_item()["metadata"]["scale"] == Decimal("0.25")


def test_stored_keys_are_recomputed_from_identity():
    record = ImageRecord.from_item(make_item(s3Key="tampered/key.jpg", thumbnailKey="tampered/thumb.jpg"))

    assert record.s3_key == "customer-12345/uploaded/uploaded-1700000000000-abc123_original.jpg"
    assert record.thumbnail_key == "customer-12345/uploaded/uploaded-1700000000000-abc123_thumbnail.jpg"


def test_saved_result_keys():
    record = ImageRecord.from_item(make_item(imageID="saved_result-1700000000000-abc", type="SAVED_RESULT"))

    assert record.s3_key == "customer-12345/saved-result/saved_result-1700000000000-abc_saved.jpg"
    assert record.thumbnail_key == "customer-12345/saved-result/saved_result-1700000000000-abc_thumbnail.jpg"


def test_to_item_uses_table_attribute_names():
    record = ImageRecord.from_item(make_item())
    item = record.to_item()

    assert item["customerID"] == "customer-12345"
    assert item["imageID"] == "uploaded-1700000000000-abc123"
    assert item["s3Key"] == record.s3_key
    assert item["thumbnailKey"] == record.thumbnail_key
    assert item["type"] == "UPLOADED"
    assert item["status"] == "active"
    assert item["metadata"]["uploadSource"] == "web"
    assert "materialType" not in item
    assert "originalFilename" not in item["metadata"]


def test_status_update_keeps_identity():
    record = ImageRecord.from_item(make_item())
    deleted = record.model_copy(update={"status": ImageStatus.DELETED})

    assert deleted.status == ImageStatus.DELETED
    assert deleted.s3_key == record.s3_key
