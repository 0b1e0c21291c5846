"""Tests for ImageMetadataService against a mocked DynamoDB table."""
from decimal import Decimal
from unittest.mock import Mock

import pytest
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from matsight_storage.exceptions import ImageAlreadyExistsError, ImageNotFoundError, InvalidFormatError
from matsight_storage.models import ImageStatus, ImageType, ProcessingStatus
from matsight_storage.services.metadata_service import (
    CREATED_AT_INDEX,
    PROCESSING_STATUS_INDEX,
    TYPE_STATUS_INDEX,
    ImageMetadataService,
)

from conftest import FIXED_NOW_MS

CUSTOMER_ID = "customer-12345"


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def stored_item(image_id, **overrides):
    item = {
        "customerID": CUSTOMER_ID,
        "imageID": image_id,
        "createdAt": Decimal(FIXED_NOW_MS),
        "type": "UPLOADED",
        "status": "active",
        "imageFormat": "jpg",
        "processingStatus": "pending",
        "metadata": {"uploadSource": "api"},
        "expiresAt": Decimal(FIXED_NOW_MS + 365 * 86400000),
    }
    item.update(overrides)
    return item


@pytest.fixture
def table():
    return Mock()


@pytest.fixture
def service(table, codec):
    return ImageMetadataService(table, codec=codec)


def test_create_image_writes_conditionally(service, table):
    record = service.create_image(CUSTOMER_ID, ImageType.UPLOADED, material_type="graphene", image_size=1024)

    assert record.image_id == f"uploaded-{FIXED_NOW_MS}-i"
    table.put_item.assert_called_once()
    kwargs = table.put_item.call_args.kwargs
    assert kwargs["ConditionExpression"] == Attr("imageID").not_exists()
    item = kwargs["Item"]
    assert item["customerID"] == CUSTOMER_ID
    assert item["s3Key"] == f"{CUSTOMER_ID}/uploaded/{record.image_id}_original.jpg"
    assert item["materialType"] == "graphene"
    assert item["metadata"]["material"] == "graphene"
    assert item["expiresAt"] - item["createdAt"] == 365 * 86400000


def test_create_image_rejects_invalid_customer(service, table):
    with pytest.raises(InvalidFormatError):
        service.create_image("ab", ImageType.UPLOADED)
    table.put_item.assert_not_called()


def test_put_image_record_collision(service, table, codec):
    table.put_item.side_effect = client_error("ConditionalCheckFailedException")
    record = codec.create_image_metadata(CUSTOMER_ID, "uploaded-1-abcdefgh", ImageType.UPLOADED)

    with pytest.raises(ImageAlreadyExistsError) as exc_info:
        service.put_image_record(record)
    assert exc_info.value.image_id == "uploaded-1-abcdefgh"


def test_put_image_record_other_errors_propagate(service, table, codec):
    table.put_item.side_effect = client_error("ProvisionedThroughputExceededException")
    record = codec.create_image_metadata(CUSTOMER_ID, "uploaded-1-abcdefgh", ImageType.UPLOADED)

    with pytest.raises(ClientError):
        service.put_image_record(record)


def test_get_image_record(service, table):
    table.get_item.return_value = {"Item": stored_item("uploaded-1-abcdefgh")}

    record = service.get_image_record(CUSTOMER_ID, "uploaded-1-abcdefgh")

    table.get_item.assert_called_once_with(Key={"customerID": CUSTOMER_ID, "imageID": "uploaded-1-abcdefgh"})
    assert record.created_at == FIXED_NOW_MS
    assert record.s3_key == f"{CUSTOMER_ID}/uploaded/uploaded-1-abcdefgh_original.jpg"


def test_get_missing_image_record(service, table):
    table.get_item.return_value = {}
    assert service.get_image_record(CUSTOMER_ID, "uploaded-1-missing") is None


def test_update_processing_status(service, table):
    table.update_item.return_value = {"Attributes": stored_item("uploaded-1-abcdefgh", processingStatus="completed")}

    record = service.update_processing_status(CUSTOMER_ID, "uploaded-1-abcdefgh", "completed")

    kwargs = table.update_item.call_args.kwargs
    assert kwargs["UpdateExpression"] == "SET #ps = :ps"
    assert kwargs["ExpressionAttributeNames"] == {"#ps": "processingStatus"}
    assert kwargs["ExpressionAttributeValues"] == {":ps": "completed"}
    assert kwargs["ConditionExpression"] == Attr("imageID").exists()
    assert record.processing_status == ProcessingStatus.COMPLETED


def test_update_processing_status_rejects_unknown_value(service, table):
    with pytest.raises(ValueError):
        service.update_processing_status(CUSTOMER_ID, "uploaded-1-abcdefgh", "archived")
    table.update_item.assert_not_called()


def test_update_metadata_merges_keys(service, table):
    table.update_item.return_value = {"Attributes": stored_item("uploaded-1-abcdefgh")}

    service.update_metadata(CUSTOMER_ID, "uploaded-1-abcdefgh", {"material": "hBN", "confidence": 0.93})

    kwargs = table.update_item.call_args.kwargs
    assert kwargs["UpdateExpression"] == "SET #m.#k0 = :v0, #m.#k1 = :v1"
    assert kwargs["ExpressionAttributeNames"] == {"#m": "metadata", "#k0": "material", "#k1": "confidence"}
    assert kwargs["ExpressionAttributeValues"] == {":v0": "hBN", ":v1": Decimal("0.93")}


def test_update_metadata_requires_keys(service):
    with pytest.raises(ValueError):
        service.update_metadata(CUSTOMER_ID, "uploaded-1-abcdefgh", {})


def test_mark_deleted(service, table):
    table.update_item.return_value = {"Attributes": stored_item("uploaded-1-abcdefgh", status="deleted")}

    record = service.mark_deleted(CUSTOMER_ID, "uploaded-1-abcdefgh")

    assert table.update_item.call_args.kwargs["ExpressionAttributeValues"] == {":st": "deleted"}
    assert record.status == ImageStatus.DELETED


def test_mark_deleted_missing_record(service, table):
    table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")

    with pytest.raises(ImageNotFoundError):
        service.mark_deleted(CUSTOMER_ID, "uploaded-1-missing")


def test_list_customer_images_follows_pagination(service, table):
    table.query.side_effect = [
        {"Items": [stored_item("uploaded-3-aaaaaaaa")], "LastEvaluatedKey": {"imageID": "uploaded-3-aaaaaaaa"}},
        {"Items": [stored_item("uploaded-2-bbbbbbbb"), stored_item("uploaded-1-cccccccc")]},
    ]

    records = service.list_customer_images(CUSTOMER_ID)

    assert [r.image_id for r in records] == ["uploaded-3-aaaaaaaa", "uploaded-2-bbbbbbbb", "uploaded-1-cccccccc"]
    first_call, second_call = table.query.call_args_list
    assert first_call.kwargs["IndexName"] == CREATED_AT_INDEX
    assert first_call.kwargs["KeyConditionExpression"] == Key("customerID").eq(CUSTOMER_ID)
    assert first_call.kwargs["ScanIndexForward"] is False
    assert first_call.kwargs["FilterExpression"] == Attr("status").ne("deleted")
    assert "ExclusiveStartKey" not in first_call.kwargs
    assert second_call.kwargs["ExclusiveStartKey"] == {"imageID": "uploaded-3-aaaaaaaa"}


def test_list_customer_images_respects_limit(service, table):
    table.query.return_value = {
        "Items": [stored_item("uploaded-3-aaaaaaaa"), stored_item("uploaded-2-bbbbbbbb")],
        "LastEvaluatedKey": {"imageID": "uploaded-2-bbbbbbbb"},
    }

    records = service.list_customer_images(CUSTOMER_ID, limit=2, include_deleted=True)

    assert len(records) == 2
    table.query.assert_called_once()
    assert table.query.call_args.kwargs["Limit"] == 2
    assert "FilterExpression" not in table.query.call_args.kwargs


def test_query_by_type_and_status(service, table):
    table.query.return_value = {"Items": []}

    service.query_by_type(ImageType.SAVED_RESULT, status=ImageStatus.ACTIVE)

    kwargs = table.query.call_args.kwargs
    assert kwargs["IndexName"] == TYPE_STATUS_INDEX
    assert kwargs["KeyConditionExpression"] == Key("type").eq("SAVED_RESULT") & Key("status").eq("active")


def test_query_by_processing_status(service, table):
    table.query.return_value = {"Items": [stored_item("uploaded-1-abcdefgh", processingStatus="failed")]}

    records = service.query_by_processing_status(ProcessingStatus.FAILED)

    assert table.query.call_args.kwargs["IndexName"] == PROCESSING_STATUS_INDEX
    assert records[0].processing_status == ProcessingStatus.FAILED


def test_query_errors_propagate(service, table):
    table.query.side_effect = client_error("ResourceNotFoundException", "Query")

    with pytest.raises(ClientError):
        service.query_by_image_format("png")


@pytest.mark.parametrize("metadata", [
    {"uploadSource": "fax"},
    {"width": 1.5},
])
def test_update_metadata_rejects_invalid_recognized_keys(service, table, metadata):
    with pytest.raises(ValueError):
        service.update_metadata(CUSTOMER_ID, "uploaded-1-abcdefgh", metadata)
    table.update_item.assert_not_called()


def test_zero_limit_returns_nothing(service, table):
    assert service.list_customer_images(CUSTOMER_ID, limit=0) == []
    table.query.assert_not_called()


def test_negative_limit_is_rejected(service, table):
    with pytest.raises(ValueError):
        service.query_by_material_type("graphene", limit=-1)
    table.query.assert_not_called()


def test_default_codec_uses_configured_bucket(table, monkeypatch):
    monkeypatch.setenv("CUSTOMER_IMAGES_BUCKET", "acme-images")

    assert ImageMetadataService(table).codec.bucket_name == "acme-images"
