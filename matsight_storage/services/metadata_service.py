"""DynamoDB access for customer image metadata records."""
import logging
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from ..exceptions import ImageAlreadyExistsError, ImageNotFoundError, InvalidFormatError
from ..models import ImageDetails, ImageRecord, ImageStatus, ImageType, ProcessingStatus
from ..models.image_record import to_dynamodb_value
from ..storage_utils import StorageKeyCodec

logger = logging.getLogger(__name__)

# Global secondary indexes provisioned on the CustomerImages table
TYPE_STATUS_INDEX = "TypeStatusIndex"
CREATED_AT_INDEX = "CreatedAtIndex"
MATERIAL_TYPE_INDEX = "MaterialTypeIndex"
PROCESSING_STATUS_INDEX = "ProcessingStatusIndex"
IMAGE_FORMAT_INDEX = "ImageFormatIndex"


def _is_conditional_check_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


class ImageMetadataService:
    """
    Reads and writes ImageRecords in the CustomerImages table.

    Records are written once, conditionally on the (customerID, imageID) key
    being free. Later changes are limited to status, processingStatus and
    metadata; the identity fields and derived S3 keys are never rewritten.
    """

    def __init__(self, table, codec: Optional[StorageKeyCodec] = None):
        self.table = table
        self.codec = codec or StorageKeyCodec()

    def put_image_record(self, record: ImageRecord) -> ImageRecord:
        """Store a new record, failing if the image ID is already taken"""
        try:
            self.table.put_item(
                Item=record.to_item(),
                ConditionExpression=Attr('imageID').not_exists(),
            )
        except ClientError as e:
            if _is_conditional_check_failure(e):
                raise ImageAlreadyExistsError(record.customer_id, record.image_id) from e
            logger.error(f"Failed to store image record {record.image_id}: {e}")
            raise

        logger.info(f"Stored image record {record.image_id} for customer {record.customer_id}")
        return record

    def create_image(self, customer_id: str, image_type: ImageType, **options) -> ImageRecord:
        """Generate an image ID, build the record and store it"""
        if not self.codec.validate_customer_id(customer_id):
            raise InvalidFormatError(f"Invalid customer ID: {customer_id}")

        image_id = self.codec.generate_image_id(image_type)
        record = self.codec.create_image_metadata(customer_id, image_id, image_type, **options)
        return self.put_image_record(record)

    def get_image_record(self, customer_id: str, image_id: str) -> Optional[ImageRecord]:
        try:
            response = self.table.get_item(Key=self._key(customer_id, image_id))
        except ClientError as e:
            logger.error(f"Failed to load image record {image_id}: {e}")
            raise

        item = response.get('Item')
        return ImageRecord.from_item(item) if item else None

    def update_processing_status(self, customer_id: str, image_id: str,
                                 processing_status: ProcessingStatus) -> ImageRecord:
        return self._update(
            customer_id, image_id,
            "SET #ps = :ps",
            {'#ps': 'processingStatus'},
            {':ps': ProcessingStatus(processing_status).value},
        )

    def update_metadata(self, customer_id: str, image_id: str, metadata: Dict[str, Any]) -> ImageRecord:
        """Merge keys into the record's metadata map"""
        if not metadata:
            raise ValueError("No metadata to update")
        ImageDetails.model_validate(metadata)

        assignments = []
        names = {'#m': 'metadata'}
        values = {}
        for index, (name, value) in enumerate(metadata.items()):
            assignments.append(f"#m.#k{index} = :v{index}")
            names[f"#k{index}"] = name
            values[f":v{index}"] = to_dynamodb_value(value)

        return self._update(customer_id, image_id, "SET " + ", ".join(assignments), names, values)

    def mark_deleted(self, customer_id: str, image_id: str) -> ImageRecord:
        """Logical delete; the item is reclaimed later through expiresAt"""
        record = self._update(
            customer_id, image_id,
            "SET #st = :st",
            {'#st': 'status'},
            {':st': ImageStatus.DELETED.value},
        )
        logger.info(f"Marked image {image_id} deleted for customer {customer_id}")
        return record

    def list_customer_images(self, customer_id: str, limit: Optional[int] = None,
                             newest_first: bool = True, include_deleted: bool = False) -> List[ImageRecord]:
        filter_expression = None if include_deleted else Attr('status').ne(ImageStatus.DELETED.value)
        return self._query(
            CREATED_AT_INDEX,
            Key('customerID').eq(customer_id),
            limit=limit,
            newest_first=newest_first,
            filter_expression=filter_expression,
        )

    def query_by_type(self, image_type: ImageType, status: Optional[ImageStatus] = None,
                      limit: Optional[int] = None) -> List[ImageRecord]:
        condition = Key('type').eq(ImageType(image_type).value)
        if status is not None:
            condition = condition & Key('status').eq(ImageStatus(status).value)
        return self._query(TYPE_STATUS_INDEX, condition, limit=limit)

    def query_by_processing_status(self, processing_status: ProcessingStatus,
                                   limit: Optional[int] = None) -> List[ImageRecord]:
        condition = Key('processingStatus').eq(ProcessingStatus(processing_status).value)
        return self._query(PROCESSING_STATUS_INDEX, condition, limit=limit)

    def query_by_material_type(self, material_type: str, limit: Optional[int] = None) -> List[ImageRecord]:
        return self._query(MATERIAL_TYPE_INDEX, Key('materialType').eq(material_type), limit=limit)

    def query_by_image_format(self, image_format: str, limit: Optional[int] = None) -> List[ImageRecord]:
        return self._query(IMAGE_FORMAT_INDEX, Key('imageFormat').eq(image_format), limit=limit)

    @staticmethod
    def _key(customer_id: str, image_id: str) -> Dict[str, str]:
        return {'customerID': customer_id, 'imageID': image_id}

    def _update(self, customer_id: str, image_id: str, update_expression: str,
                names: Dict[str, str], values: Dict[str, Any]) -> ImageRecord:
        try:
            response = self.table.update_item(
                Key=self._key(customer_id, image_id),
                UpdateExpression=update_expression,
                ConditionExpression=Attr('imageID').exists(),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues='ALL_NEW',
            )
        except ClientError as e:
            if _is_conditional_check_failure(e):
                raise ImageNotFoundError(customer_id, image_id) from e
            logger.error(f"Failed to update image record {image_id}: {e}")
            raise

        return ImageRecord.from_item(response['Attributes'])

    def _query(self, index_name: str, key_condition, limit: Optional[int] = None,
               newest_first: bool = True, filter_expression=None) -> List[ImageRecord]:
        """Query a secondary index, following pagination until exhausted or limit reached"""
        kwargs = {
            'IndexName': index_name,
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': not newest_first,
        }
        if filter_expression is not None:
            kwargs['FilterExpression'] = filter_expression
        if limit is not None:
            if limit < 0:
                raise ValueError(f"Query limit cannot be negative: {limit}")
            if limit == 0:
                return []

        records: List[ImageRecord] = []
        while True:
            if limit is not None:
                kwargs['Limit'] = limit - len(records)
            try:
                response = self.table.query(**kwargs)
            except ClientError as e:
                logger.error(f"Query on {index_name} failed: {e}")
                raise

            records.extend(ImageRecord.from_item(item) for item in response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key or (limit is not None and len(records) >= limit):
                break
            kwargs['ExclusiveStartKey'] = last_key

        return records[:limit] if limit is not None else records
