"""S3 object access for customer images."""
import logging
from typing import Dict, List, Optional

from botocore.exceptions import ClientError

from ..config import StorageConfig
from ..models import ImageRecord, ImageType
from ..storage_utils import StorageKeyCodec

logger = logging.getLogger(__name__)

CLIENT_METHODS = {
    'getObject': 'get_object',
    'putObject': 'put_object',
}
IMAGE_CONTENT_TYPE = 'image/jpeg'


class ImageObjectService:
    """Presigned URLs and key listings for objects in the customer images bucket"""

    def __init__(self, s3_client, codec: Optional[StorageKeyCodec] = None,
                 expires_in: Optional[int] = None, config: Optional[StorageConfig] = None):
        config = config or StorageConfig.from_env()
        self.s3 = s3_client
        self.codec = codec or StorageKeyCodec(config.bucket_name)
        self.expires_in = expires_in or config.presigned_url_expires_in

    def generate_presigned_url(self, s3_key: str, operation: str = 'getObject',
                               expires_in: Optional[int] = None,
                               content_type: Optional[str] = None) -> str:
        signature = self.codec.generate_presigned_url_signature(
            operation, s3_key, expires_in or self.expires_in
        )
        params = {'Bucket': signature['bucket'], 'Key': signature['key']}
        if content_type and operation == 'putObject':
            params['ContentType'] = content_type

        try:
            return self.s3.generate_presigned_url(
                CLIENT_METHODS[operation],
                Params=params,
                ExpiresIn=signature['expiresIn'],
            )
        except ClientError as e:
            logger.error(f"Failed to presign {operation} for {s3_key}: {e}")
            raise

    def upload_urls(self, record: ImageRecord) -> Dict[str, str]:
        """PUT URLs for the original image and its thumbnail"""
        return {
            'original': self.generate_presigned_url(record.s3_key, 'putObject',
                                                    content_type=IMAGE_CONTENT_TYPE),
            'thumbnail': self.generate_presigned_url(record.thumbnail_key, 'putObject',
                                                     content_type=IMAGE_CONTENT_TYPE),
        }

    def download_urls(self, record: ImageRecord) -> Dict[str, str]:
        return {
            'original': self.generate_presigned_url(record.s3_key),
            'thumbnail': self.generate_presigned_url(record.thumbnail_key),
        }

    def list_customer_keys(self, customer_id: str, image_type: Optional[ImageType] = None,
                           include_thumbnails: bool = True) -> List[str]:
        """All object keys under a customer's folders, optionally for one image type"""
        folders = self.codec.get_customer_folder_structure(customer_id)
        if image_type is None:
            prefixes = [folders['uploaded'], folders['savedResult']]
        elif ImageType(image_type) == ImageType.UPLOADED:
            prefixes = [folders['uploaded']]
        else:
            prefixes = [folders['savedResult']]

        keys = []
        paginator = self.s3.get_paginator('list_objects_v2')
        try:
            for prefix in prefixes:
                for page in paginator.paginate(Bucket=self.codec.bucket_name, Prefix=prefix):
                    for obj in page.get('Contents', []):
                        key = obj['Key']
                        if include_thumbnails or not self.codec.is_thumbnail(key):
                            keys.append(key)
        except ClientError as e:
            logger.error(f"Failed to list objects for customer {customer_id}: {e}")
            raise

        logger.info(f"Found {len(keys)} objects for customer {customer_id}")
        return keys
