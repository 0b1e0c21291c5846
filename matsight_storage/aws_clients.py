"""AWS client factories for the customer image store."""
import logging
from typing import Optional

import boto3
from botocore.config import Config

from .config import StorageConfig

logger = logging.getLogger(__name__)


def create_s3_client(config: Optional[StorageConfig] = None):
    """S3 client with SigV4 signing for presigned URLs."""
    config = config or StorageConfig.from_env()
    logger.info(f"Initializing S3 client for region: {config.region}")
    client_config = Config(signature_version='s3v4', max_pool_connections=50)
    return boto3.client('s3', region_name=config.region, config=client_config)


def create_images_table(config: Optional[StorageConfig] = None):
    """DynamoDB Table resource for the CustomerImages metadata table."""
    config = config or StorageConfig.from_env()
    logger.info(f"Initializing DynamoDB table {config.table_name} in {config.region}")
    return boto3.resource('dynamodb', region_name=config.region).Table(config.table_name)
