"""
Material Recognition Service Storage Stack
"""

import aws_cdk as cdk
from aws_cdk import CfnOutput
from constructs import Construct
from typing import List, Optional

from .constructs.storage import CustomerImagesBucketConstruct, CustomerImagesTableConstruct
from .constructs.models_bucket import ModelsBucketConstruct


class StorageStack(cdk.Stack):
    """
    Customer images bucket, image metadata table and models bucket.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 s3_bucket_name: Optional[str] = None,
                 dynamodb_table_name: Optional[str] = None,
                 models_bucket_name: Optional[str] = None,
                 billing_mode: str = 'PAY_PER_REQUEST',
                 enable_storage_auto_scaling: bool = True,
                 enable_access_logging: bool = True,
                 cors_origins: Optional[List[str]] = None,
                 retention_days: int = 365,
                 import_existing_resources: bool = False,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.images_bucket = CustomerImagesBucketConstruct(
            self, "CustomerImages",
            bucket_name=s3_bucket_name,
            enable_versioning=True,
            enable_lifecycle_rules=True,
            retention_days=retention_days,
            cors_origins=cors_origins if cors_origins is not None else ['*'],
            enable_access_logging=enable_access_logging,
            import_existing=import_existing_resources,
        )

        self.images_table = CustomerImagesTableConstruct(
            self, "ImageMetadata",
            table_name=dynamodb_table_name,
            billing_mode=billing_mode,
            enable_point_in_time_recovery=True,
            enable_auto_scaling=enable_storage_auto_scaling,
            min_capacity=1,
            max_capacity=100,
            enable_streaming=False,
        )

        self.models_bucket = ModelsBucketConstruct(
            self, "Models",
            bucket_name=models_bucket_name,
            versioned=True,
            noncurrent_version_expiration_days=60,
            import_existing=import_existing_resources,
        )

        self._create_outputs()

    def _create_outputs(self) -> None:
        CfnOutput(
            self, "CustomerImagesBucketName",
            value=self.images_bucket.bucket_name,
            description="S3 bucket for customer images and thumbnails"
        )

        CfnOutput(
            self, "CustomerImagesTableName",
            value=self.images_table.table_name,
            description="DynamoDB table for customer image metadata"
        )
