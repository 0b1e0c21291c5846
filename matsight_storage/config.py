"""Configuration for the customer image storage layer."""
import os
from dataclasses import dataclass

DEFAULT_BUCKET_NAME = "matsight-customer-images"
DEFAULT_TABLE_NAME = "CustomerImages"
DEFAULT_MODELS_BUCKET_NAME = "matsight-maskterial-models"
DEFAULT_REGION = "us-west-2"
DEFAULT_PRESIGNED_URL_EXPIRES_IN = 3600


@dataclass
class StorageConfig:
    """Names and settings shared by the codec, the services and the CDK app"""
    bucket_name: str = DEFAULT_BUCKET_NAME
    table_name: str = DEFAULT_TABLE_NAME
    models_bucket_name: str = DEFAULT_MODELS_BUCKET_NAME
    region: str = DEFAULT_REGION
    presigned_url_expires_in: int = DEFAULT_PRESIGNED_URL_EXPIRES_IN

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Build a config from environment variables, falling back to defaults"""
        return cls(
            bucket_name=os.getenv("CUSTOMER_IMAGES_BUCKET", DEFAULT_BUCKET_NAME),
            table_name=os.getenv("CUSTOMER_IMAGES_TABLE", DEFAULT_TABLE_NAME),
            models_bucket_name=os.getenv("MODELS_BUCKET", DEFAULT_MODELS_BUCKET_NAME),
            region=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', DEFAULT_REGION)),
            presigned_url_expires_in=int(os.getenv("PRESIGNED_URL_EXPIRES_IN",
                                                   str(DEFAULT_PRESIGNED_URL_EXPIRES_IN))),
        )
