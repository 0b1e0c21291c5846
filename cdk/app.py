#!/usr/bin/env python3
"""
Material Recognition Service Storage CDK App
Main entry point for CDK deployment
"""

import logging
import os
import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks

from matsight_storage.config import StorageConfig
from nag_suppressions import apply_common_suppressions
from stacks.storage_stack import StorageStack

logging.basicConfig(level=logging.INFO)

app = cdk.App()
config = StorageConfig.from_env()

# Get environment from CDK context or environment variables
account = app.node.try_get_context("account") or os.environ.get("CDK_DEFAULT_ACCOUNT")
region = app.node.try_get_context("region") or os.environ.get("CDK_DEFAULT_REGION") or config.region


def context_flag(name: str, default: bool) -> bool:
    """Read a boolean from CDK context, accepting "true"/"false" strings from the CLI"""
    value = app.node.try_get_context(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


storage_stack = StorageStack(
    app,
    "MaterialRecognitionStorageStack",
    s3_bucket_name=app.node.try_get_context("s3BucketName") or config.bucket_name,
    dynamodb_table_name=app.node.try_get_context("dynamoDBTableName") or config.table_name,
    models_bucket_name=app.node.try_get_context("modelsBucketName") or config.models_bucket_name,
    billing_mode=app.node.try_get_context("billingMode") or "PAY_PER_REQUEST",
    enable_storage_auto_scaling=context_flag("enableStorageAutoScaling", True),
    enable_access_logging=context_flag("enableAccessLogging", True),
    import_existing_resources=context_flag("importExistingResources", False),
    description="Material Recognition Service - Customer Image Storage",
    env=cdk.Environment(account=account, region=region)
)

apply_common_suppressions(storage_stack)

# Add cdk-nag checks (unless explicitly skipped)
if not os.environ.get("CDK_NAG_SKIP"):
    cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))

app.synth()
