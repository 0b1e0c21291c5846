"""
Models Bucket Construct for segmentation model artifacts
"""

from aws_cdk import (
    aws_s3 as s3,
    aws_iam as iam,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
)
from cdk_nag import NagSuppressions
from constructs import Construct
from typing import List, Optional
import logging

from matsight_storage.config import DEFAULT_MODELS_BUCKET_NAME

logger = logging.getLogger(__name__)


class ModelsBucketConstruct(Construct):
    """
    Versioned bucket holding the recognition models, read by the service instances.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 bucket_name: Optional[str] = None,
                 versioned: bool = True,
                 noncurrent_version_expiration_days: int = 30,
                 cors_origins: Optional[List[str]] = None,
                 import_existing: bool = False) -> None:
        super().__init__(scope, construct_id)

        bucket_name = bucket_name or DEFAULT_MODELS_BUCKET_NAME

        if import_existing:
            self.bucket = s3.Bucket.from_bucket_name(self, "ImportedModelsBucket", bucket_name)
            self.is_imported = True
            logger.info(f"Importing existing models S3 bucket: {bucket_name}")
        else:
            self.bucket = s3.Bucket(
                self, "ModelsBucket",
                bucket_name=bucket_name,
                versioned=versioned,
                encryption=s3.BucketEncryption.S3_MANAGED,
                block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
                enforce_ssl=True,
                cors=[
                    s3.CorsRule(
                        allowed_methods=[s3.HttpMethods.GET, s3.HttpMethods.HEAD],
                        allowed_origins=cors_origins or ['*'],
                        allowed_headers=['*'],
                        max_age=3000,
                    )
                ],
                lifecycle_rules=[
                    s3.LifecycleRule(
                        id="DeleteOldVersions",
                        noncurrent_version_expiration=Duration.days(noncurrent_version_expiration_days),
                        noncurrent_version_transitions=[
                            s3.NoncurrentVersionTransition(
                                storage_class=s3.StorageClass.INFREQUENT_ACCESS,
                                transition_after=Duration.days(7),
                            )
                        ],
                    )
                ],
                removal_policy=RemovalPolicy.RETAIN,
                auto_delete_objects=False,
            )
            self.is_imported = False
            logger.info(f"Creating new models S3 bucket: {bucket_name}")

            NagSuppressions.add_resource_suppressions(
                self.bucket,
                [{"id": "AwsSolutions-S1", "reason": "Model artifacts are written by the build pipeline only"}]
            )

        self.access_policy = iam.ManagedPolicy(
            self, "ModelsBucketAccessPolicy",
            managed_policy_name=f"{bucket_name}-access-policy",
            description="Policy for service instances to read recognition models",
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=[
                        "s3:GetObject",
                        "s3:GetObjectVersion",
                        "s3:ListBucket",
                        "s3:GetBucketLocation",
                    ],
                    resources=[
                        self.bucket.bucket_arn,
                        f"{self.bucket.bucket_arn}/*",
                    ],
                )
            ],
        )

        NagSuppressions.add_resource_suppressions(
            self.access_policy,
            [{"id": "AwsSolutions-IAM5", "reason": "Models are read by key prefix"}]
        )

        stack_name = Stack.of(self).stack_name
        CfnOutput(
            self, "ModelsBucketName",
            value=self.bucket.bucket_name,
            description="Name of the S3 bucket containing recognition models",
            export_name=f"{stack_name}-ModelsBucketName"
        )
        CfnOutput(
            self, "ModelsBucketArn",
            value=self.bucket.bucket_arn,
            description="ARN of the S3 bucket containing recognition models",
            export_name=f"{stack_name}-ModelsBucketArn"
        )

    def grant_read_access(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_read(grantee)

    def grant_read_write_access(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_read_write(grantee)

    def grant_write_access(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_write(grantee)
