"""
Storage Constructs for the customer images bucket and metadata table
"""

from aws_cdk import (
    aws_s3 as s3,
    aws_dynamodb as dynamodb,
    aws_iam as iam,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Tags,
)
from cdk_nag import NagSuppressions
from constructs import Construct
from typing import List, Optional
import logging

from matsight_storage.config import DEFAULT_BUCKET_NAME, DEFAULT_TABLE_NAME
from matsight_storage.services.metadata_service import (
    TYPE_STATUS_INDEX,
    CREATED_AT_INDEX,
    MATERIAL_TYPE_INDEX,
    PROCESSING_STATUS_INDEX,
    IMAGE_FORMAT_INDEX,
)

logger = logging.getLogger(__name__)

# (index name, partition key, sort key) for every GSI on the images table
IMAGE_TABLE_INDEXES = [
    (TYPE_STATUS_INDEX, ('type', dynamodb.AttributeType.STRING), ('status', dynamodb.AttributeType.STRING)),
    (CREATED_AT_INDEX, ('customerID', dynamodb.AttributeType.STRING), ('createdAt', dynamodb.AttributeType.NUMBER)),
    (MATERIAL_TYPE_INDEX, ('materialType', dynamodb.AttributeType.STRING), ('createdAt', dynamodb.AttributeType.NUMBER)),
    (PROCESSING_STATUS_INDEX, ('processingStatus', dynamodb.AttributeType.STRING), ('createdAt', dynamodb.AttributeType.NUMBER)),
    (IMAGE_FORMAT_INDEX, ('imageFormat', dynamodb.AttributeType.STRING), ('createdAt', dynamodb.AttributeType.NUMBER)),
]

AUTO_SCALING_TARGET_UTILIZATION = 70


class CustomerImagesBucketConstruct(Construct):
    """
    S3 bucket holding customer originals and thumbnails, created or imported.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 bucket_name: Optional[str] = None,
                 enable_versioning: bool = True,
                 enable_lifecycle_rules: bool = False,
                 retention_days: int = 365,
                 cors_origins: Optional[List[str]] = None,
                 enable_access_logging: bool = False,
                 removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
                 import_existing: bool = False) -> None:
        super().__init__(scope, construct_id)

        bucket_name = bucket_name or DEFAULT_BUCKET_NAME
        self.access_log_bucket: Optional[s3.Bucket] = None

        if import_existing:
            self.bucket = s3.Bucket.from_bucket_name(self, "ImportedBucket", bucket_name)
            self.is_imported = True
            logger.info(f"Importing existing S3 bucket: {bucket_name}")
        else:
            if enable_access_logging:
                self.access_log_bucket = self._create_access_log_bucket(bucket_name)
            self.bucket = self._create_bucket(
                bucket_name, enable_versioning, enable_lifecycle_rules,
                retention_days, cors_origins, removal_policy
            )
            self.is_imported = False
            logger.info(f"Creating new S3 bucket: {bucket_name}")

        self.access_policy = self._create_access_policy()
        self._apply_tags()

        CfnOutput(
            self, "S3AccessPolicyArn",
            value=self.access_policy.managed_policy_arn,
            description="ARN of the S3 access policy for the image service instances"
        )

    def _create_bucket(self, bucket_name: str, enable_versioning: bool,
                       enable_lifecycle_rules: bool, retention_days: int,
                       cors_origins: Optional[List[str]],
                       removal_policy: RemovalPolicy) -> s3.Bucket:
        """Create the customer images bucket"""
        bucket_props = {
            'bucket_name': bucket_name,
            'versioned': enable_versioning,
            'removal_policy': removal_policy,
            'auto_delete_objects': False,
            'encryption': s3.BucketEncryption.S3_MANAGED,
            'block_public_access': s3.BlockPublicAccess.BLOCK_ALL,
            'enforce_ssl': True,
        }

        if cors_origins:
            bucket_props['cors'] = [
                s3.CorsRule(
                    allowed_methods=[
                        s3.HttpMethods.GET,
                        s3.HttpMethods.PUT,
                        s3.HttpMethods.POST,
                        s3.HttpMethods.DELETE,
                        s3.HttpMethods.HEAD,
                    ],
                    allowed_origins=cors_origins,
                    allowed_headers=['*'],
                    exposed_headers=['ETag'],
                    max_age=3000,
                )
            ]

        if enable_lifecycle_rules:
            bucket_props['lifecycle_rules'] = [
                s3.LifecycleRule(
                    id="ImageRetention",
                    enabled=True,
                    expiration=Duration.days(retention_days or 365),
                    noncurrent_version_expiration=Duration.days(30),
                    abort_incomplete_multipart_upload_after=Duration.days(7),
                )
            ]

        if self.access_log_bucket is not None:
            bucket_props['server_access_logs_bucket'] = self.access_log_bucket
            bucket_props['server_access_logs_prefix'] = f"{bucket_name}/"

        bucket = s3.Bucket(self, "CustomerImagesBucket", **bucket_props)

        if self.access_log_bucket is not None:
            bucket.add_lifecycle_rule(
                id="AccessLogging",
                enabled=True,
                transitions=[
                    s3.Transition(
                        storage_class=s3.StorageClass.INFREQUENT_ACCESS,
                        transition_after=Duration.days(30),
                    ),
                    s3.Transition(
                        storage_class=s3.StorageClass.GLACIER,
                        transition_after=Duration.days(90),
                    ),
                ],
            )
        else:
            NagSuppressions.add_resource_suppressions(
                bucket,
                [{"id": "AwsSolutions-S1", "reason": "Access logging is enabled per deployment through context"}]
            )

        return bucket

    def _create_access_log_bucket(self, bucket_name: str) -> s3.Bucket:
        log_bucket = s3.Bucket(
            self, "AccessLogBucket",
            bucket_name=f"{bucket_name}-access-logs",
            removal_policy=RemovalPolicy.RETAIN,
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            lifecycle_rules=[
                s3.LifecycleRule(
                    id="LogRetention",
                    enabled=True,
                    expiration=Duration.days(90),
                    noncurrent_version_expiration=Duration.days(30),
                )
            ],
        )

        # The log bucket is the logging target itself
        NagSuppressions.add_resource_suppressions(
            log_bucket,
            [{"id": "AwsSolutions-S1", "reason": "Access log bucket does not log its own access"}]
        )
        return log_bucket

    def _create_access_policy(self) -> iam.ManagedPolicy:
        """Managed policy granting the image service object access"""
        policy = iam.ManagedPolicy(
            self, "S3AccessPolicy",
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=[
                        "s3:GetObject",
                        "s3:PutObject",
                        "s3:DeleteObject",
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
            policy,
            [{"id": "AwsSolutions-IAM5", "reason": "Object access covers every key under the customer prefixes"}]
        )
        return policy

    def _apply_tags(self) -> None:
        if not self.is_imported:
            Tags.of(self.bucket).add("Project", "MaterialRecognitionService")
            Tags.of(self.bucket).add("Purpose", "CustomerImages")

    @property
    def bucket_name(self) -> str:
        """Returns the S3 bucket name"""
        return self.bucket.bucket_name

    @property
    def bucket_arn(self) -> str:
        """Returns the S3 bucket ARN"""
        return self.bucket.bucket_arn

    def grant_read_write(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_read_write(grantee)

    def grant_read(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_read(grantee)

    def grant_write(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.bucket.grant_write(grantee)


class CustomerImagesTableConstruct(Construct):
    """
    DynamoDB table of image metadata records keyed by (customerID, imageID),
    with TTL on expiresAt and one GSI per secondary access pattern.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 table_name: Optional[str] = None,
                 billing_mode: str = 'PAY_PER_REQUEST',
                 read_capacity: int = 5,
                 write_capacity: int = 5,
                 enable_point_in_time_recovery: bool = True,
                 enable_auto_scaling: bool = True,
                 min_capacity: int = 1,
                 max_capacity: int = 100,
                 enable_streaming: bool = False,
                 stream_view_type: dynamodb.StreamViewType = dynamodb.StreamViewType.NEW_AND_OLD_IMAGES) -> None:
        super().__init__(scope, construct_id)

        self.provisioned = billing_mode == 'PROVISIONED'

        table_config = {
            'table_name': table_name or DEFAULT_TABLE_NAME,
            'partition_key': dynamodb.Attribute(name='customerID', type=dynamodb.AttributeType.STRING),
            'sort_key': dynamodb.Attribute(name='imageID', type=dynamodb.AttributeType.STRING),
            'billing_mode': self._get_billing_mode(billing_mode),
            'removal_policy': RemovalPolicy.RETAIN,
            'point_in_time_recovery_specification': dynamodb.PointInTimeRecoverySpecification(
                point_in_time_recovery_enabled=enable_point_in_time_recovery
            ),
            'time_to_live_attribute': 'expiresAt',
            'encryption': dynamodb.TableEncryption.AWS_MANAGED,
        }

        if self.provisioned:
            table_config['read_capacity'] = read_capacity
            table_config['write_capacity'] = write_capacity

        if enable_streaming:
            table_config['stream'] = stream_view_type

        self.table = dynamodb.Table(self, "CustomerImagesTable", **table_config)

        self._add_global_secondary_indexes()

        # On-demand tables scale without capacity targets
        if enable_auto_scaling and self.provisioned:
            self._configure_auto_scaling(min_capacity, max_capacity)

        Tags.of(self.table).add("Project", "MaterialRecognitionService")
        Tags.of(self.table).add("Purpose", "ImageMetadata")

    def _add_global_secondary_indexes(self) -> None:
        for index_name, (pk_name, pk_type), (sk_name, sk_type) in IMAGE_TABLE_INDEXES:
            self.table.add_global_secondary_index(
                index_name=index_name,
                partition_key=dynamodb.Attribute(name=pk_name, type=pk_type),
                sort_key=dynamodb.Attribute(name=sk_name, type=sk_type),
                projection_type=dynamodb.ProjectionType.ALL,
            )

    def _configure_auto_scaling(self, min_capacity: int, max_capacity: int) -> None:
        """Target tracking on the table and every GSI"""
        self.table.auto_scale_read_capacity(
            min_capacity=min_capacity, max_capacity=max_capacity
        ).scale_on_utilization(target_utilization_percent=AUTO_SCALING_TARGET_UTILIZATION)

        self.table.auto_scale_write_capacity(
            min_capacity=min_capacity, max_capacity=max_capacity
        ).scale_on_utilization(target_utilization_percent=AUTO_SCALING_TARGET_UTILIZATION)

        for index_name, _, _ in IMAGE_TABLE_INDEXES:
            self.table.auto_scale_global_secondary_index_read_capacity(
                index_name, min_capacity=min_capacity, max_capacity=max_capacity
            ).scale_on_utilization(target_utilization_percent=AUTO_SCALING_TARGET_UTILIZATION)

            self.table.auto_scale_global_secondary_index_write_capacity(
                index_name, min_capacity=min_capacity, max_capacity=max_capacity
            ).scale_on_utilization(target_utilization_percent=AUTO_SCALING_TARGET_UTILIZATION)

    def _get_billing_mode(self, billing_mode: str) -> dynamodb.BillingMode:
        if billing_mode == 'PROVISIONED':
            return dynamodb.BillingMode.PROVISIONED
        return dynamodb.BillingMode.PAY_PER_REQUEST

    @property
    def table_name(self) -> str:
        return self.table.table_name

    def get_index_names(self) -> list:
        """Get list of all GSI names"""
        return [index_name for index_name, _, _ in IMAGE_TABLE_INDEXES]

    def grant_read_data(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.table.grant_read_data(grantee)

    def grant_write_data(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.table.grant_write_data(grantee)

    def grant_read_write_data(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.table.grant_read_write_data(grantee)

    def grant_full_access(self, grantee: iam.IGrantable) -> iam.Grant:
        return self.table.grant_full_access(grantee)
