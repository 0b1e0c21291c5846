"""
Common CDK-Nag suppressions for the storage stack
Use this file to centrally manage suppressions across all stacks
"""

from cdk_nag import NagSuppressions
from aws_cdk import Stack


def apply_common_suppressions(stack: Stack):
    """Apply suppressions that are acceptable for the image storage stack"""

    common_suppressions = [
        {
            "id": "AwsSolutions-IAM4",
            "reason": "AWS managed policies are used by CDK-generated auto scaling roles"
        },
        {
            "id": "AwsSolutions-L1",
            "reason": "Lambda runtime versions are managed by CDK defaults"
        },
    ]

    NagSuppressions.add_stack_suppressions(stack, common_suppressions)
