from __future__ import annotations

from typing import cast

from aws_cdk import (
    CfnOutput,
    CfnResource,
    Duration,
    Fn,
    RemovalPolicy,
    Stack,
    aws_cloudfront as cloudfront,
    aws_lambda as _lambda,
    aws_s3 as s3,
)
from constructs import Construct

from .cloudfront import (
    HOST_FORWARD_FUNCTION,
    HOST_FORWARD_FUNCTION_CODE,
    ORIGIN_ACCESS_CONTROL,
    SERVER_FUNCTION,
    SERVER_FUNCTION_CACHE_POLICY_CONFIG,
    SERVER_FUNCTION_URL,
    SITE_BUCKET,
    SITE_BUCKET_POLICY,
    SITE_DISTRIBUTION,
    SSR_CACHE_POLICY,
    DistributionTopology,
)
from .functions import ComputeUnit
from .introspection import BUCKET_OUTPUT, DOMAIN_OUTPUT, URL_OUTPUT


class SiteStack(Stack):

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        topology: DistributionTopology,
        compute: ComputeUnit | None = None,
        forward_host: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        # Private, encrypted site bucket
        bucket = s3.CfnBucket(self, SITE_BUCKET,
            bucket_encryption=s3.CfnBucket.BucketEncryptionProperty(
                server_side_encryption_configuration=[
                    s3.CfnBucket.ServerSideEncryptionRuleProperty(
                        server_side_encryption_by_default=s3.CfnBucket.ServerSideEncryptionByDefaultProperty(
                            sse_algorithm="AES256",
                        ),
                    ),
                ],
            ),
            public_access_block_configuration=s3.CfnBucket.PublicAccessBlockConfigurationProperty(
                block_public_acls=True,
                block_public_policy=True,
                ignore_public_acls=True,
                restrict_public_buckets=True,
            ),
        )
        bucket.apply_removal_policy(RemovalPolicy.DESTROY)

        # Only requests signed by this distribution may read the bucket
        s3.CfnBucketPolicy(self, SITE_BUCKET_POLICY,
            bucket=bucket.ref,
            policy_document={
                "Id": "BucketPolicy",
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Sid": "PublicReadForCloudFront",
                        "Effect": "Allow",
                        "Principal": {"Service": "cloudfront.amazonaws.com"},
                        "Action": ["s3:GetObject", "s3:ListBucket"],
                        "Resource": [f"{bucket.attr_arn}/*", bucket.attr_arn],
                        "Condition": {
                            "StringEquals": {
                                "AWS:SourceArn": Fn.sub(
                                    "arn:aws:cloudfront::${AWS::AccountId}:distribution/" + "${" + SITE_DISTRIBUTION + "}"
                                ),
                            },
                        },
                    },
                ],
            },
        )

        cloudfront.CfnOriginAccessControl(self, ORIGIN_ACCESS_CONTROL,
            origin_access_control_config=cloudfront.CfnOriginAccessControl.OriginAccessControlConfigProperty(
                name=Fn.sub("${AWS::StackName}-${AWS::Region}"),
                description=Fn.sub("Used by ${AWS::StackName}-${AWS::Region}"),
                origin_access_control_origin_type="s3",
                signing_behavior="always",
                signing_protocol="sigv4",
            ),
        )

        if compute is not None:
            self._add_server_function(compute)
            CfnResource(self, SSR_CACHE_POLICY,
                type="AWS::CloudFront::CachePolicy",
                properties={"CachePolicyConfig": SERVER_FUNCTION_CACHE_POLICY_CONFIG},
            )
            if forward_host:
                cloudfront.CfnFunction(self, HOST_FORWARD_FUNCTION,
                    name=Fn.sub("${AWS::StackName}-host-forward"),
                    auto_publish=True,
                    function_code=HOST_FORWARD_FUNCTION_CODE,
                    function_config=cloudfront.CfnFunction.FunctionConfigProperty(
                        comment="Copy the viewer Host header into x-forwarded-host",
                        runtime="cloudfront-js-2.0",
                    ),
                )

        distribution = CfnResource(self, SITE_DISTRIBUTION,
            type="AWS::CloudFront::Distribution",
            properties={"DistributionConfig": topology.to_cfn()},
        )

        CfnOutput(self, BUCKET_OUTPUT,
            description="Name of the site bucket",
            value=bucket.ref,
        )
        CfnOutput(self, DOMAIN_OUTPUT,
            description="Domain of the CloudFront distribution",
            value=distribution.get_att("DomainName").to_string(),
        )
        CfnOutput(self, URL_OUTPUT,
            description="URL of the CloudFront distribution",
            value=Fn.sub("https://${" + SITE_DISTRIBUTION + ".DomainName}"),
        )

    def _add_server_function(self, compute: ComputeUnit) -> None:
        server = _lambda.Function(self, "ServerFunction",
            function_name=compute.name,
            runtime=_lambda.Runtime.NODEJS_20_X,
            handler=compute.handler,
            code=_lambda.Code.from_asset(str(compute.artifact)),
            timeout=Duration.seconds(compute.timeout_seconds),
            memory_size=compute.memory_size,
            environment=dict(compute.environment),
        )
        cast(CfnResource, server.node.default_child).override_logical_id(SERVER_FUNCTION)

        url = server.add_function_url(auth_type=_lambda.FunctionUrlAuthType.NONE)
        cast(CfnResource, url.node.default_child).override_logical_id(SERVER_FUNCTION_URL)
