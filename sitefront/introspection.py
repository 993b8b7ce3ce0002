"""Read-only queries against the deployed CloudFormation stack."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import ClientError

from .cloudfront import SITE_BUCKET, SITE_DISTRIBUTION

logger = logging.getLogger(__name__)

BUCKET_OUTPUT = "SiteBucketName"
URL_OUTPUT = "SiteURL"
DOMAIN_OUTPUT = "SiteCloudFrontDomain"


def _stack_missing(error: ClientError) -> bool:
    err = error.response.get("Error", {})
    return err.get("Code") == "ValidationError" and "does not exist" in err.get("Message", "")


class StackIntrospector:
    def __init__(self, stack_name: str, client: Any = None, region: str | None = None):
        self.stack_name = stack_name
        self.client = client or boto3.client("cloudformation", region_name=region)

    def outputs(self) -> dict[str, str]:
        """Stack outputs by key; empty when the stack does not exist yet."""
        try:
            result = self.client.describe_stacks(StackName=self.stack_name)
        except ClientError as e:
            if _stack_missing(e):
                return {}
            raise
        stacks = result.get("Stacks", [])
        if not stacks:
            return {}
        return {o["OutputKey"]: o["OutputValue"] for o in stacks[0].get("Outputs", [])}

    def physical_id(self, logical_id: str) -> str | None:
        try:
            result = self.client.describe_stack_resources(StackName=self.stack_name)
        except ClientError as e:
            if _stack_missing(e):
                return None
            raise
        for resource in result.get("StackResources", []):
            if resource.get("LogicalResourceId") == logical_id:
                return resource.get("PhysicalResourceId")
        return None

    def bucket_name(self) -> str | None:
        return self.outputs().get(BUCKET_OUTPUT)

    def site_url(self) -> str | None:
        return self.outputs().get(URL_OUTPUT)

    def bucket_resource(self) -> str | None:
        return self.physical_id(SITE_BUCKET)

    def distribution_id(self) -> str | None:
        return self.physical_id(SITE_DISTRIBUTION)
