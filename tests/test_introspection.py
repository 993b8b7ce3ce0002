"""Tests for stack introspection and invalidation requests."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from sitefront.introspection import StackIntrospector
from sitefront.invalidation import invalidate_distribution
from tests.fakes import cloudformation_client


def missing_stack_client() -> MagicMock:
    client = MagicMock()
    error = ClientError(
        {"Error": {"Code": "ValidationError", "Message": "Stack with id shop-prod does not exist"}},
        "DescribeStacks",
    )
    client.describe_stacks.side_effect = error
    client.describe_stack_resources.side_effect = error
    return client


class TestStackIntrospector:
    def test_outputs(self):
        client = cloudformation_client(outputs={"SiteBucketName": "bucket-123", "SiteURL": "https://d1.cloudfront.net"})
        introspector = StackIntrospector("shop-prod", client=client)

        assert introspector.bucket_name() == "bucket-123"
        assert introspector.site_url() == "https://d1.cloudfront.net"
        client.describe_stacks.assert_called_with(StackName="shop-prod")

    def test_missing_output(self):
        introspector = StackIntrospector("shop-prod", client=cloudformation_client())
        assert introspector.bucket_name() is None

    def test_missing_stack(self):
        introspector = StackIntrospector("shop-prod", client=missing_stack_client())

        assert introspector.outputs() == {}
        assert introspector.distribution_id() is None
        assert introspector.bucket_resource() is None

    def test_physical_ids(self):
        client = cloudformation_client(resources={"SiteBucket": "bucket-123", "SiteDistribution": "E123"})
        introspector = StackIntrospector("shop-prod", client=client)

        assert introspector.bucket_resource() == "bucket-123"
        assert introspector.distribution_id() == "E123"

    def test_other_errors_propagate(self):
        client = MagicMock()
        client.describe_stacks.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DescribeStacks"
        )
        with pytest.raises(ClientError):
            StackIntrospector("shop-prod", client=client).outputs()


class TestInvalidation:
    def test_invalidates_everything(self):
        client = MagicMock()
        client.create_invalidation.return_value = {"Invalidation": {"Id": "I1"}}

        assert invalidate_distribution(client, "E123", caller_reference="2026-01-01") == "I1"
        client.create_invalidation.assert_called_once_with(
            DistributionId="E123",
            InvalidationBatch={"CallerReference": "2026-01-01", "Paths": {"Quantity": 1, "Items": ["/*"]}},
        )

    def test_caller_reference_defaults_to_timestamp(self):
        client = MagicMock()
        client.create_invalidation.return_value = {"Invalidation": {"Id": "I1"}}

        invalidate_distribution(client, "E123")
        reference = client.create_invalidation.call_args.kwargs["InvalidationBatch"]["CallerReference"]
        assert reference.startswith("20")
