"""In-memory stand-ins for the boto3 clients sitefront talks to."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock


class FakeS3:
    """Minimal stand-in for the boto3 S3 client, keeping objects in memory."""

    def __init__(self, events: list | None = None):
        self.objects: dict[str, dict[str, Any]] = {}
        self.events = events if events is not None else []
        self.delete_calls = 0

    def put_object(self, **params: Any) -> dict:
        self.objects[params["Key"]] = params
        self.events.append(("put_object", params["Key"]))
        return {}

    def list_objects_v2(self, **params: Any) -> dict:
        return {"Contents": [{"Key": key} for key in sorted(self.objects)], "IsTruncated": False}

    def delete_objects(self, **params: Any) -> dict:
        self.delete_calls += 1
        for obj in params["Delete"]["Objects"]:
            self.objects.pop(obj["Key"], None)
        return {"Deleted": params["Delete"]["Objects"]}


def cloudformation_client(
    outputs: dict[str, str] | None = None, resources: dict[str, str] | None = None
) -> MagicMock:
    """A mocked CloudFormation client describing one stack."""
    client = MagicMock()
    client.describe_stacks.return_value = {
        "Stacks": [
            {
                "StackName": "shop-prod",
                "Outputs": [{"OutputKey": k, "OutputValue": v} for k, v in (outputs or {}).items()],
            }
        ]
    }
    client.describe_stack_resources.return_value = {
        "StackResources": [
            {"LogicalResourceId": k, "PhysicalResourceId": v} for k, v in (resources or {}).items()
        ]
    }
    return client


