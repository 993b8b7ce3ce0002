"""Site bucket operations: asset upload and emptying before removal."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import boto3
from botocore.exceptions import ClientError

from .assets import AssetRecord
from .errors import RemoteAccessDenied, RemoteGenericFailure

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_WORKERS = 8


class SiteBucket:
    def __init__(
        self,
        bucket_name: str,
        client: Any = None,
        region: str | None = None,
        max_workers: int = DEFAULT_UPLOAD_WORKERS,
    ):
        self.bucket_name = bucket_name
        self.client = client or boto3.client("s3", region_name=region)
        self.max_workers = max_workers

    def put_asset(self, record: AssetRecord) -> None:
        self.client.put_object(
            Body=record.body,
            Bucket=self.bucket_name,
            Key=record.relative_key,
            CacheControl=record.cache_control,
            ContentType=record.content_type,
        )

    def upload(self, records: Sequence[AssetRecord]) -> int:
        """
        Write every record to the bucket.

        Writes run concurrently, but the call only returns once all of them
        have finished. If any write failed, the first failure is raised after
        the rest have completed.
        """
        logger.info("Uploading %d files to s3://%s", len(records), self.bucket_name)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self.put_asset, record) for record in records]
        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            logger.error("%d of %d uploads failed", len(errors), len(records))
            raise errors[0]
        return len(records)

    def list_keys(self) -> list[str]:
        # Only the first page is read; buckets with more than 1000 objects
        # need another removal pass.
        try:
            result = self.client.list_objects_v2(Bucket=self.bucket_name, Prefix="")
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == "AccessDenied":
                raise RemoteAccessDenied(
                    f"Could not list objects in the site bucket ({self.bucket_name}). "
                    f"Make sure you have sufficient permissions to access it. [{code}]"
                ) from e
            raise
        if result.get("IsTruncated"):
            logger.warning(
                "Bucket %s holds more objects than one listing page; only the first page is emptied",
                self.bucket_name,
            )
        return [obj["Key"] for obj in result.get("Contents", [])]

    def empty(self) -> int:
        keys = self.list_keys()
        if not keys:
            return 0
        data = self.client.delete_objects(
            Bucket=self.bucket_name,
            Delete={"Objects": [{"Key": key} for key in keys]},
        )
        errors = (data or {}).get("Errors") or []
        if errors:
            code = errors[0].get("Code")
            if code == "AccessDenied":
                raise RemoteAccessDenied(
                    f"Could not empty the site bucket ({self.bucket_name}). Make sure that you "
                    f"have permissions that allow S3 objects deletion. First encountered S3 "
                    f"error code: {code} [CANNOT_DELETE_S3_OBJECTS_ACCESS_DENIED]"
                )
            raise RemoteGenericFailure(
                f"Could not empty the site bucket ({self.bucket_name}). First encountered S3 "
                f"error code: {code} [CANNOT_DELETE_S3_OBJECTS_GENERIC]",
                code=code,
            )
        logger.info("Deleted %d objects from s3://%s", len(keys), self.bucket_name)
        return len(keys)
