"""CloudFront cache invalidation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

ALL_PATHS = ("/*",)


def invalidate_distribution(
    client: Any,
    distribution_id: str,
    paths: Sequence[str] = ALL_PATHS,
    caller_reference: str | None = None,
) -> str:
    """Request invalidation of paths; returns the invalidation id."""
    reference = caller_reference or datetime.now(timezone.utc).isoformat()
    result = client.create_invalidation(
        DistributionId=distribution_id,
        InvalidationBatch={
            "CallerReference": reference,
            "Paths": {"Quantity": len(paths), "Items": list(paths)},
        },
    )
    invalidation_id = result["Invalidation"]["Id"]
    logger.info("Created invalidation %s for %s", invalidation_id, distribution_id)
    return invalidation_id
