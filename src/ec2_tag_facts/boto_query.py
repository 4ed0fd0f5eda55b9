"""Query backend using boto3 instead of the ``aws`` CLI.

Requires ``boto3``.  Install with::

    pip install 'ec2-tag-facts[aws]'

Authentication uses the standard boto3 credential chain (env vars,
~/.aws/credentials, instance profile).  Only ``ec2:DescribeTags`` is called.

The response is re-serialized as ``{"Tags": [...]}`` JSON so the cache file
has the same format whichever backend wrote it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .base import BackendUnavailableError
from .fetcher import QueryResult
from .models import InstanceIdentity

logger = logging.getLogger(__name__)


def describe_tags_boto3(identity: InstanceIdentity, session: Any = None) -> QueryResult:
    """Page through ``ec2.describe_tags`` for *identity*.

    SDK and credential errors are returned as failed results so the fetcher
    retries them like a failed CLI run.

    Raises:
        BackendUnavailableError: if ``boto3`` is not installed.
    """
    try:
        import boto3
        from botocore.exceptions import BotoCoreError, ClientError
    except ImportError:
        raise BackendUnavailableError(
            "boto3 is required for the boto3 backend. "
            "Install with: pip install 'ec2-tag-facts[aws]'"
        )

    if session is None:
        session = boto3.Session()

    tags: list[dict[str, Any]] = []
    try:
        client = session.client("ec2", region_name=identity.region)
        paginator = client.get_paginator("describe_tags")
        filters = [{"Name": "resource-id", "Values": [identity.instance_id]}]
        for page in paginator.paginate(Filters=filters):
            tags.extend(page.get("Tags", []))
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "")
        return QueryResult(ok=False, reason=f"DescribeTags failed ({code}): {exc}")
    except BotoCoreError as exc:
        return QueryResult(ok=False, reason=f"DescribeTags failed: {exc}")

    logger.debug("boto3 describe_tags returned %d tag(s)", len(tags))
    return QueryResult(ok=True, output=json.dumps({"Tags": tags}, indent=4))
