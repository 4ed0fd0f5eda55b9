"""Instance identity discovery — instance id and region of the local host.

Three sources, in the order the CLI prefers them:

1. explicit ``--instance-id`` / ``--availability-zone``
2. a Facter ``ec2_metadata`` JSON document (``facter --json ec2_metadata``)
3. the EC2 instance metadata service (IMDSv2, falling back to IMDSv1)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .base import MetadataError
from .models import InstanceIdentity

logger = logging.getLogger(__name__)

IMDS_BASE_URL = "http://169.254.169.254/latest"
IMDS_TOKEN_TTL = "60"


def region_from_availability_zone(availability_zone: str) -> str:
    """``us-east-1a`` → ``us-east-1``: drop the trailing zone letter."""
    az = availability_zone.strip()
    if len(az) < 2:
        raise MetadataError(f"Invalid availability zone: {availability_zone!r}")
    return az[:-1]


def identity_from_placement(instance_id: str, availability_zone: str) -> InstanceIdentity:
    if not instance_id:
        raise MetadataError("Instance id is empty")
    return InstanceIdentity(
        instance_id=instance_id,
        region=region_from_availability_zone(availability_zone),
    )


def identity_from_metadata(metadata: dict[str, Any]) -> InstanceIdentity:
    """Build the identity from a Facter ``ec2_metadata`` structure."""
    try:
        instance_id = metadata["instance-id"]
        availability_zone = metadata["placement"]["availability-zone"]
    except (KeyError, TypeError) as e:
        raise MetadataError(f"ec2_metadata is missing {e}") from e
    if not isinstance(instance_id, str) or not isinstance(availability_zone, str):
        raise MetadataError(
            f"ec2_metadata has a non-string instance-id or availability-zone: "
            f"{instance_id!r}, {availability_zone!r}"
        )
    return identity_from_placement(instance_id, availability_zone)


def _imds_token(timeout: float) -> Optional[str]:
    try:
        resp = requests.put(
            f"{IMDS_BASE_URL}/api/token",
            headers={"X-aws-ec2-metadata-token-ttl-seconds": IMDS_TOKEN_TTL},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.debug("IMDSv2 token request failed, using IMDSv1: %s", e)
        return None
    if resp.status_code != 200:
        logger.debug("IMDSv2 token request returned %s, using IMDSv1", resp.status_code)
        return None
    return resp.text


def _imds_get(path: str, token: Optional[str], timeout: float) -> str:
    headers = {"X-aws-ec2-metadata-token": token} if token else {}
    try:
        resp = requests.get(f"{IMDS_BASE_URL}/meta-data/{path}", headers=headers, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise MetadataError(f"Could not read {path} from instance metadata: {e}") from e
    return resp.text.strip()


def discover_identity(timeout: float = 2.0) -> InstanceIdentity:
    """Query the instance metadata service for the local instance's identity.

    Raises:
        MetadataError: not running on EC2, or the metadata service is unreachable.
    """
    token = _imds_token(timeout)
    instance_id = _imds_get("instance-id", token, timeout)
    availability_zone = _imds_get("placement/availability-zone", token, timeout)
    logger.info("Instance metadata: %s in %s", instance_id, availability_zone)
    return identity_from_placement(instance_id, availability_zone)
