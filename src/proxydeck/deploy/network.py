"""CloudFront origin-facing prefix list lookup.

The stack uses the prefix list to allow ingress to the load balancer from
CloudFront edge locations only. It is looked up on every deploy.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from proxydeck.config.defaults import CLOUDFRONT_PREFIX_LIST_NAME
from proxydeck.deploy.aws import error_message
from proxydeck.lib.errors import DeploymentError, PrefixListNotFoundError

logger = logging.getLogger(__name__)


def resolve_edge_prefix_list_id(
    ec2: Any,
    region: str,
    prefix_list_name: str = CLOUDFRONT_PREFIX_LIST_NAME,
) -> str:
    """Return the ID of the CloudFront origin-facing managed prefix list.

    Args:
        ec2: boto3 EC2 client for the deployment region
        region: Region name, for error reporting
        prefix_list_name: Managed prefix list name to look up

    Returns:
        Prefix list ID (e.g. pl-xxxxxxxx)

    Raises:
        PrefixListNotFoundError: If the region does not expose the list
        DeploymentError: If the EC2 call fails
    """
    try:
        response = ec2.describe_managed_prefix_lists(
            Filters=[{"Name": "prefix-list-name", "Values": [prefix_list_name]}]
        )
    except ClientError as exc:
        raise DeploymentError(
            operation="resolve_prefix_list", message=error_message(exc)
        ) from exc
    except BotoCoreError as exc:
        raise DeploymentError(operation="resolve_prefix_list", message=str(exc)) from exc

    prefix_lists = response.get("PrefixLists") or []
    if not prefix_lists or not prefix_lists[0].get("PrefixListId"):
        raise PrefixListNotFoundError(region=region, prefix_list_name=prefix_list_name)

    prefix_list_id = str(prefix_lists[0]["PrefixListId"])
    logger.debug("Resolved %s to %s in %s", prefix_list_name, prefix_list_id, region)
    return prefix_list_id
