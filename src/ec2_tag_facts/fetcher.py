"""Run ``aws ec2 describe-tags`` for the local instance, retrying on failure.

Each attempt produces a :class:`QueryResult` instead of raising, so the retry
policy is a plain bounded loop.  Only when every attempt has failed does
:func:`fetch_tags` raise :class:`~ec2_tag_facts.base.FetchError`.

An attempt that exits 0 but prints nothing is treated as a failure as well.
Some environments report an authentication problem this way instead of with
a non-zero exit; this is an observed heuristic, not part of the AWS CLI's
contract.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Callable, NamedTuple

from .base import FactLogger, FetchError
from .models import InstanceIdentity

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
QUERY_TIMEOUT = 10  # seconds, per attempt


class QueryResult(NamedTuple):
    """Outcome of one query attempt: ``ok`` with ``output``, or a failure ``reason``."""

    ok: bool
    output: str = ""
    reason: str = ""


QueryFn = Callable[[InstanceIdentity], QueryResult]


def build_describe_tags_command(identity: InstanceIdentity, aws_command: str = "aws") -> list[str]:
    return [
        aws_command, "ec2", "describe-tags",
        "--filters", f"Name=resource-id,Values={identity.instance_id}",
        "--region", identity.region,
        "--output", "json",
    ]


def run_describe_tags(
    identity: InstanceIdentity,
    aws_command: str = "aws",
    timeout: float = QUERY_TIMEOUT,
) -> QueryResult:
    """Execute the describe-tags command once and report what happened."""
    cmd = build_describe_tags_command(identity, aws_command)
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
        )
    except FileNotFoundError:
        return QueryResult(ok=False, reason=f"{aws_command} not found")
    except subprocess.TimeoutExpired:
        return QueryResult(ok=False, reason=f"{aws_command} timed out after {timeout}s")
    except UnicodeDecodeError as exc:
        return QueryResult(ok=False, reason=f"{aws_command} output is not valid UTF-8: {exc}")
    except OSError as exc:
        return QueryResult(ok=False, reason=f"could not run {aws_command}: {exc}")

    if result.returncode != 0:
        stderr = result.stderr.strip()
        return QueryResult(ok=False, reason=f"{aws_command} exited {result.returncode}: {stderr[:300]}")

    return QueryResult(ok=True, output=result.stdout)


def fetch_tags(
    identity: InstanceIdentity,
    query: QueryFn = run_describe_tags,
    max_retries: int = MAX_RETRIES,
    log: FactLogger = logger,
) -> str:
    """Return the raw describe-tags JSON for *identity*.

    Makes up to ``max_retries + 1`` attempts with no delay between them.

    Raises:
        FetchError: when every attempt failed; carries the last failure reason.
    """
    total = max_retries + 1
    reason = "no attempt made"
    for attempt in range(1, total + 1):
        log.info(
            "describe-tags for %s in %s (attempt %d/%d)",
            identity.instance_id, identity.region, attempt, total,
        )
        result = query(identity)
        if not result.ok:
            reason = result.reason or "query failed"
        elif not result.output.strip():
            reason = "empty output (check AWS credentials)"
        else:
            log.info("describe-tags succeeded on attempt %d", attempt)
            return result.output
        log.error("describe-tags attempt %d/%d failed: %s", attempt, total, reason)

    raise FetchError(reason, attempts=total)
