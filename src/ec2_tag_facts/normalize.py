"""Tag key → fact name normalization."""

from __future__ import annotations

import re

FACT_PREFIX = "ec2_tag_"

# Applied after lower-casing, so upper-case ASCII can no longer occur.
_NON_WORD_RUN = re.compile(r"[^a-z0-9_]+")


def normalize_core(raw_key: str) -> str:
    """Lower-case *raw_key* and collapse each run of non-word characters to ``_``."""
    return _NON_WORD_RUN.sub("_", raw_key.lower())


def normalize_tag_name(raw_key: str) -> str:
    """Return the fact name for a tag key.

    >>> normalize_tag_name("aws:autoscaling:groupName")
    'ec2_tag_aws_autoscaling_groupname'
    """
    return f"{FACT_PREFIX}{normalize_core(raw_key)}"
