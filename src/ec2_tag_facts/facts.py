"""Resolve the instance's tags into facts: cache gate → fetch → parse → normalize."""

from __future__ import annotations

import json
import logging
from typing import Callable

from pydantic import ValidationError

from .base import FactLogger, ParseError, SchemaError
from .cache import CacheConfig, read_or_fetch
from .fetcher import QueryFn, fetch_tags, run_describe_tags
from .models import Fact, InstanceIdentity, TagEntry, TagResponse
from .normalize import normalize_tag_name

logger = logging.getLogger(__name__)

FactSink = Callable[[str, str], None]


def parse_tags(raw: str) -> list[TagEntry]:
    """Parse a describe-tags response into its tag entries, preserving order.

    Raises:
        ParseError: *raw* is not JSON.  When it came from the cache the file
            has to be removed by hand; it is never rewritten automatically.
        SchemaError: the document has no ``Tags`` list of ``Key``/``Value`` objects.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"describe-tags returned invalid JSON: {e}") from e

    if not isinstance(data, dict) or "Tags" not in data:
        raise SchemaError("describe-tags response has no 'Tags' key")

    try:
        return TagResponse.model_validate(data).tags
    except ValidationError as e:
        raise SchemaError(f"unexpected describe-tags response: {e}") from e


def build_facts(tags: list[TagEntry]) -> list[Fact]:
    return [Fact(normalize_tag_name(tag.key), tag.value) for tag in tags]


def collect_facts(
    identity: InstanceIdentity,
    cache: CacheConfig,
    query: QueryFn = run_describe_tags,
    log: FactLogger = logger,
) -> list[Fact]:
    """Return one fact per tag on *identity*, in response order."""
    raw = read_or_fetch(lambda: fetch_tags(identity, query, log=log), cache, log=log)
    return build_facts(parse_tags(raw))


def add_tag_facts(
    identity: InstanceIdentity,
    sink: FactSink,
    cache: CacheConfig,
    query: QueryFn = run_describe_tags,
    log: FactLogger = logger,
) -> list[Fact]:
    """Collect every fact, then hand each ``(name, value)`` to *sink*.

    Nothing reaches *sink* unless the whole response was fetched and parsed.
    """
    facts = collect_facts(identity, cache, query=query, log=log)
    for fact in facts:
        sink(fact.name, fact.value)
    log.info("Registered %d EC2 tag fact(s) for %s", len(facts), identity.instance_id)
    return facts
