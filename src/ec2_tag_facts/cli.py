"""ec2-tag-facts command line — a Facter external fact executable.

Drop a wrapper into ``/etc/facter/facts.d`` (or ``/opt/puppetlabs/facter/facts.d``)::

    #!/bin/sh
    exec ec2-tag-facts

Facts are written to stdout only after every tag has been resolved; on any
error nothing is printed there, the message goes to stderr and the exit
status is 1.
"""

from __future__ import annotations

import json
import logging
import sys
from functools import partial
from pathlib import Path
from typing import Optional

import click

from ec2_tag_facts import __version__
from ec2_tag_facts.base import Ec2TagFactsError, MetadataError
from ec2_tag_facts.cache import DEFAULT_CACHE_CONTENT, DEFAULT_CACHE_MARKER, CacheConfig
from ec2_tag_facts.facts import add_tag_facts
from ec2_tag_facts.fetcher import QueryFn, run_describe_tags
from ec2_tag_facts.metadata import discover_identity, identity_from_metadata, identity_from_placement
from ec2_tag_facts.models import Fact, InstanceIdentity
from ec2_tag_facts.output import FORMATS, render

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_identity(
    instance_id: Optional[str],
    availability_zone: Optional[str],
    metadata_file: Optional[Path],
) -> InstanceIdentity:
    if instance_id or availability_zone:
        if not (instance_id and availability_zone):
            raise click.UsageError("--instance-id and --availability-zone must be given together")
        return identity_from_placement(instance_id, availability_zone)

    if metadata_file is not None:
        try:
            document = json.loads(metadata_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise MetadataError(f"Could not load {metadata_file}: {e}") from e
        # `facter --json ec2_metadata` wraps the document in its fact name.
        if isinstance(document, dict) and "ec2_metadata" in document:
            document = document["ec2_metadata"]
        return identity_from_metadata(document)

    return discover_identity()


def _select_query(backend: str, aws_command: str) -> QueryFn:
    if backend == "boto3":
        from ec2_tag_facts.boto_query import describe_tags_boto3
        return describe_tags_boto3
    return partial(run_describe_tags, aws_command=aws_command)


@click.command()
@click.version_option(version=__version__, prog_name="ec2-tag-facts")
@click.option("--instance-id", default=None, help="EC2 instance id (skips metadata discovery).")
@click.option("--availability-zone", default=None, help="Availability zone, e.g. us-east-1a; the region is derived from it.")
@click.option(
    "--metadata-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON ec2_metadata document, e.g. the output of `facter --json ec2_metadata`.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(FORMATS),
    default="text",
    show_default=True,
    help="Output format. 'text' prints name=value lines.",
)
@click.option(
    "--backend",
    type=click.Choice(["cli", "boto3"]),
    default="cli",
    show_default=True,
    help="Query tags with the aws CLI or with boto3 (requires ec2-tag-facts[aws]).",
)
@click.option("--aws-command", default="aws", show_default=True, help="AWS CLI executable for the cli backend.")
@click.option(
    "--cache-marker",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CACHE_MARKER,
    show_default=True,
    help="Caching is enabled while this file exists (managed by the ec2tagfacts Puppet class).",
)
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CACHE_CONTENT,
    show_default=True,
    help="Where the describe-tags response is cached.",
)
@click.option("-v", "--verbose", count=True, help="Log to stderr (-v info, -vv debug).")
def main(
    instance_id: Optional[str],
    availability_zone: Optional[str],
    metadata_file: Optional[Path],
    output_format: str,
    backend: str,
    aws_command: str,
    cache_marker: Path,
    cache_file: Path,
    verbose: int,
) -> None:
    """Print this EC2 instance's tags as Facter facts (ec2_tag_<key>=<value>)."""
    _configure_logging(verbose)

    facts: list[Fact] = []
    try:
        identity = _resolve_identity(instance_id, availability_zone, metadata_file)
        cache = CacheConfig.from_marker(cache_marker, cache_file)
        add_tag_facts(
            identity,
            lambda name, value: facts.append(Fact(name, value)),
            cache,
            query=_select_query(backend, aws_command),
        )
    except Ec2TagFactsError as e:
        logger.debug("Tag fact resolution failed", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(render(facts, output_format), nl=False)


if __name__ == "__main__":
    main()
