"""Tests for the ec2-tag-facts command and its output formats."""

import json
from unittest.mock import patch

import yaml
from click.testing import CliRunner

from ec2_tag_facts import __version__
from ec2_tag_facts.base import MetadataError
from ec2_tag_facts.cli import main
from ec2_tag_facts.fetcher import MAX_RETRIES, QueryResult
from ec2_tag_facts.models import Fact, InstanceIdentity
from ec2_tag_facts.output import render

TWO_TAGS = '{"Tags":[{"Key":"Name","Value":"web-01"},{"Key":"cost-center","Value":"42"}]}'


def _invoke(tmp_path, args, query_result=QueryResult(ok=True, output=TWO_TAGS)):
    """Run the CLI with describe-tags stubbed and cache paths under *tmp_path*."""
    base = [
        "--cache-marker", str(tmp_path / "cache_enabled"),
        "--cache-file", str(tmp_path / "cache_content"),
    ]
    with patch("ec2_tag_facts.cli.run_describe_tags", return_value=query_result) as mock_run:
        result = CliRunner().invoke(main, base + args)
    return result, mock_run


# ─── Renderers ───────────────────────────────────────────────────────────────


FACTS = [Fact("ec2_tag_name", "web-01"), Fact("ec2_tag_cost_center", "42")]


def test_render_text():
    assert render(FACTS, "text") == "ec2_tag_name=web-01\nec2_tag_cost_center=42\n"


def test_render_json_keeps_order():
    out = render(FACTS, "json")
    assert list(json.loads(out)) == ["ec2_tag_name", "ec2_tag_cost_center"]


def test_render_yaml():
    assert yaml.safe_load(render(FACTS, "yaml")) == {"ec2_tag_name": "web-01", "ec2_tag_cost_center": "42"}


def test_render_yaml_keeps_numeric_looking_values_as_strings():
    assert yaml.safe_load(render([Fact("ec2_tag_port", "8080")], "yaml")) == {"ec2_tag_port": "8080"}


def test_render_duplicate_name_later_wins():
    facts = [Fact("ec2_tag_role", "web"), Fact("ec2_tag_role", "db")]
    assert json.loads(render(facts, "json")) == {"ec2_tag_role": "db"}


def test_render_empty():
    assert render([], "text") == ""
    assert json.loads(render([], "json")) == {}


# ─── CLI ─────────────────────────────────────────────────────────────────────


def test_cli_explicit_identity(tmp_path):
    result, mock_run = _invoke(tmp_path, ["--instance-id", "i-abc123", "--availability-zone", "us-east-1a"])

    assert result.exit_code == 0, result.output
    assert result.output == "ec2_tag_name=web-01\nec2_tag_cost_center=42\n"
    mock_run.assert_called_once_with(
        InstanceIdentity(instance_id="i-abc123", region="us-east-1"),
        aws_command="aws",
    )


def test_cli_json_format(tmp_path):
    result, _ = _invoke(tmp_path, [
        "--instance-id", "i-abc123", "--availability-zone", "us-east-1a", "--format", "json",
    ])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"ec2_tag_name": "web-01", "ec2_tag_cost_center": "42"}


def test_cli_custom_aws_command(tmp_path):
    _, mock_run = _invoke(tmp_path, [
        "--instance-id", "i-abc123", "--availability-zone", "us-east-1a", "--aws-command", "awss",
    ])
    assert mock_run.call_args.kwargs["aws_command"] == "awss"


def test_cli_metadata_file(tmp_path):
    metadata = tmp_path / "ec2_metadata.json"
    metadata.write_text(json.dumps({
        "ec2_metadata": {"instance-id": "i-def456", "placement": {"availability-zone": "eu-west-1b"}},
    }))

    result, mock_run = _invoke(tmp_path, ["--metadata-file", str(metadata)])

    assert result.exit_code == 0
    assert mock_run.call_args.args[0] == InstanceIdentity(instance_id="i-def456", region="eu-west-1")


def test_cli_discovers_identity_by_default(tmp_path):
    identity = InstanceIdentity(instance_id="i-abc123", region="us-east-1")
    with patch("ec2_tag_facts.cli.discover_identity", return_value=identity) as mock_discover:
        result, mock_run = _invoke(tmp_path, [])

    assert result.exit_code == 0
    mock_discover.assert_called_once_with()
    assert mock_run.call_args.args[0] == identity


def test_cli_metadata_unavailable(tmp_path):
    with patch("ec2_tag_facts.cli.discover_identity", side_effect=MetadataError("not on EC2")):
        result, mock_run = _invoke(tmp_path, [])

    assert result.exit_code == 1
    assert "not on EC2" in result.output
    mock_run.assert_not_called()


def test_cli_instance_id_without_zone(tmp_path):
    result, _ = _invoke(tmp_path, ["--instance-id", "i-abc123"])
    assert result.exit_code == 2
    assert "must be given together" in result.output


def test_cli_fetch_failure_exits_1_without_facts(tmp_path):
    result, mock_run = _invoke(
        tmp_path,
        ["--instance-id", "i-abc123", "--availability-zone", "us-east-1a"],
        query_result=QueryResult(ok=False, reason="aws exited 255: Unable to locate credentials"),
    )

    assert result.exit_code == 1
    assert "Error: describe-tags failed after 4 attempt(s)" in result.output
    assert "ec2_tag_" not in result.output
    assert mock_run.call_count == MAX_RETRIES + 1


def test_cli_caches_when_marker_present(tmp_path):
    (tmp_path / "cache_enabled").touch()
    args = ["--instance-id", "i-abc123", "--availability-zone", "us-east-1a"]

    first, mock_run = _invoke(tmp_path, args)
    assert first.exit_code == 0
    assert mock_run.call_count == 1
    assert (tmp_path / "cache_content").read_text() == TWO_TAGS

    second, mock_run = _invoke(tmp_path, args)
    assert second.exit_code == 0
    assert second.output == first.output
    mock_run.assert_not_called()


def test_cli_corrupt_cache(tmp_path):
    (tmp_path / "cache_enabled").touch()
    (tmp_path / "cache_content").write_text("not json")

    result, mock_run = _invoke(tmp_path, ["--instance-id", "i-abc123", "--availability-zone", "us-east-1a"])

    assert result.exit_code == 1
    assert "invalid JSON" in result.output
    mock_run.assert_not_called()


def test_cli_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_help_lists_formats():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "text" in result.output
    assert "yaml" in result.output


def test_cli_undecodable_cache(tmp_path):
    (tmp_path / "cache_enabled").touch()
    (tmp_path / "cache_content").write_bytes(b"\xff\xfenot json")

    result, mock_run = _invoke(tmp_path, ["--instance-id", "i-abc123", "--availability-zone", "us-east-1a"])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "not valid UTF-8" in result.output
    assert "ec2_tag_" not in result.output
    mock_run.assert_not_called()
