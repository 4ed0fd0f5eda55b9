"""Fact renderers for the formats Facter accepts from external fact executables."""

from __future__ import annotations

import json

import yaml

from .models import Fact

FORMATS = ("text", "json", "yaml")


def _as_mapping(facts: list[Fact]) -> dict[str, str]:
    # Duplicate names: the later tag wins, as it would in Facter.
    return {fact.name: fact.value for fact in facts}


def render_text(facts: list[Fact]) -> str:
    """``name=value`` lines, one per fact."""
    return "".join(f"{fact.name}={fact.value}\n" for fact in facts)


def render_json(facts: list[Fact]) -> str:
    return json.dumps(_as_mapping(facts), indent=2) + "\n"


def render_yaml(facts: list[Fact]) -> str:
    return yaml.safe_dump(_as_mapping(facts), default_flow_style=False, sort_keys=False)


def render(facts: list[Fact], fmt: str = "text") -> str:
    if fmt == "json":
        return render_json(facts)
    if fmt == "yaml":
        return render_yaml(facts)
    if fmt == "text":
        return render_text(facts)
    raise ValueError(f"Unknown output format '{fmt}'. Available: {', '.join(FORMATS)}")
