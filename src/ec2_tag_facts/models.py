"""Data models for instance identity and the describe-tags response."""

from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class InstanceIdentity(BaseModel):
    """The ``(instance_id, region)`` pair a tag query is made for."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    region: str


class TagEntry(BaseModel):
    """One element of the ``Tags`` array.

    ``ResourceId`` and ``ResourceType`` are present in real responses but are
    not needed to build facts.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: str = Field(alias="Key")
    value: str = Field(alias="Value")


class TagResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tags: list[TagEntry] = Field(alias="Tags")


class Fact(NamedTuple):
    name: str
    value: str
