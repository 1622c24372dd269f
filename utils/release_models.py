#!/usr/bin/env python3
"""Persistent release records.

Field aliases are the camelCase keys the release-notes page reads, so records
are dumped with ``by_alias=True`` before they reach a store.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, List
from pydantic import BaseModel, Field, ConfigDict, constr

DEV_MARKER = "-dev."

ReleaseType = Literal[
	"Major Release",
	"Feature Release",
	"Bug Fix Release",
	"Maintenance Release",
]

FeatureStatus = Literal["active", "deprecated", "removed"]


class Environment(str, Enum):
	DEV = "dev"
	PROD = "prod"

	@classmethod
	def parse(cls, value: str) -> "Environment":
		return cls.PROD if (value or "").strip().lower() == "prod" else cls.DEV


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


class _RecordModel(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	def to_item(self) -> dict:
		return self.model_dump(mode="json", by_alias=True)


class FeatureRecord(_RecordModel):
	"""A named capability, recorded once the first time it is recognised."""

	id: str = Field(default_factory=lambda: str(uuid.uuid4()))
	name: constr(strip_whitespace=True, min_length=1)
	description: str
	category: str
	introduced_in_version: str = Field("", alias="introducedInVersion")
	change_type: str = Field("feature", alias="changeType")
	date_added: str = Field(default_factory=_now_iso, alias="dateAdded")
	status: FeatureStatus = "active"
	source_path: str = Field("", alias="sourcePath")


class ReleaseRecord(_RecordModel):
	"""One published release. Immutable once saved."""

	version: str
	environment: Environment
	date: str
	timestamp: str = Field(default_factory=_now_iso)
	release_type: ReleaseType = Field(..., alias="releaseType")
	notes: str = ""
	breaking: List[str] = Field(default_factory=list)
	features: List[str] = Field(default_factory=list)
	bug_fixes: List[str] = Field(default_factory=list, alias="bugFixes")
	improvements: List[str] = Field(default_factory=list)

	@property
	def lane(self) -> Environment:
		return Environment.DEV if DEV_MARKER in self.version else Environment.PROD
