#!/usr/bin/env python3
"""Pydantic models for working-tree changes and their classification."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    MODIFIED = "modified"
    ADDED = "added"


class Severity(str, Enum):
    """Impact class of a change, used to pick the version increment."""
    BREAKING = "breaking"
    FEATURE = "feature"
    FIX = "fix"
    OTHER = "other"


class ChangeRecord(BaseModel):
    """One pending path in the working tree. Never persisted."""
    path: str = Field(..., description="Repository-relative file path")
    kind: ChangeKind = ChangeKind.MODIFIED
    raw_diff: Optional[str] = Field(None, description="Diff text; absent for untracked files")
    content: Optional[str] = Field(None, description="Current file content when readable")

    model_config = {"extra": "ignore"}


class ClassifiedChange(BaseModel):
    path: str
    severity: Severity
    description: str = Field(..., min_length=1)
    detail_body: str = Field("", description="Bullet lines rendered verbatim in release notes")
    source: str = Field("structural", description="Which classification stage produced this")

    def detail_lines(self) -> List[str]:
        return [line for line in self.detail_body.splitlines() if line.strip()]


class ChangeGroup(BaseModel):
    """All changes sharing one severity, ready for rendering."""
    severity: Severity
    description: str
    body: List[str] = Field(default_factory=list)
    paths: List[str] = Field(default_factory=list)


class GroupedChanges(BaseModel):
    breaking: Optional[ChangeGroup] = None
    feature: Optional[ChangeGroup] = None
    fix: Optional[ChangeGroup] = None
    other: Optional[ChangeGroup] = None

    def groups(self) -> List[ChangeGroup]:
        return [g for g in (self.breaking, self.feature, self.fix, self.other) if g is not None]

    def count(self, severity: Severity) -> int:
        group = getattr(self, severity.value)
        return len(group.paths) if group else 0
